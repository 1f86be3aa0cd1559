"""
Payment transition race tests.

Runs against a file-backed SQLite database so that separate threads get
separate connections and really contend for the row.

Verifies:
- Two staff verifying the same payment: exactly one succeeds
- Concurrent batch submissions never double-count a payment
"""

import threading

import pytest

from bankportal import create_app
from bankportal.extensions import db
from bankportal.models import BankPayment, ROLE_CUSTOMER, ROLE_STAFF
from bankportal.services import payment_service
from bankportal.services.payment_service import PaymentNotFoundError
from tests.conftest import BASE_TEST_CONFIG, make_user


WORKERS = 4


@pytest.fixture()
def file_app(tmp_path):
    app = create_app(dict(
        BASE_TEST_CONFIG,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'race.sqlite3'}",
    ))
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _race(app, target, args_per_worker):
    """Start one thread per args tuple behind a barrier; collect outcomes."""
    barrier = threading.Barrier(len(args_per_worker))
    outcomes = []
    lock = threading.Lock()

    def worker(*args):
        with app.app_context():
            barrier.wait()
            try:
                result = target(*args)
            except PaymentNotFoundError:
                result = None
            finally:
                db.session.remove()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=args) for args in args_per_worker]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


def test_concurrent_verify_single_winner(file_app):
    customer = make_user(ROLE_CUSTOMER)
    staff_ids = [make_user(ROLE_STAFF).id for _ in range(WORKERS)]
    payment = payment_service.create_payment(customer.id, "99.50", "EUR", "DE89370400", "DEUTDEFF")
    payment_id = payment.id

    def verify(staff_id):
        return payment_service.verify_payment(payment_id, staff_user_id=staff_id).verified_by

    outcomes = _race(file_app, verify, [(sid,) for sid in staff_ids])

    winners = [o for o in outcomes if o is not None]
    assert len(outcomes) == WORKERS
    assert len(winners) == 1

    stored = db.session.get(BankPayment, payment_id, populate_existing=True)
    assert stored.status == "verified"
    assert stored.verified_by == winners[0]
    assert stored.version_id == 2


def test_concurrent_submit_counts_each_payment_once(file_app):
    customer = make_user(ROLE_CUSTOMER)
    staff = make_user(ROLE_STAFF)
    ids = []
    for _ in range(3):
        payment = payment_service.create_payment(customer.id, "10", "USD", "ABC1234567", "ABCDUS33")
        payment_service.verify_payment(payment.id, staff_user_id=staff.id)
        ids.append(payment.id)

    def submit():
        return payment_service.submit_batch(ids, staff_user_id=staff.id)

    outcomes = _race(file_app, submit, [() for _ in range(WORKERS)])

    assert sum(o for o in outcomes if o is not None) == 3
    assert db.session.query(BankPayment).filter_by(status="submitted").count() == 3
