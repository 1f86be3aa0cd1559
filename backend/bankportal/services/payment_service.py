# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Workflow Service

WHY: Customers raise international payments; staff verify them one at a
time and then release verified payments to SWIFT in batches.

STATE MACHINE:
    pending -> verified -> submitted
No transition skips a state and none moves backward.

CONCURRENCY:
- verify and submit are each ONE conditional UPDATE keyed on the expected
  prior status (compare-and-swap). Two staff verifying the same payment
  race on the row; exactly one sees status == pending, the other matches
  zero rows and gets PaymentNotFoundError.
- Batch submit is one bulk conditional UPDATE over the id set; ids that
  are missing or in another state are excluded from the count, not reported.
- "Not found" and "wrong state" are deliberately the same error so callers
  cannot probe payment state.
"""

from sqlalchemy import update

from ..extensions import db
from ..models import BankPayment
from ..validation import MAX_RECORD_ID, ValidationError, parse_amount, validate_payment
from .concurrency import run_with_retry
from bankportal.time_utils import utcnow


class PaymentNotFoundError(Exception):
    """Target payment is absent or not in the state the transition needs."""
    pass


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

STATUS_PENDING = "pending"
STATUS_VERIFIED = "verified"
STATUS_SUBMITTED = "submitted"

VALID_STATUSES = [
    STATUS_PENDING,
    STATUS_VERIFIED,
    STATUS_SUBMITTED,
]

PROVIDER_SWIFT = "SWIFT"


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def create_payment(
    customer_id: int,
    amount: str,
    currency: str,
    payee_account: str,
    swift_code: str,
) -> BankPayment:
    """
    Create a pending payment owned by customer_id.

    Args:
        customer_id: Authenticated customer raising the payment
        amount: Decimal string, positive, at most 2 fraction digits
        currency: ISO-style 3 upper-case letters
        payee_account: 5-34 upper-case letters/digits
        swift_code: 8 or 11 character BIC

    Returns:
        BankPayment in pending state

    Raises:
        ValidationError: If any field is malformed
    """
    error = validate_payment(amount, currency, payee_account, swift_code)
    if error:
        raise ValidationError(error)

    payment = BankPayment(
        customer_id=customer_id,
        amount=parse_amount(amount),
        currency=currency,
        payee_account=payee_account,
        swift_code=swift_code,
        provider=PROVIDER_SWIFT,
        status=STATUS_PENDING,
        created_at=utcnow(),
    )

    db.session.add(payment)
    db.session.commit()
    return payment


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def _transition(payment_ids: list[int], from_status: str, values: dict) -> int:
    """
    Apply a conditional bulk UPDATE and commit. Returns rows matched.
    """
    def _op():
        result = db.session.execute(
            update(BankPayment)
            .where(
                BankPayment.id.in_(payment_ids),
                BankPayment.status == from_status,
            )
            .values(version_id=BankPayment.version_id + 1, **values)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount

    return run_with_retry(_op)


def verify_payment(payment_id: int, staff_user_id: int) -> BankPayment:
    """
    Move one payment from pending to verified.

    Records the verifying staff member and timestamp.

    Raises:
        PaymentNotFoundError: If the payment does not exist or is not pending
    """
    if not 0 < payment_id <= MAX_RECORD_ID:
        raise PaymentNotFoundError("Payment not found or already processed")

    matched = _transition(
        [payment_id],
        STATUS_PENDING,
        {
            "status": STATUS_VERIFIED,
            "verified_at": utcnow(),
            "verified_by": staff_user_id,
        },
    )
    if matched == 0:
        raise PaymentNotFoundError("Payment not found or already processed")

    payment = db.session.get(BankPayment, payment_id, populate_existing=True)
    return payment


def submit_batch(payment_ids: list[int], staff_user_id: int) -> int:
    """
    Move every verified payment in payment_ids to submitted.

    Returns the number of payments transitioned. Ids that are unknown,
    pending or already submitted are skipped silently; callers that need
    per-id outcomes must re-read the payments.

    Raises:
        ValidationError: If payment_ids is empty
        PaymentNotFoundError: If no id matched a verified payment
    """
    ids = list(dict.fromkeys(payment_ids))
    if not ids:
        raise ValidationError("Invalid IDs")

    # Out-of-range ids cannot name a row; skip them like any other miss
    ids = [i for i in ids if 0 < i <= MAX_RECORD_ID]
    if not ids:
        raise PaymentNotFoundError("No verified payments found")

    matched = _transition(
        ids,
        STATUS_VERIFIED,
        {
            "status": STATUS_SUBMITTED,
            "submitted_at": utcnow(),
            "submitted_by": staff_user_id,
        },
    )
    if matched == 0:
        raise PaymentNotFoundError("No verified payments found")
    return matched


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

def get_payment(payment_id: int) -> BankPayment | None:
    if not 0 < payment_id <= MAX_RECORD_ID:
        return None
    return db.session.get(BankPayment, payment_id)


def list_payments(limit: int = 100, status: str | None = None) -> list[BankPayment]:
    query = db.session.query(BankPayment)
    if status:
        if status not in VALID_STATUSES:
            raise ValidationError("Invalid status")
        query = query.filter(BankPayment.status == status)
    return query.order_by(BankPayment.created_at.desc(), BankPayment.id.desc()).limit(limit).all()


def list_customer_payments(customer_id: int, limit: int = 100) -> list[BankPayment]:
    return (
        db.session.query(BankPayment)
        .filter(BankPayment.customer_id == customer_id)
        .order_by(BankPayment.created_at.desc(), BankPayment.id.desc())
        .limit(limit)
        .all()
    )
