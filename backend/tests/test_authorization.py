"""
Authorization tests for the bank portal.

Verifies:
- Unauthenticated requests return 401
- Customers are denied staff operations (403)
- Staff are denied customer operations (403)
- Expired or revoked sessions are rejected
"""

from datetime import timedelta

import pytest

from bankportal.extensions import db
from bankportal.models import SecurityEvent, SessionToken
from bankportal.services import auth_service
from bankportal.time_utils import utcnow
from tests.conftest import VALID_PAYMENT


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a session cookie."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/bankpayments"),
            ("GET", "/api/bankpayments/mine"),
            ("POST", "/api/bankpayments"),
            ("PATCH", "/api/bankpayments/1/verify"),
            ("POST", "/api/bankpayments/submit-to-swift"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json() == {"error": "Unauthorized"}

    def test_garbage_cookie(self, client):
        client.set_cookie("bank_session", "not-a-token")
        assert client.get("/api/auth/me").status_code == 401

    def test_health_is_public(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True}


# =============================================================================
# CUSTOMER DENIED STAFF OPERATIONS (403)
# =============================================================================


class TestCustomerDeniedStaffOperations:

    def test_cannot_list_users(self, customer_client):
        assert customer_client.get("/api/users").status_code == 403

    def test_cannot_list_all_payments(self, customer_client):
        assert customer_client.get("/api/bankpayments").status_code == 403

    def test_cannot_verify(self, customer_client):
        resp = customer_client.patch("/api/bankpayments/1/verify")
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Forbidden"}

    def test_cannot_submit(self, customer_client):
        resp = customer_client.post("/api/bankpayments/submit-to-swift", json={"ids": [1]})
        assert resp.status_code == 403

    def test_denial_is_audited(self, customer_client, customer):
        customer_client.get("/api/users")
        event = db.session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == customer.id
        assert event.success is False
        assert event.resource == "/api/users"


# =============================================================================
# STAFF DENIED CUSTOMER OPERATIONS (403)
# =============================================================================


class TestStaffDeniedCustomerOperations:

    def test_cannot_create_payment(self, staff_client):
        resp = staff_client.post("/api/bankpayments", json=VALID_PAYMENT)
        assert resp.status_code == 403

    def test_cannot_list_own_payments(self, staff_client):
        assert staff_client.get("/api/bankpayments/mine").status_code == 403


# =============================================================================
# ALLOWED ROLES
# =============================================================================


class TestAllowedRoles:

    def test_staff_can_list_users(self, staff_client, customer, staff):
        resp = staff_client.get("/api/users")
        assert resp.status_code == 200

        users = resp.get_json()
        assert {u["id"] for u in users} == {customer.id, staff.id}
        assert all("password_hash" not in u for u in users)

    def test_both_roles_reach_me(self, customer_client, staff_client):
        assert customer_client.get("/api/auth/me").status_code == 200
        assert staff_client.get("/api/auth/me").status_code == 200


# =============================================================================
# SESSION STATE
# =============================================================================


class TestSessionState:

    def test_expired_session_rejected(self, staff_client, staff):
        record = db.session.query(SessionToken).filter_by(user_id=staff.id).one()
        record.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        assert staff_client.get("/api/users").status_code == 401

    def test_revoked_session_rejected(self, staff_client, staff):
        record = db.session.query(SessionToken).filter_by(user_id=staff.id).one()
        record.is_revoked = True
        db.session.commit()

        assert staff_client.get("/api/users").status_code == 401

    def test_session_for_missing_user_rejected(self, staff_client, monkeypatch):
        monkeypatch.setattr(auth_service, "get_user", lambda user_id: None)

        resp = staff_client.get("/api/users")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Unauthorized"}
