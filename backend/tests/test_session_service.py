"""
Session manager tests: issuing, resolving, expiry and revocation.
"""

from datetime import timedelta

import pytest

from bankportal.models import SessionToken, ROLE_CUSTOMER, ROLE_STAFF
from bankportal.services import session_service
from bankportal.time_utils import utcnow
from tests.conftest import make_user


class TestSessions:

    def test_create_and_resolve(self, db_session):
        user = make_user(ROLE_STAFF)
        record, token = session_service.create_session(user.id, user.role)

        assert len(token) == 64
        assert record.token_hash != token
        assert record.token_hash == session_service.hash_token(token)

        context = session_service.resolve_session(token)
        assert context is not None
        assert context.user_id == user.id
        assert context.role == ROLE_STAFF

    def test_lifetime_is_24_hours(self, db_session):
        user = make_user(ROLE_CUSTOMER)
        record, _ = session_service.create_session(user.id, user.role)
        assert record.expires_at - record.created_at == timedelta(hours=24)

    @pytest.mark.parametrize("token", [None, "", "short", "Z" * 64, "0" * 64])
    def test_resolve_fails_closed(self, db_session, token):
        assert session_service.resolve_session(token) is None

    def test_expired_session_is_rejected(self, db_session):
        user = make_user(ROLE_CUSTOMER)
        record, token = session_service.create_session(user.id, user.role)
        record.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        assert session_service.resolve_session(token) is None

    def test_destroy(self, db_session):
        user = make_user(ROLE_CUSTOMER)
        _, token = session_service.create_session(user.id, user.role)

        assert session_service.destroy_session(token) is True
        assert session_service.resolve_session(token) is None
        assert session_service.destroy_session(token) is False

        record = db_session.query(SessionToken).one()
        assert record.is_revoked is True
        assert record.revoked_reason == "User logout"

    def test_cleanup_only_removes_old_dead_sessions(self, db_session):
        user = make_user(ROLE_CUSTOMER)
        old, _ = session_service.create_session(user.id, user.role)
        live, _ = session_service.create_session(user.id, user.role)

        old.created_at = utcnow() - timedelta(days=40)
        old.expires_at = old.created_at + timedelta(hours=24)
        db_session.commit()

        assert session_service.cleanup_expired_sessions(older_than_days=30) == 1
        assert db_session.query(SessionToken).count() == 1
