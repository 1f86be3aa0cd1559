"""
Credential store tests: registration, duplicate detection, password hashing
and role-scoped authentication.
"""

import pytest

from bankportal.extensions import db
from bankportal.models import User, ROLE_CUSTOMER, ROLE_STAFF
from bankportal.services import auth_service
from bankportal.services.auth_service import DuplicateUserError, InvalidCredentialsError
from bankportal.validation import ValidationError
from tests.conftest import TEST_PASSWORD, make_user


class TestPasswordHashing:

    def test_hash_is_not_plaintext(self, db_session):
        hashed = auth_service.hash_password(TEST_PASSWORD)
        assert hashed != TEST_PASSWORD
        assert hashed.startswith("$2")

    def test_round_trip(self, db_session):
        hashed = auth_service.hash_password(TEST_PASSWORD)
        assert auth_service.verify_password(TEST_PASSWORD, hashed) is True
        assert auth_service.verify_password("Secret124", hashed) is False

    def test_salted(self, db_session):
        assert auth_service.hash_password(TEST_PASSWORD) != auth_service.hash_password(TEST_PASSWORD)

    def test_malformed_hash_never_verifies(self, db_session):
        assert auth_service.verify_password(TEST_PASSWORD, "not-a-bcrypt-hash") is False
        assert auth_service.verify_password(TEST_PASSWORD, "") is False

    def test_password_at_byte_limit_round_trips(self, db_session):
        password = "Aa1" + "x" * 69
        hashed = auth_service.hash_password(password)
        assert auth_service.verify_password(password, hashed) is True

    def test_overlong_password_never_verifies(self, db_session):
        password = "Aa1" + "x" * 69
        hashed = auth_service.hash_password(password)
        # Same first 72 bytes; must not match through truncation
        assert auth_service.verify_password(password + "extra", hashed) is False


class TestRegistration:

    def test_register_customer(self, db_session):
        user = auth_service.register_user(
            username="jane_doe",
            full_name="Jane Doe",
            id_number="9001015009",
            account_number="1234567890",
            password=TEST_PASSWORD,
        )
        assert user.id is not None
        assert user.role == ROLE_CUSTOMER
        assert user.password_hash != TEST_PASSWORD
        assert "password_hash" not in user.to_dict()

    def test_invalid_role_rejected(self, db_session):
        with pytest.raises(ValidationError):
            make_user(role="admin")

    def test_invalid_field_rejected(self, db_session):
        with pytest.raises(ValidationError, match="Invalid full name"):
            make_user(full_name="J")
        assert db_session.query(User).count() == 0

    @pytest.mark.parametrize("field", ["username", "id_number", "account_number"])
    def test_duplicate_field_rejected(self, db_session, field):
        first = make_user(ROLE_CUSTOMER)

        with pytest.raises(DuplicateUserError):
            make_user(ROLE_CUSTOMER, **{field: getattr(first, field)})

        assert db_session.query(User).count() == 1

    def test_uniqueness_spans_roles(self, db_session):
        customer = make_user(ROLE_CUSTOMER)
        with pytest.raises(DuplicateUserError):
            make_user(ROLE_STAFF, username=customer.username)

    def test_unique_constraint_backs_up_precheck(self, db_session, monkeypatch):
        """A racing insert that slips past the pre-check still fails cleanly."""
        first = make_user(ROLE_CUSTOMER)
        monkeypatch.setattr(auth_service, "find_conflicting_user", lambda *args: None)

        with pytest.raises(DuplicateUserError):
            make_user(ROLE_CUSTOMER, username=first.username)

        # Session is usable after the rollback
        assert db.session.query(User).count() == 1


class TestAuthentication:

    def test_customer_login(self, db_session):
        customer = make_user(ROLE_CUSTOMER)
        user = auth_service.authenticate_customer(customer.username, customer.account_number, TEST_PASSWORD)
        assert user.id == customer.id

    def test_customer_needs_matching_account_number(self, db_session):
        customer = make_user(ROLE_CUSTOMER)
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate_customer(customer.username, "999999999", TEST_PASSWORD)

    def test_staff_login(self, db_session):
        staff = make_user(ROLE_STAFF)
        assert auth_service.authenticate_staff(staff.username, TEST_PASSWORD).id == staff.id

    def test_wrong_role_fails(self, db_session):
        staff = make_user(ROLE_STAFF)
        customer = make_user(ROLE_CUSTOMER)

        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate_customer(staff.username, staff.account_number, TEST_PASSWORD)
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate_staff(customer.username, TEST_PASSWORD)

    def test_unknown_user_and_wrong_password_look_the_same(self, db_session):
        staff = make_user(ROLE_STAFF)

        with pytest.raises(InvalidCredentialsError) as unknown:
            auth_service.authenticate_staff("nobody_here", TEST_PASSWORD)
        with pytest.raises(InvalidCredentialsError) as wrong:
            auth_service.authenticate_staff(staff.username, "Wrong1234")

        assert str(unknown.value) == str(wrong.value) == "Invalid credentials"

    def test_non_string_identifier_fails(self, db_session):
        make_user(ROLE_STAFF)
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate_staff({"$ne": ""}, TEST_PASSWORD)
