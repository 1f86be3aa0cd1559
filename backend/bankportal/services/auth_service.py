# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Credential Store

WHY: Customers and staff authenticate against the same users table, with
different identifying fields per role. Passwords are hashed with bcrypt.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Username, ID number and account number are globally unique
  (storage-level unique constraints; the pre-check is only a fast path)
- Authentication failures are indistinguishable: unknown user and wrong
  password both raise InvalidCredentialsError, and both run one bcrypt check
- Role is always supplied by the caller, never read from the request body
  on the customer path
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, ROLE_CUSTOMER, ROLE_STAFF, VALID_ROLES
from ..validation import PASSWORD_MAX_BYTES, ValidationError, validate_registration
from bankportal.time_utils import utcnow


DEFAULT_BCRYPT_ROUNDS = 12

# Lazily built hash used to burn the same bcrypt time when no user matches
_dummy_hash: str | None = None


class DuplicateUserError(Exception):
    """Raised when username, account number or ID number is already taken."""
    pass


class InvalidCredentialsError(Exception):
    """Raised for any failed login. Never says which part was wrong."""
    pass


def _bcrypt_rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with a per-password random salt.

    Strength is checked by validate_registration before this is called.
    """
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    bcrypt.checkpw compares in constant time. Passwords longer than
    PASSWORD_MAX_BYTES never match, whichever bcrypt release truncates or
    rejects them. A malformed stored hash verifies as False rather than
    raising.
    """
    if not isinstance(password, str) or not password_hash:
        return False
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _get_dummy_hash() -> str:
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("Dummy-Password-0")
    return _dummy_hash


def find_conflicting_user(username: str, account_number: str, id_number: str) -> User | None:
    """Single combined existence query over all three unique fields."""
    return db.session.query(User).filter(
        db.or_(
            User.username == username,
            User.account_number == account_number,
            User.id_number == id_number,
        )
    ).first()


def register_user(
    username: str,
    full_name: str,
    id_number: str,
    account_number: str,
    password: str,
    role: str = ROLE_CUSTOMER,
) -> User:
    """
    Create a customer or staff account.

    Args:
        username: 3-20 chars, letters/digits/underscore/hyphen
        full_name: 3-50 letters and spaces
        id_number: 6-13 digits
        account_number: 6-20 digits
        password: meets the strength policy
        role: fixed by the calling route

    Returns:
        Created User object

    Raises:
        ValidationError: If any field is malformed
        DuplicateUserError: If username, account number or ID number exists
    """
    if role not in VALID_ROLES:
        raise ValidationError("Invalid role")

    error = validate_registration(username, full_name, id_number, account_number, password)
    if error:
        raise ValidationError(error)

    if find_conflicting_user(username, account_number, id_number):
        raise DuplicateUserError("Username, account, or ID already exists")

    user = User(
        username=username,
        full_name=full_name,
        id_number=id_number,
        account_number=account_number,
        password_hash=hash_password(password),
        role=role,
        created_at=utcnow(),
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent registration won the race past the pre-check
        db.session.rollback()
        raise DuplicateUserError("Username, account, or ID already exists")
    return user


def authenticate(password: str, expected_role: str, **identifying_fields) -> User:
    """
    Authenticate exactly one user matching identifying_fields AND expected_role.

    Raises InvalidCredentialsError on any failure.
    """
    if not all(isinstance(value, str) and value for value in identifying_fields.values()):
        raise InvalidCredentialsError("Invalid credentials")

    users = db.session.query(User).filter_by(role=expected_role, **identifying_fields).limit(2).all()

    if len(users) != 1:
        # Same cost as a real check so timing does not reveal unknown users
        verify_password(password if isinstance(password, str) else "", _get_dummy_hash())
        raise InvalidCredentialsError("Invalid credentials")

    user = users[0]
    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials")
    return user


def authenticate_customer(username: str, account_number: str, password: str) -> User:
    """Customers identify with username AND account number."""
    return authenticate(
        password,
        ROLE_CUSTOMER,
        username=username,
        account_number=account_number,
    )


def authenticate_staff(username: str, password: str) -> User:
    """Staff identify with username only."""
    return authenticate(password, ROLE_STAFF, username=username)


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def list_users(limit: int = 100) -> list[User]:
    return db.session.query(User).order_by(User.id).limit(limit).all()
