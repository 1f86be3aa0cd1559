from __future__ import annotations

from ..extensions import db
from bankportal.time_utils import to_utc_z, utcnow


ROLE_CUSTOMER = "customer"
ROLE_STAFF = "staff"
VALID_ROLES = (ROLE_CUSTOMER, ROLE_STAFF)


class User(db.Model):
    """
    Customer and staff accounts.

    Username, ID number and account number are each globally unique,
    regardless of role. The unique constraints are the source of truth for
    duplicate detection; the service-level pre-check only produces a
    friendlier error.

    Users are never updated or deleted after registration.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.UniqueConstraint("id_number", name="uq_users_id_number"),
        db.UniqueConstraint("account_number", name="uq_users_account_number"),
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(20), nullable=False)
    full_name = db.Column(db.String(50), nullable=False)
    id_number = db.Column(db.String(13), nullable=False)
    account_number = db.Column(db.String(20), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    # customer | staff, fixed at registration
    role = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "id_number": self.id_number,
            "account_number": self.account_number,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"


class SessionToken(db.Model):
    """
    Server-side session record.

    Only the SHA-256 hash of the opaque cookie token is stored. The role is
    captured at login so the access gate can reject wrong-role requests
    before touching the users table.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user", "user_id"),
        db.Index("ix_session_tokens_expires", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    role = db.Column(db.String(16), nullable=False)

    token_hash = db.Column(db.String(64), nullable=False, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(128), nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
