# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Server-held proof of a prior successful login. The client only ever
holds an opaque random token in an HTTP-only cookie; the database holds
its SHA-256 hash, the user id, the role and a fixed expiry.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Fixed 24-hour lifetime (SESSION_LIFETIME_HOURS)
- Revocable on logout
- Fails closed: missing, malformed, unknown, revoked or expired tokens
  all resolve to "no session"
"""

import hashlib
import re
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app, request

from ..extensions import db
from ..models import SessionToken
from bankportal.time_utils import utcnow


DEFAULT_SESSION_LIFETIME = timedelta(hours=24)

_TOKEN_RE = re.compile(r"[0-9a-f]{64}")


@dataclass
class SessionContext:
    """Resolved session: who is calling and in which role."""
    user_id: int
    role: str
    session: SessionToken


def session_lifetime() -> timedelta:
    hours = current_app.config.get("SESSION_LIFETIME_HOURS")
    if hours:
        return timedelta(hours=int(hours))
    return DEFAULT_SESSION_LIFETIME


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def is_well_formed(token) -> bool:
    return isinstance(token, str) and _TOKEN_RE.fullmatch(token) is not None


def create_session(
    user_id: int,
    role: str,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a new session bound to user_id and role.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        role=role,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + session_lifetime(),
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def resolve_session(token: str | None) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is absent, malformed, unknown, revoked or
    expired. Expiry is compared in SQL so the check does not depend on
    the driver's datetime flavour.
    """
    if not is_well_formed(token):
        return None

    session = db.session.query(SessionToken).filter(
        SessionToken.token_hash == hash_token(token),
        SessionToken.is_revoked.is_(False),
        SessionToken.expires_at > utcnow(),
    ).first()

    if not session:
        return None

    return SessionContext(user_id=session.user_id, role=session.role, session=session)


def destroy_session(token: str | None, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if a live session was revoked, False if there was none.
    Storage errors propagate to the caller.
    """
    if not is_well_formed(token):
        return False

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason

    db.session.commit()
    return True


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than the cutoff.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted


# =============================================================================
# COOKIE TRANSPORT
# =============================================================================

def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "bank_session")


def get_session_token() -> str | None:
    """Read the opaque session token from the request cookie."""
    return request.cookies.get(_cookie_name())


def set_session_cookie(response, token: str):
    response.set_cookie(
        _cookie_name(),
        token,
        max_age=int(session_lifetime().total_seconds()),
        path="/",
        secure=bool(current_app.config.get("AUTH_COOKIE_SECURE", True)),
        httponly=True,
        samesite="Strict",
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(
        _cookie_name(),
        path="/",
        secure=bool(current_app.config.get("AUTH_COOKIE_SECURE", True)),
        httponly=True,
        samesite="Strict",
    )
    return response
