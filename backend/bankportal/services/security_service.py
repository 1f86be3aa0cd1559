# Overview: Service-layer operations for the security event audit log.

"""
Security Event Logging

WHY: Every login attempt, logout, denied authorization and rate-limit hit
is recorded with client context so abuse can be reconstructed later.
"""

from flask import request, has_request_context

from ..extensions import db
from ..models import SecurityEvent
from bankportal.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    reason: str | None = None,
    resource: str | None = None,
    action: str | None = None,
) -> SecurityEvent:
    """
    Append a security event.

    resource/action default to the current request path and method, and
    client IP/user agent are captured from the request when one is active.

    event_type values:
    - LOGIN_SUCCESS
    - LOGIN_FAILED
    - LOGOUT
    - PERMISSION_DENIED
    - RATE_LIMITED
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        resource = resource or request.path
        action = action or request.method
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()
    return event


def recent_events(event_type: str | None = None, limit: int = 100) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    return query.order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc()).limit(limit).all()
