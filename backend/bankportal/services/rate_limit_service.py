# Overview: Service-layer operations for request rate limiting; shared per-client counters in the database.

"""
Request Rate Limiting Service

WHY: Throttle credential stuffing, registration spam and payment flooding.
Every mutating API request draws from one shared budget per client.

DESIGN:
- Fixed windows aligned to the epoch (RATELIMIT_WINDOW_SECONDS, default 15 min)
- RATELIMIT_MAX_REQUESTS per client per window (default 120)
- Counters live in rate_limit_windows so every worker process shares them
- Increment is a single atomic UPDATE; the first request of a window
  inserts the row and falls back to UPDATE if another request beat it
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import RateLimitWindow
from .concurrency import run_with_retry
from bankportal.time_utils import utcnow


DEFAULT_MAX_REQUESTS = 120
DEFAULT_WINDOW_SECONDS = 15 * 60

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }


def window_start_for(now: datetime, window_seconds: int) -> datetime:
    elapsed = int((now - _EPOCH).total_seconds())
    return _EPOCH + timedelta(seconds=elapsed - (elapsed % window_seconds))


def _increment(client_key: str, window_start: datetime) -> int:
    def _bump():
        return db.session.execute(
            update(RateLimitWindow)
            .where(
                RateLimitWindow.client_key == client_key,
                RateLimitWindow.window_start == window_start,
            )
            .values(request_count=RateLimitWindow.request_count + 1)
            .execution_options(synchronize_session=False)
        ).rowcount

    def _op():
        if _bump() == 0:
            db.session.add(RateLimitWindow(
                client_key=client_key,
                window_start=window_start,
                request_count=1,
            ))
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                _bump()
                db.session.commit()
        else:
            db.session.commit()

        return db.session.query(RateLimitWindow.request_count).filter_by(
            client_key=client_key,
            window_start=window_start,
        ).scalar() or 0

    return run_with_retry(_op)


def hit(client_key: str) -> RateLimitResult:
    """
    Count one request for client_key and report whether it is allowed.

    The request that pushes the counter past the limit is rejected; so is
    every later one until the window rolls over.
    """
    limit = int(current_app.config.get("RATELIMIT_MAX_REQUESTS", DEFAULT_MAX_REQUESTS))
    window_seconds = int(current_app.config.get("RATELIMIT_WINDOW_SECONDS", DEFAULT_WINDOW_SECONDS))

    now = utcnow()
    window_start = window_start_for(now, window_seconds)
    count = _increment(client_key or "unknown", window_start)

    reset_at = window_start + timedelta(seconds=window_seconds)
    reset_seconds = max(1, int((reset_at - now).total_seconds()))

    return RateLimitResult(
        allowed=count <= limit,
        limit=limit,
        remaining=max(0, limit - count),
        reset_seconds=reset_seconds,
    )


def purge_windows(older_than: timedelta = timedelta(days=1)) -> int:
    """Delete counters for windows that started before now - older_than."""
    cutoff = utcnow() - older_than
    deleted = db.session.query(RateLimitWindow).filter(
        RateLimitWindow.window_start < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
