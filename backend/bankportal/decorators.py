# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import jsonify, g, current_app

from .services import auth_service, session_service, security_service


def require_role(*allowed_roles: str):
    """
    Require an authenticated session, optionally restricted to roles.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The resolved SessionContext

    Returns:
    - 401 if there is no valid session, or its user no longer exists
    - 403 if allowed_roles is non-empty and the session role is not in it

    Usage:
        @payments_bp.get("")
        @require_role("staff")
        def list_payments_route(): ...

        @auth_bp.get("/me")
        @require_role()           # any authenticated role
        def me_route(): ...
    """
    allowed = frozenset(allowed_roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            context = session_service.resolve_session(session_service.get_session_token())
            if not context:
                return jsonify({"error": "Unauthorized"}), 401

            if allowed and context.role not in allowed:
                current_app.logger.warning(
                    "Role %s denied for user %s (requires %s)",
                    context.role, context.user_id, ",".join(sorted(allowed)),
                )
                security_service.log_security_event(
                    user_id=context.user_id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    reason=f"Role {context.role} not in {', '.join(sorted(allowed))}",
                )
                return jsonify({"error": "Forbidden"}), 403

            user = auth_service.get_user(context.user_id)
            if not user:
                return jsonify({"error": "Unauthorized"}), 401

            g.current_user = user
            g.session_context = context

            return f(*args, **kwargs)

        return decorated_function
    return decorator
