# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/bankportal/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Field format and password strength validation on registration
- Customer login needs username + account number + password;
  staff login needs username + password
- Identical 401 for unknown user and wrong password
- Session token delivered only as an HttpOnly, Secure, SameSite=Strict cookie
- Request bodies stripped of query-operator keys before use
"""

from flask import Blueprint, request, jsonify, current_app, g
from werkzeug.exceptions import HTTPException

from ..models import ROLE_CUSTOMER, ROLE_STAFF
from ..services import auth_service
from ..services import session_service
from ..services import security_service
from ..services.auth_service import DuplicateUserError, InvalidCredentialsError
from ..validation import ValidationError, sanitize_payload
from ..decorators import require_role


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _register(data: dict, role: str):
    return auth_service.register_user(
        username=data.get("username"),
        full_name=data.get("fullName"),
        id_number=data.get("idNumber"),
        account_number=data.get("accountNumber"),
        password=data.get("password"),
        role=role,
    )


@auth_bp.post("/register")
def register_route():
    """
    Self-registration for customers.

    Request body:
    {
        "username": "jane_doe",
        "fullName": "Jane Doe",
        "idNumber": "9001015009087",
        "accountNumber": "1234567890",
        "password": "Secret123"
    }

    Role is always "customer"; any role in the body is ignored.

    Returns:
        201: User registered
        400: Invalid input or duplicate username/account/ID
        500: Server error
    """
    try:
        data = sanitize_payload(request.get_json(silent=True))
        user = _register(data, ROLE_CUSTOMER)
        current_app.logger.info("Registered customer %s", user.id)
        return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201

    except (ValidationError, DuplicateUserError) as e:
        return jsonify({"error": str(e)}), 400
    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Registration failed"}), 500


@auth_bp.post("/register-staff")
def register_staff_route():
    """
    Staff registration.

    Same body as /register plus "role": "staff", which must be present.

    Disabled (403) when ALLOW_STAFF_SELF_REGISTRATION is false; staff are
    then created with `flask users create-staff`.
    """
    if not current_app.config.get("ALLOW_STAFF_SELF_REGISTRATION", True):
        return jsonify({
            "error": "Staff self-registration is disabled. Contact an administrator to create an account."
        }), 403

    try:
        data = sanitize_payload(request.get_json(silent=True))

        if data.get("role") != ROLE_STAFF:
            return jsonify({"error": "Invalid role for staff registration"}), 400

        user = _register(data, ROLE_STAFF)
        current_app.logger.info("Registered staff user %s", user.id)
        return jsonify({"message": "Staff user registered successfully", "user": user.to_dict()}), 201

    except (ValidationError, DuplicateUserError) as e:
        return jsonify({"error": str(e)}), 400
    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to register staff user")
        return jsonify({"error": "Registration failed"}), 500


def _start_session(user, identifier: str):
    """Issue a fresh session cookie, revoking any session the client held."""
    old_token = session_service.get_session_token()
    if old_token:
        session_service.destroy_session(old_token, reason="Replaced by new login")

    _, token = session_service.create_session(
        user_id=user.id,
        role=user.role,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    security_service.log_security_event(
        user_id=user.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        reason=identifier,
    )

    response = jsonify({"message": "Login successful", "user": user.to_dict()})
    return session_service.set_session_cookie(response, token)


def _login_failed(identifier):
    security_service.log_security_event(
        user_id=None,
        event_type="LOGIN_FAILED",
        success=False,
        reason=f"Invalid credentials for {identifier!r}"[:255],
    )
    return jsonify({"error": "Invalid credentials"}), 401


@auth_bp.post("/customer-login")
def customer_login_route():
    """
    Authenticate a customer and set the session cookie.

    Request body:
    {
        "username": "jane_doe",
        "accountNumber": "1234567890",
        "password": "Secret123"
    }

    Returns:
        200: Login successful, cookie set
        400: Missing fields
        401: Invalid credentials
    """
    try:
        data = sanitize_payload(request.get_json(silent=True))
        username = data.get("username")
        account_number = data.get("accountNumber")
        password = data.get("password")

        if not all([username, account_number, password]):
            return jsonify({"error": "username, accountNumber and password required"}), 400

        try:
            user = auth_service.authenticate_customer(username, account_number, password)
        except InvalidCredentialsError:
            return _login_failed(username)

        return _start_session(user, username), 200

    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to login customer")
        return jsonify({"error": "Login failed"}), 500


@auth_bp.post("/staff-login")
def staff_login_route():
    """
    Authenticate a staff member and set the session cookie.

    Request body:
    {
        "username": "ops_lead",
        "password": "Secret123"
    }
    """
    try:
        data = sanitize_payload(request.get_json(silent=True))
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        try:
            user = auth_service.authenticate_staff(username, password)
        except InvalidCredentialsError:
            return _login_failed(username)

        return _start_session(user, username), 200

    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to login staff user")
        return jsonify({"error": "Login failed"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Destroy the caller's session and clear the cookie.

    Logging out without a live session still succeeds. Storage failures
    return 500 so the client knows the session may still be valid.
    """
    try:
        token = session_service.get_session_token()
        context = session_service.resolve_session(token)

        if session_service.destroy_session(token, reason="User logout") and context:
            security_service.log_security_event(
                user_id=context.user_id,
                event_type="LOGOUT",
                success=True,
            )

        response = jsonify({"message": "Logout successful"})
        return session_service.clear_session_cookie(response), 200

    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Logout failed"}), 500


@auth_bp.get("/me")
@require_role()
def me_route():
    """Return the authenticated user and session expiry."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "session": g.session_context.session.to_dict(),
    }), 200
