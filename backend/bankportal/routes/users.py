# Overview: Flask API routes for user listing; staff only.

from flask import Blueprint, jsonify, current_app

from ..models import ROLE_STAFF
from ..services import auth_service
from ..decorators import require_role


users_bp = Blueprint("users", __name__, url_prefix="/api/users")

LIST_LIMIT = 100


@users_bp.get("")
@require_role(ROLE_STAFF)
def list_users_route():
    """List up to 100 user records. Password hashes are never included."""
    try:
        users = auth_service.list_users(limit=LIST_LIMIT)
        return jsonify([u.to_dict() for u in users]), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "DB error"}), 500
