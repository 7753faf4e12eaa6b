# Overview: Flask API routes for login, sessions and user management.

# backend/tillpoint/routes/users.py
"""
Authentication & user API routes

- First-run admin registration (only while no admin exists)
- Login/logout with bearer session tokens
- Admin-only account creation and role changes
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..errors import PosError
from ..decorators import require_auth, require_admin


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/check-admin")
def check_admin_route():
    """Whether first-run admin registration is still needed."""
    return jsonify({"admin_exists": auth_service.check_admin_exists()}), 200


@users_bp.post("/register-admin")
def register_admin_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.register_admin(data.get("username"), data.get("password"))
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register admin")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Admin account created", "user": user.to_dict()}), 201


@users_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.authenticate(data.get("username"), data.get("password"))
        _, token = session_service.create_session(user)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"token": token, "user": user.to_dict()}), 200


@users_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token)
    return jsonify({"message": "Logged out"}), 200


@users_bp.get("/session")
@require_auth
def session_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    return jsonify({"items": auth_service.list_users()}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """Create a cashier (default) or admin account."""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            data.get("username"),
            data.get("password"),
            data.get("role") or "cashier",
            actor_id=g.current_user.id,
        )
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"user": user.to_dict()}), 201


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_admin
def update_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_role(user_id, data.get("role"), actor_id=g.current_user.id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"user": user.to_dict()}), 200
