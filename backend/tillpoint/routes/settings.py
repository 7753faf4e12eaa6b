# Overview: Flask API routes for store settings.

from flask import Blueprint, request, jsonify, g

from ..services import settings_service
from ..errors import PosError
from ..decorators import require_auth, require_admin

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    """Settings are read by every register (receipt text, tax rate)."""
    return jsonify(settings_service.get_settings()), 200


@settings_bp.put("")
@require_auth
@require_admin
def update_settings_route():
    try:
        settings = settings_service.update_settings(
            request.get_json(silent=True) or {},
            actor_id=g.current_user.id,
        )
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify(settings), 200
