# Overview: Flask API route for the admin activity log.

from flask import Blueprint, request, jsonify

from ..services import activity_service
from ..decorators import require_auth, require_admin

logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


@logs_bp.get("")
@require_auth
@require_admin
def list_logs_route():
    """
    Activity log, newest first.

    Query params: page (omit for all rows), limit (default 25), search
    """
    result = activity_service.list_actions(
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", 25, type=int),
        search=request.args.get("search", "").strip(),
    )
    return jsonify(result), 200
