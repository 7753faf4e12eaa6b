# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

"""
Reporting routes (admin only).

Date params are inclusive YYYY-MM-DD bounds in UTC.
"""

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..errors import PosError
from ..decorators import require_auth, require_admin

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_args() -> dict:
    return {"start": request.args.get("start"), "end": request.args.get("end")}


@reports_bp.get("/daily")
@require_auth
@require_admin
def daily_sales_route():
    try:
        return jsonify({"items": reporting_service.daily_sales(**_range_args())}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@reports_bp.get("/dashboard")
@require_auth
@require_admin
def dashboard_route():
    return jsonify(reporting_service.dashboard_summary()), 200


@reports_bp.get("/top-selling")
@require_auth
@require_admin
def top_selling_route():
    limit = request.args.get("limit", 10, type=int)
    try:
        return jsonify({"items": reporting_service.top_selling(limit=limit, **_range_args())}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@reports_bp.get("/cashiers")
@require_auth
@require_admin
def cashier_performance_route():
    try:
        return jsonify({"items": reporting_service.cashier_performance(**_range_args())}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
