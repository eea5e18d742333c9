# Overview: Flask API routes for per-role commission rates.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import SettlementError
from ..models.staff import MANAGEMENT_ROLES
from ..services import commission_rates
from ..decorators import require_auth, require_role


commissions_bp = Blueprint("commissions", __name__, url_prefix="/api/commission-rates")


@commissions_bp.get("/")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def list_rates_route():
    rates = commission_rates.list_rates(g.org_id)
    return jsonify({"rates": [r.to_dict() for r in rates]}), 200


@commissions_bp.post("/")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def upsert_rate_route():
    """
    Set the commission rate for one role.

    Body: role (canonical name or tenant alias), rate (fraction 0..1).
    """
    try:
        data = request.get_json(silent=True) or {}
        rate = commission_rates.upsert_rate(g.org_id, data.get("role"), data.get("rate"))
        return jsonify({"rate": rate.to_dict()}), 200

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to save commission rate")
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.delete("/<int:rate_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def delete_rate_route(rate_id: int):
    try:
        commission_rates.delete_rate(g.org_id, rate_id)
        return jsonify({"deleted": rate_id}), 200

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
