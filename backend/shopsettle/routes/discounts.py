# Overview: Flask API routes for percentage discounts offered at the register.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import SettlementError
from ..models.staff import MANAGEMENT_ROLES
from ..services import discount_service
from ..decorators import require_auth, require_role


discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


@discounts_bp.get("/")
@require_auth
def list_discounts_route():
    return jsonify({"discounts": discount_service.list_discounts(g.org_id)}), 200


@discounts_bp.post("/")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def create_discount_route():
    """Body: name, percentage (fraction 0..1)."""
    try:
        data = request.get_json(silent=True) or {}
        discount = discount_service.create_discount(g.org_id, data)
        return jsonify({"discount": discount}), 201

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.delete("/<int:discount_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def delete_discount_route(discount_id: int):
    try:
        discount_service.delete_discount(g.org_id, discount_id)
        return jsonify({"deleted": discount_id}), 200

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
