# Overview: Flask API routes for register sales; parses input and returns JSON responses.

"""Sales API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import SettlementError
from ..services import sales_service
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/complete")
@require_auth
def complete_sale_route():
    """
    Complete a register sale in one step.

    Body: invoice_number, items[], optional discount_id, cid, loyalty_action.
    The acting employee owns the sale and earns its commission.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.complete_sale(g.org_id, g.current_employee.id, data)
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 201

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to complete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.org_id, sale_id)
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 200

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/")
@require_auth
def list_sales_route():
    owner_id = request.args.get("owner_id", type=int)
    limit = min(request.args.get("limit", 50, type=int) or 50, 200)

    sales = sales_service.list_sales(g.org_id, owner_id=owner_id, limit=limit)
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200
