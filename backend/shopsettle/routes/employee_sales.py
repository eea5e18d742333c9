# Overview: Flask API routes for manually recorded employee sales.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import SettlementError
from ..models.staff import MANAGEMENT_ROLES
from ..services import employee_sales_service
from ..decorators import require_auth, require_role


employee_sales_bp = Blueprint("employee_sales", __name__, url_prefix="/api/employee-sales")


@employee_sales_bp.post("/")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def record_employee_sale_route():
    """
    Record a sale credited to an employee outside the register.

    Body: employee_id, invoice_number, amount_cents, optional subtotal_cents,
    profit_cents, notes.
    """
    try:
        data = request.get_json(silent=True) or {}
        entry = employee_sales_service.record_employee_sale(g.org_id, g.current_employee.id, data)
        return jsonify({"employee_sale": entry.to_dict()}), 201

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record employee sale")
        return jsonify({"error": "Internal server error"}), 500


@employee_sales_bp.get("/")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def list_employee_sales_route():
    employee_id = request.args.get("employee_id", type=int)
    limit = min(request.args.get("limit", 50, type=int) or 50, 200)

    entries = employee_sales_service.list_employee_sales(g.org_id, employee_id=employee_id, limit=limit)
    return jsonify({"employee_sales": [e.to_dict() for e in entries]}), 200
