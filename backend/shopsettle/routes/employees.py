# Overview: Flask API routes for employee management.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import SettlementError
from ..models.staff import MANAGEMENT_ROLES
from ..services import staff_service
from ..decorators import require_auth, require_role


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("/")
@require_auth
def list_employees_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    employees = staff_service.list_employees(g.org_id, active_only=not include_inactive)
    return jsonify({"employees": [e.to_dict() for e in employees]}), 200


@employees_bp.post("/")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def create_employee_route():
    """
    Create an employee.

    The role may be any spelling of a canonical role or a tenant alias;
    it is stored in canonical form.
    """
    try:
        data = request.get_json(silent=True) or {}
        employee = staff_service.create_employee(
            g.org_id,
            username=data.get("username"),
            role=data.get("role"),
            full_name=data.get("full_name"),
        )
        return jsonify({"employee": employee.to_dict()}), 201

    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return jsonify({"error": "Internal server error"}), 500
