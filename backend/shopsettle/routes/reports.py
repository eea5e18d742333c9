from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_role
from ..errors import SettlementError
from ..models.staff import MANAGEMENT_ROLES
from ..services import settlement_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")
payouts_bp = Blueprint("payouts", __name__, url_prefix="/api/payouts")


@reports_bp.get("/settlement")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def settlement_report():
    try:
        report = settlement_service.settlement_report(g.org_id)
        return jsonify(report), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/weekly")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def weekly_report():
    raw_weeks = request.args.get("weeks")
    weeks = None
    if raw_weeks is not None:
        if not raw_weeks.strip().isdigit():
            return jsonify({"error": "weeks must be a positive integer"}), 400
        weeks = int(raw_weeks)

    try:
        report = settlement_service.weekly_report(g.org_id, weeks=weeks)
        return jsonify(report), 200
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@payouts_bp.post("/")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def create_payout():
    """Body: employee_id, optional bonus_cents, salary_cents."""
    data = request.get_json(silent=True) or {}
    employee_id = data.get("employee_id")
    if not isinstance(employee_id, int) or isinstance(employee_id, bool):
        return jsonify({"error": "employee_id is required"}), 400

    try:
        payout = settlement_service.pay_employee(
            g.org_id,
            employee_id,
            g.current_employee.id,
            bonus_cents=data.get("bonus_cents", 0),
            salary_cents=data.get("salary_cents", 0),
        )
        return jsonify({"payout": payout.to_dict()}), 201
    except SettlementError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to record payout")
        return jsonify({"error": "Internal server error"}), 500
