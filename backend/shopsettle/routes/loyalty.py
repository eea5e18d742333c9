# Overview: Flask API routes for customer loyalty cards.

from flask import Blueprint, request, jsonify, g

from ..errors import SettlementError
from ..models.staff import MANAGEMENT_ROLES
from ..services import loyalty_service
from ..decorators import require_auth, require_role


loyalty_bp = Blueprint("loyalty", __name__, url_prefix="/api/loyalty")


@loyalty_bp.get("/status")
@require_auth
def loyalty_status_route():
    """Stamp count for one customer; unknown customers report 0 stamps."""
    try:
        status = loyalty_service.loyalty_status(g.org_id, request.args.get("cid"))
        return jsonify(status), 200
    except SettlementError as e:
        return jsonify(e.to_dict()), e.status_code


@loyalty_bp.get("/accounts")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def list_accounts_route():
    accounts = loyalty_service.list_accounts(g.org_id)
    return jsonify({"accounts": [a.to_dict() for a in accounts]}), 200
