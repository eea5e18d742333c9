# Overview: Request identity and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import db
from .models import Employee, Organization


ORG_HEADER = "X-Org-Id"
EMPLOYEE_HEADER = "X-Employee-Id"


def _header_id(name: str) -> int | None:
    raw = (request.headers.get(name) or "").strip()
    if not raw.isdigit():
        return None
    return int(raw)


def _is_authenticated() -> bool:
    return hasattr(g, 'current_employee') and hasattr(g, 'org_id')


def require_auth(f):
    """
    Establish tenant and employee context from the gateway headers.

    Authentication happens upstream; the trusted gateway forwards the
    signed-in employee as X-Org-Id / X-Employee-Id.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.org_id: The organization ID (tenant context) - REQUIRED
    - g.current_employee: The acting Employee

    Returns 401 if:
    - Either header is missing or not an integer
    - Organization missing or deactivated
    - Employee missing, deactivated, or from another organization
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        org_id = _header_id(ORG_HEADER)
        employee_id = _header_id(EMPLOYEE_HEADER)

        if org_id is None or employee_id is None:
            return jsonify({"error": "Authentication required"}), 401

        org = db.session.get(Organization, org_id)
        if not org or not org.is_active:
            return jsonify({"error": "Invalid tenant context"}), 401

        employee = (
            db.session.query(Employee)
            .filter_by(id=employee_id, org_id=org_id, is_active=True)
            .first()
        )
        if not employee:
            current_app.logger.warning(
                "Rejected request for employee %s in organization %s on %s",
                employee_id,
                org_id,
                request.path,
            )
            return jsonify({"error": "Invalid employee context"}), 401

        g.org_id = org.id
        g.current_employee = employee

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Require the acting employee to hold one of `roles` (EmployeeRole values)."""
    allowed = {getattr(role, "value", role) for role in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_employee.role not in allowed:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(allowed),
                    "message": f"Requires one of: {', '.join(sorted(allowed))}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
