# Overview: Service-layer operations for employees and role normalization.

from __future__ import annotations

from typing import Mapping

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ReferenceNotFoundError, ValidationError
from ..models import Employee, EmployeeRole


VALID_ROLES = frozenset(role.value for role in EmployeeRole)


def _canonical_key(raw: str) -> str:
    return "_".join(raw.strip().lower().replace("-", " ").split())


def normalize_role(raw: str | None, aliases: Mapping[str, str] | None = None) -> str:
    """
    Resolve a role string to a canonical EmployeeRole value.

    "Shop Foreman", "shop-foreman" and "shop_foreman" are the same role.
    Tenant aliases (e.g. "jr_mech" -> "apprentice") are applied after the
    spelling is normalized.
    """
    if raw is None or not str(raw).strip():
        raise ValidationError("Role is required")

    key = _canonical_key(str(raw))
    if aliases:
        key = aliases.get(key, key)

    if key not in VALID_ROLES:
        raise ValidationError(
            f"Unknown role '{raw}'",
            details={"allowed_roles": sorted(VALID_ROLES)},
        )
    return key


def get_employee_in_org(employee_id: int, org_id: int) -> Employee:
    """
    Fetch an employee scoped to a tenant.

    A foreign employee id is reported exactly like a missing one.
    """
    employee = db.session.query(Employee).filter_by(id=employee_id, org_id=org_id).first()
    if not employee:
        raise ReferenceNotFoundError("Employee not found", details={"employee_id": employee_id})
    return employee


def list_employees(org_id: int, active_only: bool = True) -> list[Employee]:
    q = db.session.query(Employee).filter_by(org_id=org_id)
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(Employee.username.asc(), Employee.id.asc()).all()


def create_employee(
    org_id: int,
    *,
    username: str,
    role: str,
    full_name: str | None = None,
) -> Employee:
    from .tenant_service import load_tenant_config

    config = load_tenant_config(org_id)

    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required")
    if len(username) > 64:
        raise ValidationError("Username must be 64 characters or fewer")

    employee = Employee(
        org_id=org_id,
        username=username,
        full_name=(full_name or "").strip() or None,
        role=config.resolve_role(role),
        is_active=True,
    )
    db.session.add(employee)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Username already exists", details={"username": username})
    return employee
