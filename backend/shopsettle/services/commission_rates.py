# Overview: Role-based commission rate table and the operations that manage it.

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Mapping

from ..extensions import db
from ..errors import ReferenceNotFoundError, ValidationError
from ..models import CommissionRate
from ..money import MAX_BPS, bps_fraction, fraction_to_bps


@dataclass(frozen=True)
class RoleRateTable:
    """
    Immutable role -> rate mapping for one tenant.

    Rates are held in basis points. A role with no configured rate earns
    nothing; that is a normal state, not an error.
    """
    rates_bps: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "rates_bps", MappingProxyType(dict(self.rates_bps)))

    @classmethod
    def from_rows(cls, rows) -> "RoleRateTable":
        return cls({row.role: row.rate_bps for row in rows})

    def rate_bps_for(self, role: str | None) -> int:
        if not role:
            return 0
        return self.rates_bps.get(role, 0)

    def rate_for(self, role: str | None) -> Decimal:
        return bps_fraction(self.rate_bps_for(role))

    def to_dict(self) -> dict:
        return {role: bps / MAX_BPS for role, bps in sorted(self.rates_bps.items())}


def load_role_rate_table(org_id: int) -> RoleRateTable:
    rows = db.session.query(CommissionRate).filter_by(org_id=org_id).all()
    return RoleRateTable.from_rows(rows)


def parse_rate(value) -> int:
    """Validate a 0..1 fraction from user input and return basis points."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Rate is required")
    if isinstance(value, bool):
        raise ValidationError("Rate must be a number")
    try:
        fraction = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Rate must be a number")
    if not fraction.is_finite():
        raise ValidationError("Rate must be a number")
    if fraction < 0:
        raise ValidationError("Minimum 0")
    if fraction > 1:
        raise ValidationError("Maximum 1.0")
    return fraction_to_bps(fraction)


def list_rates(org_id: int) -> list[CommissionRate]:
    return (
        db.session.query(CommissionRate)
        .filter_by(org_id=org_id)
        .order_by(CommissionRate.role.asc())
        .all()
    )


def upsert_rate(org_id: int, role: str, rate) -> CommissionRate:
    """Set the single active rate for a role, replacing any previous one."""
    from .tenant_service import load_tenant_config

    config = load_tenant_config(org_id)
    canonical_role = config.resolve_role(role)
    rate_bps = parse_rate(rate)

    row = db.session.query(CommissionRate).filter_by(org_id=org_id, role=canonical_role).first()
    if row:
        row.rate_bps = rate_bps
    else:
        row = CommissionRate(org_id=org_id, role=canonical_role, rate_bps=rate_bps)
        db.session.add(row)
    db.session.commit()
    return row


def delete_rate(org_id: int, rate_id: int) -> None:
    row = db.session.query(CommissionRate).filter_by(id=rate_id, org_id=org_id).first()
    if not row:
        raise ReferenceNotFoundError("Commission rate not found", details={"rate_id": rate_id})
    db.session.delete(row)
    db.session.commit()
