"""
Tenant configuration provider.

WHY: Settlement behaviour differs per shop brand (commission basis, currency,
invoice numbering, loyalty on/off, role labels). The engine never reads those
flags from the Organization row directly; it receives one immutable
TenantConfig built and validated here.

USAGE:
    from shopsettle.services.tenant_service import load_tenant_config

    config = load_tenant_config(g.org_id)
    builder = TransactionBuilder(config)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from flask import current_app

from ..extensions import db
from ..errors import ConfigurationError, ValidationError
from ..models import Organization
from ..models.tenancy import (
    INVOICE_NUMBERING_MODES,
    INVOICE_NUMBERING_SHARED,
    MAX_REPORT_WEEKS,
)
from .commission_rates import RoleRateTable, load_role_rate_table
from .staff_service import VALID_ROLES, _canonical_key, normalize_role


class TenantAccessError(Exception):
    """Raised when no tenant context is available or the tenant is inactive."""
    pass


@dataclass(frozen=True)
class TenantConfig:
    org_id: int
    name: str
    use_profit_basis: bool = False
    currency_code: str = "USD"
    invoice_numbering: str = "separate"
    loyalty_enabled: bool = True
    sales_webhook_url: str | None = None
    report_weeks: int = 6
    role_aliases: Mapping[str, str] = field(default_factory=dict)
    role_rates: RoleRateTable = field(default_factory=RoleRateTable)

    def __post_init__(self):
        object.__setattr__(self, "role_aliases", MappingProxyType(dict(self.role_aliases)))

    @property
    def shared_invoice_numbers(self) -> bool:
        return self.invoice_numbering == INVOICE_NUMBERING_SHARED

    def invoice_scope(self, record_type: str) -> str:
        """Claim scope for an invoice number issued by `record_type`."""
        return INVOICE_NUMBERING_SHARED if self.shared_invoice_numbers else record_type

    def resolve_role(self, raw: str | None) -> str:
        return normalize_role(raw, self.role_aliases)


def _validate_aliases(raw_aliases) -> dict[str, str]:
    if raw_aliases is None:
        return {}
    if not isinstance(raw_aliases, dict):
        raise ConfigurationError("role_aliases must be a mapping of alias to role")

    aliases = {}
    for alias, target in raw_aliases.items():
        key = _canonical_key(str(alias))
        canonical = _canonical_key(str(target))
        if canonical not in VALID_ROLES:
            raise ConfigurationError(
                f"Role alias '{alias}' points at unknown role '{target}'",
                details={"allowed_roles": sorted(VALID_ROLES)},
            )
        aliases[key] = canonical
    return aliases


def build_tenant_config(org: Organization, role_rates: RoleRateTable | None = None) -> TenantConfig:
    """Validate an Organization's settlement columns into a TenantConfig."""
    if org.invoice_numbering not in INVOICE_NUMBERING_MODES:
        raise ConfigurationError(
            f"Unknown invoice numbering mode '{org.invoice_numbering}'",
            details={"allowed": sorted(INVOICE_NUMBERING_MODES)},
        )

    currency = (org.currency_code or "").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ConfigurationError(f"Invalid currency code '{org.currency_code}'")

    weeks = org.report_weeks if org.report_weeks is not None else current_app.config.get("DEFAULT_REPORT_WEEKS", 6)
    if weeks < 1 or weeks > MAX_REPORT_WEEKS:
        raise ConfigurationError(
            f"report_weeks must be between 1 and {MAX_REPORT_WEEKS}",
            details={"report_weeks": weeks},
        )

    aliases = _validate_aliases(org.role_aliases)

    rates = role_rates if role_rates is not None else load_role_rate_table(org.id)
    unknown = sorted(role for role in rates.rates_bps if role not in VALID_ROLES)
    if unknown:
        raise ConfigurationError(
            "Commission rates reference unknown roles",
            details={"roles": unknown},
        )

    return TenantConfig(
        org_id=org.id,
        name=org.name,
        use_profit_basis=bool(org.use_profit_basis),
        currency_code=currency,
        invoice_numbering=org.invoice_numbering,
        loyalty_enabled=bool(org.loyalty_enabled),
        sales_webhook_url=(org.sales_webhook_url or "").strip() or None,
        report_weeks=weeks,
        role_aliases=aliases,
        role_rates=rates,
    )


def load_tenant_config(org_id: int) -> TenantConfig:
    org = db.session.get(Organization, org_id)
    if not org:
        raise TenantAccessError(f"Organization {org_id} not found")
    if not org.is_active:
        raise TenantAccessError(f"Organization {org_id} is inactive")
    return build_tenant_config(org)


def update_tenant_settings(org_id: int, data: dict) -> Organization:
    """
    Apply settlement configuration changes to an organization.

    The resulting configuration is validated before commit, so an invalid
    alias table or numbering mode never reaches the database.
    """
    org = db.session.get(Organization, org_id)
    if not org:
        raise TenantAccessError(f"Organization {org_id} not found")

    for key in ('use_profit_basis', 'currency_code', 'invoice_numbering', 'loyalty_enabled',
                'sales_webhook_url', 'report_weeks', 'role_aliases'):
        if key in data:
            setattr(org, key, data[key])

    try:
        build_tenant_config(org)
    except ConfigurationError as exc:
        db.session.rollback()
        raise ValidationError(exc.message, details=exc.details)

    db.session.commit()
    return org
