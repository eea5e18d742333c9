from __future__ import annotations

from ..extensions import db
from shopsettle.time_utils import to_utc_z


INVOICE_NUMBERING_SHARED = "shared"
INVOICE_NUMBERING_SEPARATE = "separate"
INVOICE_NUMBERING_MODES = {INVOICE_NUMBERING_SHARED, INVOICE_NUMBERING_SEPARATE}

MAX_REPORT_WEEKS = 52


class Organization(db.Model):
    """
    Multi-tenant root: every tenant (shop brand) is an Organization.

    All employees, sales, discounts, loyalty accounts and commission rates
    belong to exactly one organization. No data may cross organization
    boundaries.

    The settlement columns are the tenant configuration. They are read once
    per request into an immutable TenantConfig (services/tenant_service.py)
    and never consulted directly by the engine.
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)  # Short code / brand slug

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # Settlement configuration
    use_profit_basis = db.Column(db.Boolean, nullable=False, default=False)
    currency_code = db.Column(db.String(3), nullable=False, default="USD")
    invoice_numbering = db.Column(db.String(16), nullable=False, default=INVOICE_NUMBERING_SEPARATE)
    loyalty_enabled = db.Column(db.Boolean, nullable=False, default=True)
    sales_webhook_url = db.Column(db.String(512), nullable=True)
    report_weeks = db.Column(db.Integer, nullable=False, default=6)
    # Brand-specific role labels, e.g. {"jr_mech": "apprentice"}
    role_aliases = db.Column(db.JSON, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "use_profit_basis": self.use_profit_basis,
            "currency_code": self.currency_code,
            "invoice_numbering": self.invoice_numbering,
            "loyalty_enabled": self.loyalty_enabled,
            "report_weeks": self.report_weeks,
            "role_aliases": dict(self.role_aliases or {}),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
