from __future__ import annotations

from ..extensions import db
from shopsettle.time_utils import to_utc_z


class CatalogItem(db.Model):
    """
    Sellable service or part.

    profit_cents is the margin per unit used when the tenant pays commission
    on profit. commission_flat_override_cents, when set, replaces the role
    rate with a fixed per-unit commission.
    """
    __tablename__ = "catalog_items"
    __table_args__ = (
        db.Index("ix_catalog_items_org_active", "org_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False, default=0)
    commission_flat_override_cents = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "profit_cents": self.profit_cents,
            "commission_flat_override_cents": self.commission_flat_override_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Discount(db.Model):
    """Named cart-level percentage discount (basis points, 0..10000)."""
    __tablename__ = "discounts"
    __table_args__ = (
        db.CheckConstraint("percentage_bps >= 0 AND percentage_bps <= 10000", name="ck_discounts_percentage_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    percentage_bps = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "percentage_bps": self.percentage_bps,
            "percentage": self.percentage_bps / 10000,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
