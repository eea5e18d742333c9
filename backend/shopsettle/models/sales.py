from __future__ import annotations

from ..extensions import db
from shopsettle.time_utils import to_utc_z


LOYALTY_NONE = "none"
LOYALTY_STAMP = "stamp"
LOYALTY_DOUBLE = "double"
LOYALTY_REDEEM = "redeem"
LOYALTY_ACTIONS = (LOYALTY_NONE, LOYALTY_STAMP, LOYALTY_DOUBLE, LOYALTY_REDEEM)

SALE_STATUS_COMPLETED = "COMPLETED"


class Sale(db.Model):
    """
    Register order rung up by one employee.

    Totals are computed once by the transaction builder and never edited.
    The owner earns the full order total for reporting; there is no per-line
    employee split.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("org_id", "invoice_number", name="uq_sales_org_invoice"),
        db.Index("ix_sales_org_created", "org_id", "created_at"),
        db.Index("ix_sales_owner", "owner_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)

    invoice_number = db.Column(db.String(64), nullable=False)
    cid = db.Column(db.String(32), nullable=True, index=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    profit_total_cents = db.Column(db.Integer, nullable=False, default=0)

    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)
    loyalty_action = db.Column(db.String(16), nullable=False, default=LOYALTY_NONE)
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    owner = db.relationship("Employee", backref=db.backref("sales", lazy=True))
    discount = db.relationship("Discount")

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "owner_id": self.owner_id,
            "invoice_number": self.invoice_number,
            "cid": self.cid,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "profit_total_cents": self.profit_total_cents,
            "discount_id": self.discount_id,
            "loyalty_action": self.loyalty_action,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Line item owned by exactly one sale; written together with it."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    catalog_item_id = db.Column(db.Integer, db.ForeignKey("catalog_items.id"), nullable=True)

    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    unit_profit_cents = db.Column(db.Integer, nullable=True)
    profit_total_cents = db.Column(db.Integer, nullable=False, default=0)
    # Per-unit commission that bypasses the role rate
    commission_flat_override_cents = db.Column(db.Integer, nullable=True)

    sale = db.relationship(
        "Sale",
        backref=db.backref("lines", lazy=True, order_by="SaleLine.id", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "catalog_item_id": self.catalog_item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "unit_profit_cents": self.unit_profit_cents,
            "profit_total_cents": self.profit_total_cents,
            "commission_flat_override_cents": self.commission_flat_override_cents,
        }


class EmployeeSale(db.Model):
    """
    Manually recorded sale credited to an employee, with no line items.

    commission_base_cents / commission_total_cents are the settlement
    snapshot taken when the entry was recorded. Rows imported from the legacy
    system may instead carry those values as tokens inside `notes`
    (see services/legacy_notes.py).
    """
    __tablename__ = "employee_sales"
    __table_args__ = (
        db.UniqueConstraint("org_id", "invoice_number", name="uq_employee_sales_org_invoice"),
        db.Index("ix_employee_sales_org_created", "org_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    recorded_by_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    profit_total_cents = db.Column(db.Integer, nullable=True)
    commission_base_cents = db.Column(db.Integer, nullable=True)
    commission_total_cents = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("manual_sales", lazy=True))
    recorded_by = db.relationship("Employee", foreign_keys=[recorded_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "employee_id": self.employee_id,
            "recorded_by_id": self.recorded_by_id,
            "invoice_number": self.invoice_number,
            "amount_cents": self.amount_cents,
            "profit_total_cents": self.profit_total_cents,
            "commission_base_cents": self.commission_base_cents,
            "commission_total_cents": self.commission_total_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class InvoiceClaim(db.Model):
    """
    Storage-level guard for invoice number uniqueness.

    One row per issued invoice number, written in the same transaction as the
    sale or employee sale. scope is "shared" when the tenant uses a single
    numbering space, otherwise the record type ("sale" / "employee_sale").
    The unique constraint rejects concurrent duplicates that slipped past the
    application-level check.
    """
    __tablename__ = "invoice_claims"
    __table_args__ = (
        db.UniqueConstraint("org_id", "scope", "invoice_number", name="uq_invoice_claims_scope_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    scope = db.Column(db.String(16), nullable=False)
    invoice_number = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
