from __future__ import annotations

from ..extensions import db
from shopsettle.time_utils import to_utc_z


class CommissionRate(db.Model):
    """One active commission rate per role per tenant (basis points)."""
    __tablename__ = "commission_rates"
    __table_args__ = (
        db.UniqueConstraint("org_id", "role", name="uq_commission_rates_org_role"),
        db.CheckConstraint("rate_bps >= 0 AND rate_bps <= 10000", name="ck_commission_rates_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False)
    rate_bps = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "role": self.role,
            "rate_bps": self.rate_bps,
            "rate": self.rate_bps / 10000,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Payout(db.Model):
    """
    Append-only record of paying an employee.

    Sales and commission totals are snapshots at payout time; bonus and
    salary are entered by the manager.
    """
    __tablename__ = "payouts"
    __table_args__ = (
        db.Index("ix_payouts_org_created", "org_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    paid_by_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    sales_total_cents = db.Column(db.Integer, nullable=False, default=0)
    commission_total_cents = db.Column(db.Integer, nullable=False, default=0)
    bonus_cents = db.Column(db.Integer, nullable=False, default=0)
    salary_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("payouts", lazy=True))

    @property
    def net_cents(self) -> int:
        return self.commission_total_cents + self.bonus_cents + self.salary_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "employee_id": self.employee_id,
            "paid_by_id": self.paid_by_id,
            "sales_total_cents": self.sales_total_cents,
            "commission_total_cents": self.commission_total_cents,
            "bonus_cents": self.bonus_cents,
            "salary_cents": self.salary_cents,
            "net_cents": self.net_cents,
            "created_at": to_utc_z(self.created_at),
        }
