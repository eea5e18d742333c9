from __future__ import annotations

import enum

from ..extensions import db
from shopsettle.time_utils import to_utc_z


class EmployeeRole(str, enum.Enum):
    """Canonical employee roles. Commission rates are keyed by these values."""
    OWNER = "owner"
    MANAGER = "manager"
    SHOP_FOREMAN = "shop_foreman"
    MASTER_TECH = "master_tech"
    MECHANIC = "mechanic"
    APPRENTICE = "apprentice"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


MANAGEMENT_ROLES = frozenset({EmployeeRole.OWNER.value, EmployeeRole.MANAGER.value})


class Employee(db.Model):
    """
    Staff member that rings up sales and earns commission.

    MULTI-TENANT: Usernames are unique within an organization, not globally.
    `role` always holds a canonical EmployeeRole value; brand aliases are
    resolved before the row is written.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("org_id", "username", name="uq_employees_org_username"),
        db.Index("ix_employees_org_id", "org_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)

    username = db.Column(db.String(64), nullable=False)
    full_name = db.Column(db.String(128), nullable=True)
    role = db.Column(db.String(32), nullable=False, default=EmployeeRole.MECHANIC.value)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("employees", lazy=True))

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "username": self.username,
            "full_name": self.full_name,
            "display_name": self.display_name,
            "role": self.role,
            "role_label": EmployeeRole(self.role).label,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
