from __future__ import annotations

from ..extensions import db
from shopsettle.time_utils import to_utc_z


REDEEM_THRESHOLD = 9
MAX_STAMPS = 9


class LoyaltyAccount(db.Model):
    """
    Stamp card for one customer identifier (CID) within a tenant.

    Created lazily on the first loyalty action; never deleted.
    stamp_count is capped at MAX_STAMPS; total_stamps and total_redemptions
    are lifetime counters and only ever increase.
    """
    __tablename__ = "loyalty_accounts"
    __table_args__ = (
        db.UniqueConstraint("org_id", "cid", name="uq_loyalty_accounts_org_cid"),
        db.CheckConstraint("stamp_count >= 0 AND stamp_count <= 9", name="ck_loyalty_accounts_stamp_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    cid = db.Column(db.String(32), nullable=False)

    stamp_count = db.Column(db.Integer, nullable=False, default=0)
    total_stamps = db.Column(db.Integer, nullable=False, default=0)
    total_redemptions = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def ready(self) -> bool:
        return self.stamp_count >= REDEEM_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "cid": self.cid,
            "stamp_count": self.stamp_count,
            "total_stamps": self.total_stamps,
            "total_redemptions": self.total_redemptions,
            "ready": self.ready,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
