"""
Loyalty stamp ledger.

Each (tenant, CID) pair owns one LoyaltyAccount whose stamp_count moves
through the states 0..9:

    stamp   -> min(stamp_count + 1, 9), total_stamps += 1
    double  -> min(stamp_count + 2, 9), total_stamps += 2
    redeem  -> requires stamp_count >= 9; resets to 0, total_redemptions += 1
    none    -> untouched

Counters are changed with single conditional UPDATE statements, never by
writing back a value read earlier, so two concurrent sales for the same CID
cannot lose a stamp or spend the same reward twice.

Nothing in this module commits. Callers run it inside a unit of work
together with the sale that triggered it.
"""

from __future__ import annotations

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InsufficientStampsError, PersistenceError, ValidationError
from ..models import LoyaltyAccount
from ..models.loyalty import MAX_STAMPS, REDEEM_THRESHOLD
from ..models.sales import (
    LOYALTY_ACTIONS,
    LOYALTY_DOUBLE,
    LOYALTY_NONE,
    LOYALTY_REDEEM,
    LOYALTY_STAMP,
)
from .concurrency import lock_for_update


MAX_CID_LENGTH = 32

STAMP_INCREMENTS = {
    LOYALTY_STAMP: 1,
    LOYALTY_DOUBLE: 2,
}


def normalize_cid(raw: str | None) -> str | None:
    """Trim and upper-case a customer identifier; blank means no customer."""
    if raw is None:
        return None
    cid = str(raw).strip().upper()
    if not cid:
        return None
    if len(cid) > MAX_CID_LENGTH:
        raise ValidationError(f"CID must be {MAX_CID_LENGTH} characters or fewer")
    return cid


def normalize_action(raw: str | None) -> str:
    action = str(raw or LOYALTY_NONE).strip().lower()
    if action not in LOYALTY_ACTIONS:
        raise ValidationError(
            f"Unknown loyalty action '{raw}'",
            details={"allowed": list(LOYALTY_ACTIONS)},
        )
    return action


def get_account(org_id: int, cid: str, *, for_update: bool = False) -> LoyaltyAccount | None:
    query = db.session.query(LoyaltyAccount).filter_by(org_id=org_id, cid=cid)
    if for_update:
        query = lock_for_update(query)
    return query.first()


def get_or_create_account(org_id: int, cid: str) -> LoyaltyAccount:
    account = get_account(org_id, cid, for_update=True)
    if account:
        return account

    account = LoyaltyAccount(
        org_id=org_id,
        cid=cid,
        stamp_count=0,
        total_stamps=0,
        total_redemptions=0,
    )
    db.session.add(account)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Another request created the account between our read and insert.
        raise PersistenceError(
            "Loyalty account was created by a concurrent sale; resubmit the sale",
            details={"cid": cid},
        ) from exc
    return account


def ensure_can_redeem(org_id: int, cid: str) -> LoyaltyAccount:
    """Read-side check used before any write is attempted."""
    account = get_account(org_id, cid, for_update=True)
    if not account or account.stamp_count < REDEEM_THRESHOLD:
        raise InsufficientStampsError(
            f"Customer needs {REDEEM_THRESHOLD} loyalty stamps before redeeming a free sale",
            details={"cid": cid, "stamp_count": account.stamp_count if account else 0},
        )
    return account


def _add_stamps(account: LoyaltyAccount, increment: int) -> None:
    next_count = LoyaltyAccount.stamp_count + increment
    stmt = (
        update(LoyaltyAccount)
        .where(LoyaltyAccount.id == account.id)
        .values(
            stamp_count=case((next_count > MAX_STAMPS, MAX_STAMPS), else_=next_count),
            total_stamps=LoyaltyAccount.total_stamps + increment,
        )
        .execution_options(synchronize_session=False)
    )
    db.session.execute(stmt)


def _redeem(account: LoyaltyAccount) -> None:
    stmt = (
        update(LoyaltyAccount)
        .where(
            LoyaltyAccount.id == account.id,
            LoyaltyAccount.stamp_count >= REDEEM_THRESHOLD,
        )
        .values(
            stamp_count=0,
            total_redemptions=LoyaltyAccount.total_redemptions + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        # The stamps were spent by a concurrent sale after our check.
        raise InsufficientStampsError(
            f"Customer needs {REDEEM_THRESHOLD} loyalty stamps before redeeming a free sale",
            details={"cid": account.cid},
        )


def apply_action(org_id: int, cid: str | None, action: str) -> LoyaltyAccount | None:
    """
    Apply one loyalty action and return the refreshed account.

    Returns None for the `none` action. Does not commit.
    """
    action = normalize_action(action)
    if action == LOYALTY_NONE:
        return None
    if not cid:
        raise ValidationError("CID is required to apply a loyalty action")

    if action == LOYALTY_REDEEM:
        account = ensure_can_redeem(org_id, cid)
        _redeem(account)
    else:
        account = get_or_create_account(org_id, cid)
        _add_stamps(account, STAMP_INCREMENTS[action])

    db.session.refresh(account)
    return account


def loyalty_status(org_id: int, cid: str | None) -> dict:
    cid = normalize_cid(cid)
    if not cid:
        raise ValidationError("Missing CID")

    account = get_account(org_id, cid)
    stamp_count = account.stamp_count if account else 0
    return {
        "cid": cid,
        "stamp_count": stamp_count,
        "ready": stamp_count >= REDEEM_THRESHOLD,
    }


def list_accounts(org_id: int) -> list[LoyaltyAccount]:
    return (
        db.session.query(LoyaltyAccount)
        .filter_by(org_id=org_id)
        .order_by(LoyaltyAccount.stamp_count.desc(), LoyaltyAccount.cid.asc())
        .all()
    )
