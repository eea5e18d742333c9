# Overview: Transaction boundary and row-locking helpers shared by the settlement services.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import PersistenceError, SettlementError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work(description: str):
    """
    Run a block as one database transaction.

    Commits when the block finishes. Any failure rolls back every write made
    inside the block: domain errors propagate unchanged, storage errors are
    reported as PersistenceError. No retry: the caller resubmits.
    """
    try:
        yield db.session
        db.session.commit()
    except SettlementError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(
            f"Unable to {description}",
            details={"reason": exc.__class__.__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        raise
