"""Write transactions for booking engine operations"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.engine.errors import BookingEngineError, SlotUnavailable

logger = structlog.get_logger()

# serialization_failure, deadlock_detected, exclusion_violation, unique_violation
RACE_SQLSTATES = {"40001", "40P01", "23P01", "23505"}

# SQLite has no SQLSTATE; these messages mean another writer got there first
SQLITE_RACE_MESSAGES = ("unique constraint failed", "database is locked", "database is busy")


def is_race_loss(exc: DBAPIError) -> bool:
    """
    True if a database error means a concurrent writer got there first.

    Only uniqueness, exclusion and serialization conflicts count. Foreign key,
    NOT NULL and check violations are bugs and propagate unchanged.
    """
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate is not None:
        return sqlstate in RACE_SQLSTATES

    message = str(orig).lower()
    return any(fragment in message for fragment in SQLITE_RACE_MESSAGES)


@asynccontextmanager
async def write_transaction(db: AsyncSession, conflict_error: Optional[BookingEngineError] = None):
    """
    Run the enclosed reads and writes as one transaction and commit on exit.

    Any exception rolls everything back. Database errors caused by a concurrent
    writer are re-raised as ``conflict_error`` (SlotUnavailable by default).
    """
    try:
        yield db
        await db.commit()
    except DBAPIError as e:
        await db.rollback()
        if is_race_loss(e):
            logger.info("Write lost to concurrent transaction", error=str(e.orig))
            raise (conflict_error or SlotUnavailable(
                "The requested resource was booked by a concurrent request"
            )) from e
        raise
    except Exception:
        await db.rollback()
        raise
