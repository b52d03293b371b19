"""Background job tasks"""

from datetime import date, datetime, timedelta
from typing import Optional
import asyncio
import structlog

from app.jobs.celery_app import celery_app
from app.config import settings

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


async def _with_session(work):
    """Run ``work(db)`` on an engine owned by this event loop"""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from app.database import build_engine

    engine = build_engine(settings.database_url)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as db:
            return await work(db)
    finally:
        await engine.dispose()


@celery_app.task(name="detect_storage_overstays")
def detect_storage_overstays(today: Optional[str] = None):
    """Daily overstay sweep across all tenants"""
    sweep_date = date.fromisoformat(today) if today else datetime.utcnow().date()
    logger.info("Detecting storage overstays", today=sweep_date.isoformat())

    async def _detect(db):
        from app.engine.overstay import sweep_overstays

        records = await sweep_overstays(db, sweep_date)
        return len(records)

    count = run_async(_with_session(_detect))
    logger.info("Storage overstays detected", today=sweep_date.isoformat(), records=count)
    return count


@celery_app.task(name="release_unpaid_bookings")
def release_unpaid_bookings():
    """Cancel bookings whose payment never completed"""
    cutoff = datetime.utcnow() - timedelta(minutes=settings.pending_booking_ttl_minutes)
    logger.info("Releasing unpaid bookings", created_before=cutoff.isoformat())

    async def _release(db):
        from app.engine.booking import release_unpaid_bookings as release

        return await release(db, cutoff)

    return run_async(_with_session(_release))
