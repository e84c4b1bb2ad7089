"""
Celery Tasks
Background jobs for the reservation lifecycle.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from restaurant_app.celery_worker import celery_app
from restaurant_app.core.config import get_settings
from restaurant_app.core.context import RequestContext
from restaurant_app.services.reservations.store import ReservationStore

logger = logging.getLogger(__name__)


async def run_completion(
    now: Optional[datetime] = None,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """
    Mark confirmed reservations whose time has passed as completed.

    Each task run gets its own NullPool engine unless a session factory is
    passed in, since the worker calls asyncio.run() per task.
    """
    engine = None
    if session_maker is None:
        engine = create_async_engine(get_settings().database_url, poolclass=NullPool)
        session_maker = async_sessionmaker(engine, expire_on_commit=False)

    ctx = RequestContext(actor="celery:complete_past_reservations", now=now or datetime.now(timezone.utc))
    try:
        async with session_maker() as session:
            return await ReservationStore(session).complete_past(ctx)
    finally:
        if engine is not None:
            await engine.dispose()


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def complete_past_reservations(self) -> dict:
    """
    Periodic task: confirmed -> completed once the reservation has started.

    Returns:
        dict: Number of reservations completed and timing
    """
    task_id = self.request.id
    start_time = time.time()

    completed = asyncio.run(run_completion())

    elapsed = round(time.time() - start_time, 3)
    logger.info(f"Task {task_id}: completed {completed} reservation(s) in {elapsed}s")

    return {
        'task_id': task_id,
        'completed': completed,
        'processing_time_seconds': elapsed,
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
