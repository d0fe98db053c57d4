"""Background job scheduler for completing past events."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from event_planner.core.config import settings
from event_planner.core.database import engine
from event_planner.planning.sweeper import sweep_completions

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def sweep_job():
    """Background sweep job."""
    try:
        with Session(engine) as session:
            result = sweep_completions(session)
            logger.info(f"Background sweep completed: {result}")
    except Exception as e:
        logger.error(f"Background sweep failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    scheduler.add_job(
        sweep_job,
        trigger=IntervalTrigger(minutes=settings.sweep_interval_minutes),
        id="event_sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, sweeping every {settings.sweep_interval_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
