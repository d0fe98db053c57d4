"""Automatic completion of events that have already taken place."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from event_planner.core.config import settings
from event_planner.core.timeutil import ensure_utc, utc_now
from event_planner.models import Event
from event_planner.planning import store
from event_planner.planning.errors import PlannerError
from event_planner.planning.lifecycle import complete_event

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    completed: int = 0
    checked: int = 0
    failed: int = 0


def is_due(event: Event, now: datetime) -> bool:
    """Whether the event started more than ``completion_grace_hours`` ago."""
    return now > event.starts_at + timedelta(hours=settings.completion_grace_hours)


def due_for_completion(session: Session, now: datetime) -> list[Event]:
    return [event for event in store.list_active_events(session) if is_due(event, now)]


def sweep_completions(session: Session, now: datetime | None = None) -> SweepResult:
    """
    Complete every active event that ended long enough ago.

    Each event is completed with its own conditional write. A failure on one
    event is logged and rolled back, and the sweep moves on to the next.
    Rerunning is harmless: completed events no longer match the filter.
    """
    now = ensure_utc(now) or utc_now()
    result = SweepResult()

    active = store.list_active_events(session)
    result.checked = len(active)
    due = [event.id for event in active if is_due(event, now)]
    logger.info(f"Sweep found {len(due)} of {len(active)} active event(s) to complete")

    for event_id in due:
        try:
            complete_event(session, event_id, now=now)
            result.completed += 1
            logger.info(f"Marked event {event_id} as completed")
        except PlannerError as e:
            # Cancelled or deleted since the listing; nothing to do
            session.rollback()
            logger.info(f"Skipped event {event_id}: {e}")
        except SQLAlchemyError as e:
            session.rollback()
            result.failed += 1
            logger.error(f"Error completing event {event_id}: {e}")
        except Exception as e:
            session.rollback()
            result.failed += 1
            logger.exception(f"Unexpected error completing event {event_id}: {e}")

    logger.info(f"Sweep completed {result.completed} event(s), {result.failed} failed")
    return result
