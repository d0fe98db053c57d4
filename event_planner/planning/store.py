"""Queries and conditional writes against the event store."""
import logging
from typing import Any

from sqlalchemy import func, update
from sqlmodel import Session, select

from event_planner.models import Event, EventStatus, Signup
from event_planner.models.event import generate_short_id
from event_planner.planning.errors import EventNotFound

logger = logging.getLogger(__name__)

SHORT_ID_ATTEMPTS = 5


def get_event(session: Session, event_id: str, include_deleted: bool = False) -> Event:
    """Load an event, treating soft-deleted events as missing unless asked."""
    event = session.get(Event, event_id)
    if event is None:
        raise EventNotFound(event_id)
    if event.status == EventStatus.DELETED and not include_deleted:
        raise EventNotFound(event_id)
    return event


def add_event(session: Session, event: Event) -> Event:
    """Insert a new event, picking a short id that is not already taken."""
    for _ in range(SHORT_ID_ATTEMPTS):
        if session.get(Event, event.id) is None:
            break
        logger.debug(f"Short id collision on {event.id}, regenerating")
        event.id = generate_short_id()
    else:
        raise RuntimeError("Could not allocate a unique event id")

    session.add(event)
    session.commit()
    session.refresh(event)
    return event


def update_event_where(
    session: Session,
    event_id: str,
    expected: list[EventStatus],
    values: dict[str, Any],
    *conditions,
) -> bool:
    """Apply ``values`` to the event only if its status is still one of ``expected``.

    Extra SQL ``conditions`` are ANDed into the WHERE clause. Returns whether a
    row was updated; the caller owns the commit or rollback.
    """
    statement = (
        update(Event)
        .where(Event.id == event_id)
        .where(Event.status.in_(expected))
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(statement)
    return result.rowcount == 1


def count_signups(session: Session, event_id: str) -> int:
    """Count the signup rows attached to an event."""
    statement = select(func.count()).select_from(Signup).where(Signup.run_id == event_id)
    return session.exec(statement).one()


def signups_for(session: Session, event_id: str, with_email: bool = False) -> list[Signup]:
    statement = select(Signup).where(Signup.run_id == event_id).order_by(Signup.signed_at, Signup.id)
    signups = session.exec(statement).all()
    if with_email:
        return [s for s in signups if s.has_email]
    return list(signups)


def list_active_events(session: Session) -> list[Event]:
    statement = select(Event).where(Event.status == EventStatus.ACTIVE).order_by(Event.date_time)
    return list(session.exec(statement).all())


def list_events(
    session: Session,
    status: EventStatus | None = None,
    include_deleted: bool = False,
) -> list[Event]:
    """List events ordered by start time. Soft-deleted events are hidden by default."""
    statement = select(Event).order_by(Event.date_time)
    if status is not None:
        statement = statement.where(Event.status == status)
    if not include_deleted:
        statement = statement.where(Event.status != EventStatus.DELETED)
    return list(session.exec(statement).all())
