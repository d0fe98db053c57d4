"""Event lifecycle controller.

Implements the operations that move an event through its states:

- create   -> active
- update   active -> active, only outside the edit-lock window
- cancel   active -> cancelled, window depends on the actor
- complete active -> completed, driven by the sweeper
- delete   any live state -> deleted, administrators only

Each operation follows the same order: validate input, read the event,
check the transition table and time guards, commit with a conditional write,
then hand the committed event to the notifier. A conditional write that
matches no row means the event changed under us; the event is reloaded and
the rejection for its new state is raised.
"""
import logging
from datetime import datetime, timedelta

from email_validator import EmailNotValidError, validate_email
from sqlmodel import Session

from event_planner.core.config import settings
from event_planner.core.timeutil import ensure_utc, utc_now
from event_planner.models import Event, EventStatus
from event_planner.models.schemas import EventCreate, EventLinks, EventUpdate
from event_planner.notify.fanout import FieldChange, Notifier, best_effort
from event_planner.notify.templates import format_when
from event_planner.planning import store
from event_planner.planning.actors import Actor
from event_planner.planning.errors import (
    CapacityBelowSignups,
    EditWindowClosed,
    InvalidTransition,
    Unauthorized,
    ValidationError,
)
from event_planner.planning.states import Action, source_statuses, transition

logger = logging.getLogger(__name__)

# Fields whose changes are reported to the coordinator and participants
TRACKED_FIELDS = {
    "location": "Location",
    "title": "Title",
    "date_time": "Date & Time",
    "end_time": "End Time",
    "max_participants": "Max Participants",
    "planner_name": "Planner",
    "description": "Description",
}


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _valid_capacity(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def check_email(email: str, field: str = "coordinator_email") -> None:
    """Raise ValidationError unless ``email`` is a syntactically valid address."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}", fields=[field])


def create_event(
    session: Session,
    fields: EventCreate,
    notifier: Notifier,
    now: datetime | None = None,
) -> tuple[Event, EventLinks]:
    """Validate and store a new active event, then notify its coordinator."""
    now = ensure_utc(now) or utc_now()

    location = clean_text(fields.location)
    planner_name = clean_text(fields.planner_name)
    coordinator_email = clean_text(fields.coordinator_email)

    missing = []
    if not location:
        missing.append("location")
    if not planner_name:
        missing.append("planner_name")
    if not coordinator_email:
        missing.append("coordinator_email")
    if fields.date_time is None:
        missing.append("date_time")
    if fields.max_participants is None:
        missing.append("max_participants")
    if missing:
        logger.warning(f"Create rejected, missing fields: {missing}")
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

    if not _valid_capacity(fields.max_participants):
        raise ValidationError("Max participants must be a positive integer", fields=["max_participants"])
    check_email(coordinator_email)

    date_time = ensure_utc(fields.date_time)
    end_time = ensure_utc(fields.end_time)
    if end_time is not None and end_time <= date_time:
        raise ValidationError("End time must be after the start time", fields=["end_time"])

    event = Event(
        location=location,
        planner_name=planner_name,
        coordinator_email=coordinator_email,
        date_time=date_time,
        end_time=end_time,
        max_participants=fields.max_participants,
        title=clean_text(fields.title),
        description=clean_text(fields.description),
        created_at=now,
        updated_at=now,
    )
    event = store.add_event(session, event)
    logger.info(f"Event {event.id} created for {event.date_time.isoformat()} (capacity {event.max_participants})")

    links = notifier.links_for(event)
    notifier.event_created(event, links)
    return event, links


def _normalize_update(fields: EventUpdate) -> dict:
    """Validate the supplied fields and return them cleaned, keyed by column."""
    supplied = fields.model_dump(exclude_unset=True)
    cleaned = {}
    errors = []

    for name, value in supplied.items():
        if name in ("location", "planner_name"):
            value = clean_text(value)
            if not value:
                errors.append(name)
        elif name in ("title", "description"):
            value = clean_text(value)
        elif name == "date_time":
            if value is None:
                errors.append(name)
            value = ensure_utc(value)
        elif name == "end_time":
            value = ensure_utc(value)
        elif name == "max_participants":
            if not _valid_capacity(value):
                raise ValidationError(
                    "Max participants must be a positive integer", fields=["max_participants"]
                )
        cleaned[name] = value

    if errors:
        raise ValidationError(f"Fields cannot be empty: {', '.join(errors)}", fields=errors)
    return cleaned


def _display(value) -> str:
    if value is None:
        return "(none)"
    if isinstance(value, datetime):
        return format_when(value)
    return str(value)


def diff_changes(event: Event, updates: dict) -> list[FieldChange]:
    """Return the tracked fields whose value differs from the stored event."""
    changes = []
    for name, label in TRACKED_FIELDS.items():
        if name not in updates:
            continue
        old = getattr(event, name)
        new = updates[name]
        if isinstance(old, datetime):
            old = ensure_utc(old)
        if old == new:
            continue
        changes.append(FieldChange(field=name, label=label, old=_display(old), new=_display(new)))
    return changes


@best_effort
def _notify_updated(session: Session, notifier: Notifier, event: Event, changes: list[FieldChange]) -> None:
    notifier.event_updated(event, changes, store.signups_for(session, event.id, with_email=True))


@best_effort
def _notify_cancelled(session: Session, notifier: Notifier, event: Event) -> None:
    notifier.event_cancelled(event, store.signups_for(session, event.id, with_email=True))


def update_event(
    session: Session,
    event_id: str,
    fields: EventUpdate,
    notifier: Notifier,
    now: datetime | None = None,
) -> Event:
    """Apply a partial update to an active event outside the edit-lock window.

    An update that changes nothing writes nothing and sends nothing, so a
    retried request is harmless.
    """
    now = ensure_utc(now) or utc_now()
    updates = _normalize_update(fields)

    event = store.get_event(session, event_id)
    transition(event, Action.UPDATE)

    lock = timedelta(hours=settings.edit_lock_hours)
    if event.starts_at - now < lock:
        logger.warning(f"Update rejected for {event_id}: inside {settings.edit_lock_hours:g}h edit lock")
        raise EditWindowClosed(settings.edit_lock_hours)

    start = updates.get("date_time", event.starts_at)
    end = updates.get("end_time", ensure_utc(event.end_time))
    if end is not None and end <= start:
        raise ValidationError("End time must be after the start time", fields=["end_time"])

    changes = diff_changes(event, updates)
    if not changes:
        logger.info(f"Update for {event_id} changed nothing")
        return event

    values = {change.field: updates[change.field] for change in changes}
    values["updated_at"] = now

    conditions = []
    new_capacity = values.get("max_participants")
    if new_capacity is not None:
        if new_capacity < event.signup_count:
            raise CapacityBelowSignups(new_capacity, event.signup_count)
        # Re-checked in the write itself in case a signup lands meanwhile
        conditions.append(Event.signup_count <= new_capacity)

    if not store.update_event_where(session, event_id, source_statuses(Action.UPDATE), values, *conditions):
        session.rollback()
        event = store.get_event(session, event_id)
        transition(event, Action.UPDATE)
        if new_capacity is not None and event.signup_count > new_capacity:
            raise CapacityBelowSignups(new_capacity, event.signup_count)
        raise InvalidTransition(event.status.value, Action.UPDATE.value)

    session.commit()
    session.refresh(event)
    logger.info(f"Event {event_id} updated: {[change.field for change in changes]}")

    _notify_updated(session, notifier, event, changes)
    return event


def cancel_event(
    session: Session,
    event_id: str,
    actor: Actor,
    notifier: Notifier,
    message: str | None = None,
    now: datetime | None = None,
) -> Event:
    """Cancel an active event on behalf of ``actor`` and notify its signups.

    Cancelling twice raises AlreadyCancelled; only the call that actually
    moves the event out of ``active`` sends notices.
    """
    now = ensure_utc(now) or utc_now()

    event = store.get_event(session, event_id)
    transition(event, Action.CANCEL)
    actor.authorize_cancel(event, now)

    values = {
        "status": EventStatus.CANCELLED,
        "cancelled_at": now,
        "updated_at": now,
        "cancellation_message": message if message and message.strip() else None,
    }
    if not store.update_event_where(session, event_id, source_statuses(Action.CANCEL), values):
        session.rollback()
        event = store.get_event(session, event_id)
        transition(event, Action.CANCEL)
        raise InvalidTransition(event.status.value, Action.CANCEL.value)

    session.commit()
    session.refresh(event)
    logger.info(f"Event {event_id} cancelled by {'administrator' if actor.is_admin else 'coordinator'}")

    _notify_cancelled(session, notifier, event)
    return event


def complete_event(session: Session, event_id: str, now: datetime | None = None) -> Event:
    """Mark an active event completed. Used by the sweeper; no notification."""
    now = ensure_utc(now) or utc_now()

    event = store.get_event(session, event_id)
    transition(event, Action.COMPLETE)

    values = {"status": EventStatus.COMPLETED, "updated_at": now}
    if not store.update_event_where(session, event_id, source_statuses(Action.COMPLETE), values):
        session.rollback()
        event = store.get_event(session, event_id)
        transition(event, Action.COMPLETE)
        raise InvalidTransition(event.status.value, Action.COMPLETE.value)

    session.commit()
    session.refresh(event)
    return event


def delete_event(session: Session, event_id: str, actor: Actor, now: datetime | None = None) -> Event:
    """Soft-delete an event. Its signups stay in the store for audit."""
    now = ensure_utc(now) or utc_now()
    if not actor.is_admin:
        raise Unauthorized("Only administrators can delete events")

    event = store.get_event(session, event_id)
    transition(event, Action.DELETE)

    values = {"status": EventStatus.DELETED, "updated_at": now}
    if not store.update_event_where(session, event_id, source_statuses(Action.DELETE), values):
        session.rollback()
        event = store.get_event(session, event_id)
        raise InvalidTransition(event.status.value, Action.DELETE.value)

    session.commit()
    session.refresh(event)
    logger.info(f"Event {event_id} deleted")
    return event
