"""Capacity-bounded admission of signups.

Checks run in a fixed order and stop at the first failure:

    1. the event exists (EventNotFound)
    2. the event accepts signups (EventCancelled / InvalidTransition)
    3. signups are still open, i.e. at least ``signup_cutoff_hours`` before start
       (SignupWindowClosed)
    4. a seat is free (EventFull)

Step 4 is never a separate read. The seat is claimed with a compare-and-swap
on ``Event.signup_count``:

    UPDATE event SET signup_count = signup_count + 1
    WHERE id = :id AND status = 'active' AND signup_count < max_participants

and the Signup row is inserted in the same transaction. The database's write
lock on that row serializes competing admissions, so two requests racing for
the last seat cannot both succeed. The loser sees zero rows updated, rolls
back, and gets EventFull.
"""
import logging
from datetime import datetime, timedelta

from sqlmodel import Session

from event_planner.core.config import settings
from event_planner.core.timeutil import ensure_utc, utc_now
from event_planner.models import Event, EventStatus, Signup
from event_planner.models.schemas import SignupCreate
from event_planner.notify.fanout import Notifier
from event_planner.planning import store
from event_planner.planning.actors import Actor
from event_planner.planning.errors import (
    EventFull,
    SignupNotFound,
    SignupWindowClosed,
    ValidationError,
)
from event_planner.planning.lifecycle import check_email, clean_text
from event_planner.planning.states import Action, source_statuses, transition

logger = logging.getLogger(__name__)


def validate_contact(contact: SignupCreate) -> dict:
    """Check the signup form before touching the store and return cleaned fields."""
    name = clean_text(contact.name)
    phone = clean_text(contact.phone)
    email = clean_text(contact.email)

    missing = []
    if not name:
        missing.append("name")
    if not phone and not email:
        missing.append("phone_or_email")
    if not contact.waiver_accepted:
        missing.append("waiver_accepted")
    if missing:
        raise ValidationError(
            "Name, a phone number or email, and waiver acceptance are required",
            fields=missing,
        )

    if email:
        check_email(email, field="email")

    return {
        "name": name,
        "phone": phone,
        "email": email,
        "instagram": clean_text(contact.instagram),
    }


def attempt_signup(
    session: Session,
    event_id: str,
    contact: SignupCreate,
    notifier: Notifier,
    now: datetime | None = None,
) -> Signup:
    """Admit one participant to an event if capacity and timing allow."""
    now = ensure_utc(now) or utc_now()
    details = validate_contact(contact)

    event = store.get_event(session, event_id)
    transition(event, Action.SIGNUP)

    cutoff = timedelta(hours=settings.signup_cutoff_hours)
    if event.starts_at - now < cutoff:
        logger.warning(f"Signup rejected for {event_id}: window closed")
        raise SignupWindowClosed(settings.signup_cutoff_hours)

    claimed = store.update_event_where(
        session,
        event_id,
        source_statuses(Action.SIGNUP),
        {"signup_count": Event.signup_count + 1},
        Event.signup_count < Event.max_participants,
    )
    if not claimed:
        session.rollback()
        event = store.get_event(session, event_id)
        transition(event, Action.SIGNUP)
        logger.warning(f"Signup rejected for {event_id}: full ({event.signup_count}/{event.max_participants})")
        raise EventFull(event_id, event.max_participants)

    signup = Signup(run_id=event_id, waiver_accepted=True, signed_at=now, **details)
    session.add(signup)
    session.commit()
    session.refresh(signup)
    session.refresh(event)
    logger.info(
        f"Signup {signup.id} admitted to {event_id} "
        f"({event.signup_count}/{event.max_participants})"
    )

    notifier.signup_created(event, signup)
    return signup


def list_signups(session: Session, event_id: str, actor: Actor) -> list[Signup]:
    event = store.get_event(session, event_id, include_deleted=actor.is_admin)
    actor.require_manage(event)
    return store.signups_for(session, event_id)


def delete_signup(session: Session, event_id: str, signup_id: int, actor: Actor) -> list[Signup]:
    """Remove one signup and free its seat. Returns the remaining signups."""
    event = store.get_event(session, event_id)
    actor.require_manage(event)

    signup = session.get(Signup, signup_id)
    if signup is None or signup.run_id != event_id:
        raise SignupNotFound(event_id, signup_id)

    session.delete(signup)
    store.update_event_where(
        session,
        event_id,
        list(EventStatus),
        {"signup_count": Event.signup_count - 1},
        Event.signup_count > 0,
    )
    session.commit()
    logger.info(f"Signup {signup_id} removed from {event_id}")
    return store.signups_for(session, event_id)
