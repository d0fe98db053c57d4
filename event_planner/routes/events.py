"""Event routes for creating, reading and changing events."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from event_planner.core.database import get_session
from event_planner.models import EventStatus
from event_planner.models.schemas import (
    CancelRequest,
    EventCreate,
    EventCreated,
    EventRead,
    EventUpdate,
)
from event_planner.notify.fanout import Notifier
from event_planner.planning import lifecycle, store
from event_planner.planning.actors import Actor, Owner
from event_planner.planning.errors import Unauthorized
from event_planner.routes.deps import get_actor, get_notifier, require_admin

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post("", response_model=EventCreated)
def create_event(
    fields: EventCreate,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Create a new event.

    The event starts out active. Returns the stored event together with the
    public signup link and the private management link; the coordinator also
    receives both by email.
    """
    event, links = lifecycle.create_event(session, fields, notifier)
    return EventCreated(event=EventRead.model_validate(event), links=links)


@router.get("", response_model=list[EventRead])
def list_events(
    status: EventStatus | None = None,
    session: Session = Depends(get_session),
    actor: Actor | None = Depends(get_actor),
):
    """
    List events ordered by start time.

    Deleted events are only included for administrators. Use ``status`` to
    filter, e.g. ``?status=active``.
    """
    include_deleted = actor is not None and actor.is_admin
    return store.list_events(session, status=status, include_deleted=include_deleted)


@router.get("/{event_id}", response_model=EventRead)
def get_event(
    event_id: str,
    session: Session = Depends(get_session),
    actor: Actor | None = Depends(get_actor),
):
    """Return a single event. Returns 404 for deleted events unless called by an administrator."""
    include_deleted = actor is not None and actor.is_admin
    return store.get_event(session, event_id, include_deleted=include_deleted)


@router.put("/{event_id}", response_model=EventRead)
def update_event(
    event_id: str,
    fields: EventUpdate,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Update an event's details.

    Only the fields present in the body are considered. Rejected with 409
    inside the edit-lock window or when the event is no longer active. When
    something actually changed, the coordinator and every participant with an
    email are told what changed.
    """
    return lifecycle.update_event(session, event_id, fields, notifier)


@router.patch("/{event_id}/cancel", response_model=EventRead)
def cancel_event(
    event_id: str,
    body: CancelRequest | None = None,
    session: Session = Depends(get_session),
    actor: Actor | None = Depends(get_actor),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Cancel an event.

    Administrators (``X-Admin-Token``) may cancel up to the start time.
    Coordinators identify themselves with ``coordinator_email`` in the body
    (or the ``X-Coordinator-Email`` header) and may cancel up to a few hours
    before the start. Participants with an email are notified.
    """
    body = body or CancelRequest()
    if actor is None or not actor.is_admin:
        email = body.coordinator_email or (actor.email if isinstance(actor, Owner) else None)
        if not email:
            raise Unauthorized("Coordinator email is required to cancel this event")
        actor = Owner(email)

    return lifecycle.cancel_event(session, event_id, actor, notifier, message=body.message)


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    session: Session = Depends(get_session),
    actor: Actor = Depends(require_admin),
):
    """
    Soft-delete an event (administrators only).

    The event disappears from listings; its signups are kept for audit.
    """
    lifecycle.delete_event(session, event_id, actor)
    return {"success": True}
