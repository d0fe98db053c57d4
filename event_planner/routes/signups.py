"""Signup routes for joining events and managing participants."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from event_planner.core.database import get_session
from event_planner.models.schemas import SignupCreate, SignupRead
from event_planner.notify.fanout import Notifier
from event_planner.planning import admission
from event_planner.planning.actors import Actor
from event_planner.routes.deps import get_notifier, require_actor

router = APIRouter(prefix="/api/events/{event_id}/signups", tags=["signups"])


@router.post("", response_model=SignupRead)
def create_signup(
    event_id: str,
    contact: SignupCreate,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Sign up for an event.

    Requires a name, a phone number or email, and waiver acceptance. Returns
    409 with ``event_full``, ``event_cancelled`` or ``signup_window_closed``
    when the signup cannot be admitted.
    """
    return admission.attempt_signup(session, event_id, contact, notifier)


@router.get("", response_model=list[SignupRead])
def list_signups(
    event_id: str,
    session: Session = Depends(get_session),
    actor: Actor = Depends(require_actor),
):
    """List an event's participants. Coordinator or administrator only."""
    return admission.list_signups(session, event_id, actor)


@router.delete("/{signup_id}", response_model=list[SignupRead])
def delete_signup(
    event_id: str,
    signup_id: int,
    session: Session = Depends(get_session),
    actor: Actor = Depends(require_actor),
):
    """
    Remove a participant from an event.

    Frees the seat for someone else. Returns the remaining signups.
    """
    return admission.delete_signup(session, event_id, signup_id, actor)
