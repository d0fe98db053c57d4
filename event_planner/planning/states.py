"""Event lifecycle transition table.

Every (status, action) pair maps either to the status the event moves to or
to the rejection raised for it. Controllers call ``transition`` before any
write; nothing else compares status strings.

    active     --update-->   active
    active     --signup-->   active
    active     --cancel-->   cancelled
    active     --complete--> completed
    (any live) --delete-->   deleted
"""
from enum import Enum
from typing import Callable

from event_planner.models import Event, EventStatus
from event_planner.planning.errors import (
    AlreadyCancelled,
    EventCancelled,
    EventNotFound,
    InvalidTransition,
    PlannerError,
)


class Action(str, Enum):
    UPDATE = "update"
    SIGNUP = "signup"
    CANCEL = "cancel"
    COMPLETE = "complete"
    DELETE = "delete"


Rejection = Callable[[Event, Action], PlannerError]


def _cancelled(event: Event, action: Action) -> PlannerError:
    return EventCancelled(event.id)


def _already_cancelled(event: Event, action: Action) -> PlannerError:
    return AlreadyCancelled(event.id, event.cancelled_at)


def _invalid(event: Event, action: Action) -> PlannerError:
    return InvalidTransition(event.status.value, action.value)


def _hidden(event: Event, action: Action) -> PlannerError:
    return EventNotFound(event.id)


TRANSITIONS: dict[tuple[EventStatus, Action], EventStatus | Rejection] = {
    (EventStatus.ACTIVE, Action.UPDATE): EventStatus.ACTIVE,
    (EventStatus.ACTIVE, Action.SIGNUP): EventStatus.ACTIVE,
    (EventStatus.ACTIVE, Action.CANCEL): EventStatus.CANCELLED,
    (EventStatus.ACTIVE, Action.COMPLETE): EventStatus.COMPLETED,
    (EventStatus.ACTIVE, Action.DELETE): EventStatus.DELETED,
    (EventStatus.CANCELLED, Action.UPDATE): _cancelled,
    (EventStatus.CANCELLED, Action.SIGNUP): _cancelled,
    (EventStatus.CANCELLED, Action.CANCEL): _already_cancelled,
    (EventStatus.CANCELLED, Action.COMPLETE): _invalid,
    (EventStatus.CANCELLED, Action.DELETE): EventStatus.DELETED,
    (EventStatus.COMPLETED, Action.UPDATE): _invalid,
    (EventStatus.COMPLETED, Action.SIGNUP): _invalid,
    (EventStatus.COMPLETED, Action.CANCEL): _invalid,
    (EventStatus.COMPLETED, Action.COMPLETE): _invalid,
    (EventStatus.COMPLETED, Action.DELETE): EventStatus.DELETED,
    (EventStatus.DELETED, Action.UPDATE): _hidden,
    (EventStatus.DELETED, Action.SIGNUP): _hidden,
    (EventStatus.DELETED, Action.CANCEL): _hidden,
    (EventStatus.DELETED, Action.COMPLETE): _invalid,
    (EventStatus.DELETED, Action.DELETE): _hidden,
}


def transition(event: Event, action: Action) -> EventStatus:
    """Return the status ``event`` moves to under ``action``.

    Raises the rejection registered for the pair when the move is illegal.
    """
    outcome = TRANSITIONS[(EventStatus(event.status), action)]
    if isinstance(outcome, EventStatus):
        return outcome
    raise outcome(event, action)


def source_statuses(action: Action) -> list[EventStatus]:
    """Statuses from which ``action`` is a legal move."""
    return [
        status
        for (status, candidate), outcome in TRANSITIONS.items()
        if candidate == action and isinstance(outcome, EventStatus)
    ]
