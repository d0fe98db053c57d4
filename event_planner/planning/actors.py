"""Who is acting on an event, and what they may do.

Two kinds of actor exist. An ``Owner`` is whoever knows the coordinator email
of the event; an ``Administrator`` is an operator authenticated by the admin
token. Each carries its own cancellation window so callers never branch on
an admin flag.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

from event_planner.core.config import settings
from event_planner.models import Event
from event_planner.planning.errors import PlannerError, TooCloseToStart, Unauthorized


class Actor(ABC):
    is_admin = False

    @abstractmethod
    def can_manage(self, event: Event) -> bool:
        """Whether this actor may see and edit the event's signups."""

    @abstractmethod
    def authorize_cancel(self, event: Event, now: datetime) -> None:
        """Raise if this actor may not cancel ``event`` at ``now``."""

    def can_cancel(self, event: Event, now: datetime) -> bool:
        try:
            self.authorize_cancel(event, now)
        except PlannerError:
            return False
        return True

    def require_manage(self, event: Event) -> None:
        if not self.can_manage(event):
            raise Unauthorized("Coordinator email does not match this event")


@dataclass(frozen=True)
class Owner(Actor):
    email: str

    def can_manage(self, event: Event) -> bool:
        return event.is_owned_by(self.email)

    def authorize_cancel(self, event: Event, now: datetime) -> None:
        self.require_manage(event)
        window = timedelta(hours=settings.coordinator_cancel_hours)
        if event.starts_at - now < window:
            raise TooCloseToStart(
                f"Coordinators cannot cancel an event within "
                f"{settings.coordinator_cancel_hours:g} hours of its start time"
            )


@dataclass(frozen=True)
class Administrator(Actor):
    is_admin = True

    def can_manage(self, event: Event) -> bool:
        return True

    def authorize_cancel(self, event: Event, now: datetime) -> None:
        if event.starts_at < now:
            raise TooCloseToStart("Event cannot be cancelled after it has started")
