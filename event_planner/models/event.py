"""Event model for community-organized events.

This module defines the Event model, the central entity of the planner. An
event is created by a coordinator, collects signups up to its capacity, and
moves through a small lifecycle (active, then cancelled, completed or
deleted) that is enforced by ``event_planner.planning``.
"""

import secrets
import string
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

from event_planner.core.timeutil import ensure_utc, utc_now

if TYPE_CHECKING:
    from event_planner.models.signup import Signup

SHORT_ID_ALPHABET = string.ascii_letters + string.digits
SHORT_ID_LENGTH = 7


def generate_short_id() -> str:
    """Random URL-safe identifier used in signup and manage links."""
    return "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(SHORT_ID_LENGTH))


class EventStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    DELETED = "deleted"


class Event(SQLModel, table=True):
    """A community event that participants can sign up for.

    Attributes:
        id: Short opaque identifier, shared in signup/manage links.
        uuid: Globally unique secondary identifier.
        status: Lifecycle state. Only moves forward (see
            ``event_planner.planning.states``).
        date_time: Start of the event (UTC). Frozen inside the edit-lock window.
        end_time: Optional end of the event (UTC).
        max_participants: Capacity ceiling for signups.
        signup_count: Number of signups currently attached. Maintained by the
            admission controller in the same transaction as each insert or
            delete, and compared against ``max_participants`` atomically.
        coordinator_email: Owner of the event. Compared case-insensitively.
        planner_name: Display name of the coordinator.
        location: Where the event takes place.
        title: Optional event title.
        description: Optional long-form description.
        cancellation_message: Message from whoever cancelled the event, stored verbatim.
        created_at: When the event was created.
        updated_at: Last time any field changed.
        cancelled_at: When the event was cancelled, if it was.
        signups: Participants registered for this event.
    """
    id: str = Field(default_factory=generate_short_id, primary_key=True, max_length=16)
    uuid: UUID = Field(default_factory=uuid4, unique=True)
    status: EventStatus = Field(default=EventStatus.ACTIVE, index=True)
    date_time: datetime = Field(index=True)
    end_time: datetime | None = None
    max_participants: int
    signup_count: int = Field(default=0)
    coordinator_email: str
    planner_name: str
    location: str
    title: str | None = None
    description: str | None = None
    cancellation_message: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    cancelled_at: datetime | None = None

    # Relationship
    signups: list["Signup"] = Relationship(back_populates="event")

    @property
    def starts_at(self) -> datetime:
        """Start time as an aware UTC datetime, whatever the store returned."""
        return ensure_utc(self.date_time)

    @property
    def display_title(self) -> str:
        return self.title or "Event"

    def is_owned_by(self, email: str | None) -> bool:
        if not email:
            return False
        return email.strip().casefold() == self.coordinator_email.strip().casefold()
