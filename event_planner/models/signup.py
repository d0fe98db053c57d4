"""Signup model for event participants.

This module defines the Signup model which represents one participant's
registration for an Event. Signups are created only by the admission
controller, never change afterwards, and can be removed individually by the
event's coordinator.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from event_planner.core.timeutil import utc_now

if TYPE_CHECKING:
    from event_planner.models.event import Event


class Signup(SQLModel, table=True):
    """A participant registered for an event.

    Soft-deleting the parent event leaves its signups in place for audit;
    they are hidden together with the event.

    Attributes:
        id: Auto-incrementing identifier.
        run_id: Foreign key to the parent Event.
        name: Participant name.
        phone: Contact phone number, if given.
        email: Contact email, if given. Signups with an email receive
            update and cancellation notices.
        instagram: Optional social handle.
        waiver_accepted: Always True; a signup cannot exist without it.
        signed_at: When the signup was admitted.
        event: Reference to the parent Event object.
    """
    id: int | None = Field(default=None, primary_key=True)
    run_id: str = Field(foreign_key="event.id", index=True)
    name: str
    phone: str | None = None
    email: str | None = None
    instagram: str | None = None
    waiver_accepted: bool = Field(default=True)
    signed_at: datetime = Field(default_factory=utc_now)

    # Relationship
    event: Optional["Event"] = Relationship(back_populates="signups")

    @property
    def has_email(self) -> bool:
        return bool(self.email and self.email.strip())
