"""Request and response shapes for the JSON API.

Request models keep their fields optional so that the lifecycle layer can
report every missing field in one validation error instead of failing on
the first one.
"""

from datetime import datetime
from uuid import UUID

from pydantic import field_validator
from sqlmodel import SQLModel

from event_planner.core.timeutil import ensure_utc
from event_planner.models.event import EventStatus


class EventCreate(SQLModel):
    location: str | None = None
    planner_name: str | None = None
    coordinator_email: str | None = None
    date_time: datetime | None = None
    end_time: datetime | None = None
    max_participants: int | None = None
    title: str | None = None
    description: str | None = None


class EventUpdate(SQLModel):
    """Partial update. Only fields present in the request are considered."""
    location: str | None = None
    planner_name: str | None = None
    date_time: datetime | None = None
    end_time: datetime | None = None
    max_participants: int | None = None
    title: str | None = None
    description: str | None = None


class CancelRequest(SQLModel):
    coordinator_email: str | None = None
    message: str | None = None


class SignupCreate(SQLModel):
    name: str | None = None
    phone: str | None = None
    email: str | None = None
    instagram: str | None = None
    waiver_accepted: bool = False


class EventRead(SQLModel):
    id: str
    uuid: UUID
    status: EventStatus
    date_time: datetime
    end_time: datetime | None = None
    max_participants: int
    signup_count: int
    planner_name: str
    location: str
    title: str | None = None
    description: str | None = None
    cancellation_message: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None

    @field_validator("date_time", "end_time", "created_at", "updated_at", "cancelled_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class EventLinks(SQLModel):
    signup: str
    manage: str


class EventCreated(SQLModel):
    event: EventRead
    links: EventLinks


class SignupRead(SQLModel):
    id: int
    run_id: str
    name: str
    phone: str | None = None
    email: str | None = None
    instagram: str | None = None
    waiver_accepted: bool
    signed_at: datetime

    @field_validator("signed_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class SweepReport(SQLModel):
    completed: int
    checked: int
    failed: int
