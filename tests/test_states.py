"""Tests for the transition table and actor permissions."""

from datetime import UTC, datetime, timedelta

import pytest

from event_planner.models import Event, EventStatus
from event_planner.planning.actors import Administrator, Owner
from event_planner.planning.errors import (
    AlreadyCancelled,
    EventCancelled,
    EventNotFound,
    InvalidTransition,
    TooCloseToStart,
    Unauthorized,
)
from event_planner.planning.states import TRANSITIONS, Action, source_statuses, transition

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def make(status: EventStatus, starts_in: timedelta = timedelta(days=2)) -> Event:
    return Event(
        id="abc1234",
        status=status,
        date_time=NOW + starts_in,
        max_participants=5,
        coordinator_email="Jane@X.com",
        planner_name="Jane",
        location="Park",
    )


class TestTransitionTable:
    """Tests for the (status, action) transition table."""

    def test_every_pair_is_covered(self):
        """Every status and action combination has an entry."""
        assert len(TRANSITIONS) == len(EventStatus) * len(Action)

    @pytest.mark.parametrize(
        "action,expected",
        [
            (Action.UPDATE, EventStatus.ACTIVE),
            (Action.SIGNUP, EventStatus.ACTIVE),
            (Action.CANCEL, EventStatus.CANCELLED),
            (Action.COMPLETE, EventStatus.COMPLETED),
            (Action.DELETE, EventStatus.DELETED),
        ],
    )
    def test_active_allows_everything(self, action, expected):
        """An active event accepts every action."""
        assert transition(make(EventStatus.ACTIVE), action) == expected

    def test_cancelled_rejects_signup_and_update(self):
        """Signups and edits on a cancelled event report the cancellation."""
        event = make(EventStatus.CANCELLED)
        with pytest.raises(EventCancelled):
            transition(event, Action.SIGNUP)
        with pytest.raises(EventCancelled):
            transition(event, Action.UPDATE)

    def test_cancelled_twice(self):
        """A second cancel is reported as already cancelled."""
        event = make(EventStatus.CANCELLED)
        event.cancelled_at = NOW
        with pytest.raises(AlreadyCancelled) as excinfo:
            transition(event, Action.CANCEL)
        assert excinfo.value.cancelled_at == NOW

    def test_completed_is_frozen(self):
        """A completed event can only be deleted."""
        event = make(EventStatus.COMPLETED)
        for action in (Action.UPDATE, Action.SIGNUP, Action.CANCEL, Action.COMPLETE):
            with pytest.raises(InvalidTransition):
                transition(event, action)
        assert transition(event, Action.DELETE) == EventStatus.DELETED

    def test_deleted_looks_missing(self):
        """Callers acting on a deleted event get not-found."""
        event = make(EventStatus.DELETED)
        for action in (Action.UPDATE, Action.SIGNUP, Action.CANCEL, Action.DELETE):
            with pytest.raises(EventNotFound):
                transition(event, action)

    def test_source_statuses(self):
        """Only legal source statuses are used in conditional writes."""
        assert source_statuses(Action.SIGNUP) == [EventStatus.ACTIVE]
        assert source_statuses(Action.CANCEL) == [EventStatus.ACTIVE]
        assert set(source_statuses(Action.DELETE)) == {
            EventStatus.ACTIVE,
            EventStatus.CANCELLED,
            EventStatus.COMPLETED,
        }


class TestActors:
    """Tests for owner and administrator permissions."""

    def test_owner_email_is_case_insensitive(self):
        """The coordinator email matches regardless of case and whitespace."""
        event = make(EventStatus.ACTIVE)
        assert Owner("jane@x.com").can_manage(event)
        assert Owner("  JANE@X.COM ").can_manage(event)
        assert not Owner("other@x.com").can_manage(event)

    def test_owner_mismatch_is_unauthorized(self):
        """A non-matching email may not cancel."""
        event = make(EventStatus.ACTIVE)
        with pytest.raises(Unauthorized):
            Owner("other@x.com").authorize_cancel(event, NOW)

    def test_owner_cancel_window(self):
        """Coordinators must cancel at least 6 hours ahead."""
        owner = Owner("jane@x.com")
        assert owner.can_cancel(make(EventStatus.ACTIVE, timedelta(hours=6, minutes=1)), NOW)
        assert not owner.can_cancel(make(EventStatus.ACTIVE, timedelta(hours=5)), NOW)
        with pytest.raises(TooCloseToStart):
            owner.authorize_cancel(make(EventStatus.ACTIVE, timedelta(hours=5)), NOW)

    def test_admin_cancel_window(self):
        """Administrators may cancel until the start time."""
        admin = Administrator()
        assert admin.can_cancel(make(EventStatus.ACTIVE, timedelta(hours=1)), NOW)
        assert admin.can_cancel(make(EventStatus.ACTIVE, timedelta(0)), NOW)
        assert not admin.can_cancel(make(EventStatus.ACTIVE, timedelta(hours=-1)), NOW)

    def test_admin_manages_any_event(self):
        assert Administrator().can_manage(make(EventStatus.ACTIVE))
        assert Administrator().is_admin
        assert not Owner("jane@x.com").is_admin
