"""
Exceptions raised by the lifecycle and admission controllers.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
layer can translate it without knowing the individual classes. Clients use the
code to tell apart the kinds of rejection:

- validation (400): fix the input and resend
- not found (404)
- unauthorized (403): ask for the coordinator email again
- policy (409): a window or state rule said no, and the message says which
- event full (409, ``event_full``): the capacity ceiling was reached
"""

from datetime import datetime


class PlannerError(Exception):
    """Base exception for planner errors."""

    code = "planner_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(PlannerError):
    """Raised when input validation fails. Nothing has touched the store yet."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, fields: list[str] | None = None):
        self.fields = fields or []
        super().__init__(message)


class EventNotFound(PlannerError):
    code = "not_found"
    status_code = 404

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found")


class SignupNotFound(PlannerError):
    code = "signup_not_found"
    status_code = 404

    def __init__(self, event_id: str, signup_id: int):
        self.event_id = event_id
        self.signup_id = signup_id
        super().__init__(f"Signup {signup_id} not found for event {event_id}")


class Unauthorized(PlannerError):
    code = "unauthorized"
    status_code = 403


class PolicyError(PlannerError):
    """A lifecycle rule rejected the operation after its guard was checked."""

    code = "policy_error"
    status_code = 409


class EditWindowClosed(PolicyError):
    code = "edit_window_closed"

    def __init__(self, hours: float):
        self.hours = hours
        super().__init__(f"Events cannot be edited within {hours:g} hours of their start time")


class SignupWindowClosed(PolicyError):
    code = "signup_window_closed"

    def __init__(self, hours: float):
        self.hours = hours
        super().__init__(f"Signups close {hours:g} hour(s) before the event starts")


class TooCloseToStart(PolicyError):
    code = "too_close_to_start"


class AlreadyCancelled(PolicyError):
    code = "already_cancelled"

    def __init__(self, event_id: str, cancelled_at: datetime | None = None):
        self.event_id = event_id
        self.cancelled_at = cancelled_at
        super().__init__("This event has already been cancelled")


class EventCancelled(PolicyError):
    code = "event_cancelled"

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__("This event has been cancelled")


class InvalidTransition(PolicyError):
    code = "invalid_transition"

    def __init__(self, status: str, action: str):
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} an event that is {status}")


class CapacityBelowSignups(PolicyError):
    code = "capacity_below_signups"

    def __init__(self, requested: int, current: int):
        self.requested = requested
        self.current = current
        super().__init__(
            f"Cannot set max participants to {requested}: {current} people already signed up"
        )


class EventFull(PlannerError):
    code = "event_full"
    status_code = 409

    def __init__(self, event_id: str, max_participants: int):
        self.event_id = event_id
        self.max_participants = max_participants
        super().__init__(f"Event is full ({max_participants} participants)")
