from event_planner.models.event import Event, EventStatus
from event_planner.models.signup import Signup

__all__ = ["Event", "EventStatus", "Signup"]
