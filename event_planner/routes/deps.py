"""Shared route dependencies: who is calling, and how to notify."""
import secrets
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, Header

from event_planner.core.config import settings
from event_planner.notify.fanout import Notifier
from event_planner.notify.mailer import Mailer, SmtpMailer
from event_planner.planning.actors import Actor, Administrator, Owner
from event_planner.planning.errors import Unauthorized


@lru_cache
def get_mailer() -> Mailer:
    """Mailer built once from settings. Tests override this dependency."""
    return SmtpMailer.from_settings(settings)


def get_notifier(
    background_tasks: BackgroundTasks,
    mailer: Mailer = Depends(get_mailer),
) -> Notifier:
    """Notifier whose sends run after the response has been returned."""
    return Notifier(mailer, defer=background_tasks.add_task)


def is_admin_token(token: str | None) -> bool:
    if not settings.admin_token or not token:
        return False
    return secrets.compare_digest(token, settings.admin_token)


def get_actor(
    x_admin_token: str | None = Header(default=None),
    x_coordinator_email: str | None = Header(default=None),
) -> Actor | None:
    """Resolve the caller from request headers, or None if anonymous."""
    if is_admin_token(x_admin_token):
        return Administrator()
    if x_coordinator_email and x_coordinator_email.strip():
        return Owner(x_coordinator_email.strip())
    return None


def require_actor(actor: Actor | None = Depends(get_actor)) -> Actor:
    if actor is None:
        raise Unauthorized("Coordinator email or admin token required")
    return actor


def require_admin(actor: Actor | None = Depends(get_actor)) -> Actor:
    if actor is None or not actor.is_admin:
        raise Unauthorized("Administrator access required")
    return actor
