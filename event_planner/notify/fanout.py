"""Post-commit notification fan-out.

After the lifecycle or admission controller commits a change it hands the
committed entity to a ``Notifier``. The notifier composes every message up
front, while the caller's session still holds the fresh state, then sends
them one per recipient on a thread pool.

Delivery is best effort:
    - each recipient is attempted independently, in parallel
    - a failure (exception, ``False`` from the mailer, or timeout) is recorded
      for that recipient and never stops the others
    - nothing is retried or persisted; the ``FanoutReport`` exists for logging
    - nothing raises out of ``dispatch`` or the trigger methods, so a committed
      change is never undone by a notification problem

In the HTTP path the notifier is built with ``defer`` set to FastAPI's
``BackgroundTasks.add_task`` so dispatch runs after the response is sent.
"""
import functools
import logging
import math
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable

from event_planner.core.config import settings
from event_planner.models import Event, Signup
from event_planner.models.schemas import EventLinks
from event_planner.notify.mailer import Mailer
from event_planner.notify.templates import render, sender_name

logger = logging.getLogger(__name__)


@dataclass
class FieldChange:
    """One field that an update changed, formatted for display."""
    field: str
    label: str
    old: str
    new: str


@dataclass
class OutgoingMessage:
    kind: str
    to: str
    subject: str
    html: str
    text: str
    bcc: list[str] = field(default_factory=list)
    from_name: str | None = None


@dataclass
class NotificationAttempt:
    recipient: str
    kind: str
    ok: bool
    reason: str | None = None


@dataclass
class FanoutReport:
    kind: str
    attempts: list[NotificationAttempt] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.ok)

    @property
    def failed(self) -> int:
        return sum(1 for attempt in self.attempts if not attempt.ok)


def best_effort(func: Callable) -> Callable:
    """Log and swallow any error from a post-commit notification step.

    The decorated call returns None instead of raising, so a committed change
    is never reported to its caller as a failure.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.exception(f"Notification step {func.__name__} failed")
            return None

    return wrapper


class Notifier:
    """Compose and dispatch the emails that follow a committed transition."""

    def __init__(
        self,
        mailer: Mailer,
        ops_email: str | None = None,
        base_url: str | None = None,
        send_timeout: float | None = None,
        max_workers: int | None = None,
        defer: Callable | None = None,
    ):
        self.mailer = mailer
        self.ops_email = ops_email if ops_email is not None else settings.ops_email
        self.base_url = (base_url or settings.public_base_url).rstrip("/")
        self.send_timeout = send_timeout if send_timeout is not None else settings.email_timeout_seconds
        self.max_workers = max_workers or settings.notify_max_workers
        self.defer = defer

    def links_for(self, event: Event) -> EventLinks:
        return EventLinks(
            signup=f"{self.base_url}/signup.html?id={event.id}",
            manage=f"{self.base_url}/manage.html?id={event.id}",
        )

    # =========================================================================
    # Triggers
    # =========================================================================

    @best_effort
    def event_created(self, event: Event, links: EventLinks) -> FanoutReport | None:
        html, text = render("event_created", event=event, links=links)
        message = OutgoingMessage(
            kind="event_created",
            to=event.coordinator_email,
            subject=f"Event Created: {event.display_title}",
            html=html,
            text=text,
            from_name=sender_name(event.title),
        )
        return self._submit("event_created", [message])

    @best_effort
    def event_updated(
        self,
        event: Event,
        changes: list[FieldChange],
        signups: list[Signup],
    ) -> FanoutReport | None:
        """Tell the coordinator and every signup with an email what changed."""
        if not changes:
            return None

        from_name = sender_name(event.title)
        html, text = render("event_updated", event=event, changes=changes)
        messages = [
            OutgoingMessage(
                kind="event_updated",
                to=event.coordinator_email,
                subject=f"Changed: Event Updated: {event.display_title}",
                html=html,
                text=text,
                from_name=from_name,
            )
        ]
        for signup in signups:
            if not signup.has_email:
                continue
            html, text = render(
                "event_updated_participant", event=event, changes=changes, signup=signup
            )
            messages.append(
                OutgoingMessage(
                    kind="event_updated_participant",
                    to=signup.email.strip(),
                    subject=f"Event Updated: {event.display_title}",
                    html=html,
                    text=text,
                    from_name=from_name,
                )
            )
        return self._submit("event_updated", messages)

    @best_effort
    def event_cancelled(self, event: Event, signups: list[Signup]) -> FanoutReport | None:
        """One notice per signup with an email, blind-copied to ops and the coordinator."""
        bcc = [address for address in (self.ops_email, event.coordinator_email) if address]
        from_name = sender_name(event.title)
        messages = []
        for signup in signups:
            if not signup.has_email:
                continue
            html, text = render("event_cancelled", event=event, signup=signup)
            messages.append(
                OutgoingMessage(
                    kind="event_cancelled",
                    to=signup.email.strip(),
                    subject=f"Cancelled: {event.display_title}",
                    html=html,
                    text=text,
                    bcc=list(bcc),
                    from_name=from_name,
                )
            )
        if not messages:
            logger.info(f"Event {event.id} cancelled with no signups to notify")
            return None
        return self._submit("event_cancelled", messages)

    @best_effort
    def signup_created(self, event: Event, signup: Signup) -> FanoutReport | None:
        """Confirm to the signee (when they gave an email) and notify the coordinator."""
        from_name = sender_name(event.title)
        messages = []
        if signup.has_email:
            html, text = render(
                "signup_confirmation",
                event=event,
                signup=signup,
                event_link=self.links_for(event).signup,
            )
            messages.append(
                OutgoingMessage(
                    kind="signup_confirmation",
                    to=signup.email.strip(),
                    subject=f"Signup Confirmed: {event.display_title}",
                    html=html,
                    text=text,
                    from_name=from_name,
                )
            )
        html, text = render("signup_notification", event=event, signup=signup)
        messages.append(
            OutgoingMessage(
                kind="signup_notification",
                to=event.coordinator_email,
                subject=f"New Signup: {event.display_title}",
                html=html,
                text=text,
                from_name=from_name,
            )
        )
        return self._submit("signup", messages)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _submit(self, kind: str, messages: list[OutgoingMessage]) -> FanoutReport | None:
        if not self.mailer.enabled:
            logger.info(f"Email service is disabled, skipping {len(messages)} {kind} message(s)")
            return None
        if self.defer is not None:
            self.defer(self.dispatch, kind, messages)
            return None
        return self.dispatch(kind, messages)

    def dispatch(self, kind: str, messages: list[OutgoingMessage]) -> FanoutReport:
        """Send every message in parallel and report per-recipient outcomes."""
        report = FanoutReport(kind=kind)
        if not messages:
            return report

        workers = min(self.max_workers, len(messages))
        # Queued sends get their own timeout slot once a worker frees up
        deadline = self.send_timeout * math.ceil(len(messages) / workers)

        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify")
        futures = {pool.submit(self._send_one, message): message for message in messages}
        try:
            done, not_done = wait(futures, timeout=deadline)
            for future, message in futures.items():
                if future in not_done:
                    future.cancel()
                    attempt = NotificationAttempt(
                        message.to, message.kind, ok=False,
                        reason=f"timed out after {self.send_timeout:g}s",
                    )
                else:
                    attempt = future.result()
                report.attempts.append(attempt)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        for attempt in report.attempts:
            if not attempt.ok:
                logger.error(f"Notification {attempt.kind} to {attempt.recipient} failed: {attempt.reason}")
        logger.info(f"Fan-out {kind}: {report.sent} sent, {report.failed} failed")
        return report

    def _send_one(self, message: OutgoingMessage) -> NotificationAttempt:
        try:
            accepted = self.mailer.send(
                message.to,
                message.subject,
                message.html,
                message.text,
                bcc=message.bcc or None,
                from_name=message.from_name,
            )
        except Exception as e:
            return NotificationAttempt(message.to, message.kind, ok=False, reason=f"{type(e).__name__}: {e}")
        if not accepted:
            return NotificationAttempt(message.to, message.kind, ok=False, reason="rejected by transport")
        return NotificationAttempt(message.to, message.kind, ok=True)
