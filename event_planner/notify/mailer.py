"""SMTP email transport.

The mailer sends exactly one message per call and reports failure by
raising, so the fan-out can record why each recipient was missed.
"""
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formataddr

from event_planner.core.config import Settings, settings

logger = logging.getLogger(__name__)


class Mailer(ABC):
    """Interface for anything that can deliver a notification email."""

    enabled = True

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        bcc: list[str] | None = None,
        from_name: str | None = None,
    ) -> bool:
        """Deliver one message. Return False or raise when it was not accepted."""


class SmtpMailer(Mailer):
    """Send mail through an SMTP relay.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS. Each
    connection carries ``timeout`` so a hung relay fails the send instead of
    stalling the fan-out.
    """

    def __init__(
        self,
        server: str,
        port: int,
        sender_email: str,
        sender_password: str,
        timeout: float,
        enabled: bool = True,
    ):
        self.server = server
        self.port = port
        self.sender_email = sender_email
        self.sender_password = sender_password
        self.timeout = timeout
        self.enabled = bool(enabled and server and sender_email and sender_password)

        if enabled and not self.enabled:
            # Never log the password itself, only whether it is present.
            logger.warning(
                "Email enabled but configuration incomplete: "
                f"smtp_server={bool(server)} sender_email={bool(sender_email)} "
                f"sender_password={bool(sender_password)}"
            )

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "SmtpMailer":
        return cls(
            server=config.smtp_server,
            port=config.smtp_port,
            sender_email=config.sender_email,
            sender_password=config.sender_password,
            timeout=config.email_timeout_seconds,
            enabled=config.email_enabled,
        )

    def build_message(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        bcc: list[str] | None = None,
        from_name: str | None = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((from_name, self.sender_email)) if from_name else self.sender_email
        message["To"] = to
        if bcc:
            message["Bcc"] = ", ".join(bcc)
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        bcc: list[str] | None = None,
        from_name: str | None = None,
    ) -> bool:
        if not self.enabled:
            logger.info(f"Email disabled, not sending '{subject}' to {to}")
            return False

        message = self.build_message(to, subject, html, text, bcc=bcc, from_name=from_name)

        if self.port == 465:
            client = smtplib.SMTP_SSL(self.server, self.port, timeout=self.timeout)
        else:
            client = smtplib.SMTP(self.server, self.port, timeout=self.timeout)

        with client:
            if self.port != 465:
                client.starttls()
            client.login(self.sender_email, self.sender_password)
            # send_message strips the Bcc header but still delivers to those addresses
            refused = client.send_message(message)

        if refused:
            logger.warning(f"SMTP relay refused recipients for '{subject}': {sorted(refused)}")
        logger.info(f"Email sent: to={to} subject='{subject}'")
        return True
