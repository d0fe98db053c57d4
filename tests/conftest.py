"""Shared test fixtures."""

import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from event_planner.core.config import settings
from event_planner.core.database import get_session
from event_planner.main import app
from event_planner.models import Event, EventStatus, Signup
from event_planner.notify.fanout import Notifier
from event_planner.notify.mailer import Mailer
from event_planner.routes.deps import get_mailer

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
ADMIN_TOKEN = "test-admin-token"


@dataclass
class SentMessage:
    to: str
    subject: str
    html: str
    text: str
    bcc: list[str] = field(default_factory=list)
    from_name: str | None = None


class RecordingMailer(Mailer):
    """Mailer that records messages instead of sending them.

    Addresses in ``fail_for`` raise a transport error; addresses in
    ``slow_for`` sleep ``delay`` seconds before succeeding.
    """

    def __init__(self):
        self.sent: list[SentMessage] = []
        self.fail_for: set[str] = set()
        self.slow_for: set[str] = set()
        self.delay = 0.0
        self._lock = threading.Lock()

    def send(self, to, subject, html, text, bcc=None, from_name=None):
        if to in self.slow_for:
            time.sleep(self.delay)
        if to in self.fail_for:
            raise ConnectionError(f"SMTP relay unreachable for {to}")
        with self._lock:
            self.sent.append(SentMessage(to, subject, html, text, list(bcc or []), from_name))
        return True

    @property
    def recipients(self) -> list[str]:
        return sorted(message.to for message in self.sent)

    def to(self, address: str) -> list[SentMessage]:
        return [message for message in self.sent if message.to == address]


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(name="notifier")
def notifier_fixture(mailer: RecordingMailer) -> Notifier:
    """Notifier that dispatches inline so tests can inspect the outcome."""
    return Notifier(
        mailer,
        ops_email="ops@example.com",
        base_url="https://events.example.com",
        send_timeout=2.0,
        max_workers=4,
    )


@pytest.fixture(name="now")
def now_fixture() -> datetime:
    """Fixed clock that factory-made events are scheduled against."""
    return NOW


@pytest.fixture(name="admin_token")
def admin_token_fixture(monkeypatch) -> str:
    monkeypatch.setattr(settings, "admin_token", ADMIN_TOKEN)
    return ADMIN_TOKEN


@pytest.fixture(name="client")
def client_fixture(session: Session, mailer: RecordingMailer, admin_token: str):
    """Create a test client with the test database session and recording mailer."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_mailer] = lambda: mailer
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_event")
def make_event_fixture(session: Session):
    """Factory for events starting ``starts_in`` after NOW."""

    def make_event(
        starts_in: timedelta = timedelta(days=3),
        max_participants: int = 10,
        status: EventStatus = EventStatus.ACTIVE,
        coordinator_email: str = "Jane@X.com",
        **fields,
    ) -> Event:
        event = Event(
            date_time=NOW + starts_in,
            max_participants=max_participants,
            status=status,
            coordinator_email=coordinator_email,
            planner_name=fields.pop("planner_name", "Jane"),
            location=fields.pop("location", "Riverside Park, Springfield"),
            title=fields.pop("title", "Saturday Run"),
            **fields,
        )
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    return make_event


@pytest.fixture(name="add_signup")
def add_signup_fixture(session: Session):
    """Attach a signup to an event, keeping its counter in step."""

    def add_signup(event: Event, name: str = "Runner", email: str | None = None, phone: str | None = "555-0100") -> Signup:
        signup = Signup(run_id=event.id, name=name, email=email, phone=phone, signed_at=NOW)
        event.signup_count += 1
        session.add(signup)
        session.add(event)
        session.commit()
        session.refresh(signup)
        session.refresh(event)
        return signup

    return add_signup
