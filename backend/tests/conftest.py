from __future__ import annotations

import itertools
import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MAIL_POLL_ENABLED", "false")

from helpdesk.db.base import Base  # noqa: E402
from helpdesk.models import Automation, Contact, EmailChannel, Ticket  # noqa: E402
from helpdesk.models.enums import AutomationTrigger, TicketPriority, TicketStatus  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        pool_reset_on_return=None,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):  # noqa: ANN001
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):  # noqa: ANN001
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_contact(db):  # noqa: ANN001
    def _make(email: str = "alice@example.com", name: str | None = "Alice") -> Contact:
        contact = Contact(email=email, name=name)
        db.add(contact)
        db.commit()
        return contact

    return _make


@pytest.fixture
def make_ticket(db):  # noqa: ANN001
    numbers = itertools.count(1)

    def _make(
        *,
        subject: str = "Printer is broken",
        description: str | None = "It does not print",
        status: TicketStatus = TicketStatus.open,
        priority: TicketPriority = TicketPriority.medium,
        contact: Contact | None = None,
        ticket_number: int | None = None,
    ) -> Ticket:
        ticket = Ticket(
            ticket_number=ticket_number if ticket_number is not None else next(numbers),
            subject=subject,
            description=description,
            status=status,
            priority=priority,
            source="PORTAL",
            contact_id=contact.id if contact else None,
        )
        db.add(ticket)
        db.commit()
        return ticket

    return _make


@pytest.fixture
def make_automation(db):  # noqa: ANN001
    def _make(
        name: str,
        *,
        trigger: AutomationTrigger = AutomationTrigger.ticket_created,
        priority: int = 0,
        conditions: list | None = None,
        actions: list | None = None,
        is_active: bool = True,
    ) -> Automation:
        automation = Automation(
            name=name,
            trigger=trigger,
            priority=priority,
            conditions=conditions or [],
            actions=actions or [],
            is_active=is_active,
        )
        db.add(automation)
        db.commit()
        return automation

    return _make


@pytest.fixture
def make_channel(db):  # noqa: ANN001
    def _make(**overrides) -> EmailChannel:  # noqa: ANN003
        values = {
            "name": "Support",
            "email": "support@example.com",
            "imap_host": "imap.example.com",
            "imap_port": 993,
            "imap_user": "support@example.com",
            "imap_password": "secret",
            "imap_secure": True,
        }
        values.update(overrides)
        channel = EmailChannel(**values)
        db.add(channel)
        db.commit()
        return channel

    return _make


class RecordingActivityLogger:
    """Stands in for ActivityLogger and keeps entries in memory."""

    def __init__(self) -> None:
        self.entries: list[dict] = []

    def _record(self, kind: str, message: str, **options) -> None:  # noqa: ANN003
        self.entries.append({"kind": kind, "message": message, **options})

    def info(self, message: str, **options) -> None:  # noqa: ANN003
        self._record("info", message, **options)

    def warn(self, message: str, **options) -> None:  # noqa: ANN003
        self._record("warn", message, **options)

    def error(self, message: str, **options) -> None:  # noqa: ANN003
        self._record("error", message, **options)

    def connection(self, message: str, **options) -> None:  # noqa: ANN003
        self._record("connection", message, **options)

    def fetch(self, message: str, **options) -> None:  # noqa: ANN003
        self._record("fetch", message, **options)

    def send(self, message: str, **options) -> None:  # noqa: ANN003
        self._record("send", message, **options)

    def messages(self, kind: str | None = None) -> list[str]:
        return [entry["message"] for entry in self.entries if kind is None or entry["kind"] == kind]


@pytest.fixture
def activity_log() -> RecordingActivityLogger:
    return RecordingActivityLogger()
