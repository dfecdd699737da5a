"""Turn fetched mailbox messages into tickets and replies."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from helpdesk.models.email_channel import EmailChannel
from helpdesk.models.enums import REOPENABLE_STATUSES, MessageAuthorType, TicketSource, TicketStatus
from helpdesk.models.ticket import Ticket
from helpdesk.services.activity_logger import ActivityLogger, get_activity_logger
from helpdesk.services.automation import run_ticket_created_automations, run_ticket_updated_automations
from helpdesk.services.mailbox.parsing import (
    ParsedEmail,
    clean_subject,
    extract_reply_text,
    parse_ticket_number,
    sender_display_name,
)
from helpdesk.services.mailbox.reader import MailboxReader
from helpdesk.services.tickets import (
    TicketNumberAllocator,
    TicketSnapshot,
    add_ticket_message,
    create_ticket,
    find_or_create_contact,
    get_ticket_by_number,
    get_ticket_number_allocator,
    update_ticket_fields,
)

logger = logging.getLogger(__name__)

NO_CHANNELS_ERROR = "No email channels with IMAP configured"
CHANNEL_NOT_FOUND_ERROR = "Email channel not found"
CHANNEL_NOT_CONFIGURED_ERROR = "IMAP not configured for this channel"

ReaderFactory = Callable[[Any, ActivityLogger], MailboxReader]


class OutcomeKind(str, enum.Enum):
    new_ticket = "new_ticket"
    reply = "reply"
    rejected = "rejected"


@dataclass
class ProcessOutcome:
    kind: OutcomeKind
    ticket_id: str | None = None
    ticket_number: int | None = None
    error: str | None = None


@dataclass
class IngestionResult:
    success: bool = True
    new_tickets: int = 0
    new_messages: int = 0
    errors: list[str] = field(default_factory=list)

    def add(self, outcome: ProcessOutcome) -> None:
        if outcome.kind == OutcomeKind.new_ticket:
            self.new_tickets += 1
        elif outcome.kind == OutcomeKind.reply:
            self.new_messages += 1
        elif outcome.error:
            self.errors.append(outcome.error)

    def summary(self) -> str:
        parts = []
        if self.new_tickets:
            parts.append(f"created {self.new_tickets} ticket{'s' if self.new_tickets != 1 else ''}")
        if self.new_messages:
            parts.append(f"added {self.new_messages} repl{'ies' if self.new_messages != 1 else 'y'}")
        if self.errors:
            parts.append(f"{len(self.errors)} error{'s' if len(self.errors) != 1 else ''}")
        return ", ".join(parts) if parts else "no new mail"


def _append_reply(db: Session, ticket: Ticket, message: ParsedEmail, body: str) -> ProcessOutcome:
    add_ticket_message(
        db,
        ticket.id,
        body=body,
        author_type=MessageAuthorType.contact,
        author_id=ticket.contact_id,
        author_name=sender_display_name(message),
    )
    previous = None
    if ticket.status in REOPENABLE_STATUSES:
        previous = TicketSnapshot.from_ticket(ticket)
        update_ticket_fields(db, ticket.id, status=TicketStatus.open)
        logger.info("Reopened ticket #%s on reply from %s", ticket.ticket_number, message.from_address)
    else:
        update_ticket_fields(db, ticket.id)
    db.commit()

    if previous is not None:
        run = run_ticket_updated_automations(db, ticket.id, previous)
        for error in run.errors:
            logger.warning("Automation error on ticket #%s: %s", ticket.ticket_number, error)
    return ProcessOutcome(OutcomeKind.reply, ticket_id=ticket.id, ticket_number=ticket.ticket_number)


def _open_ticket(
    db: Session,
    message: ParsedEmail,
    body: str,
    allocator: TicketNumberAllocator,
) -> ProcessOutcome:
    # Allocation commits on its own connection, so take the number first.
    ticket_number = allocator.allocate()
    contact = find_or_create_contact(db, message.from_address, sender_display_name(message))
    ticket = create_ticket(
        db,
        ticket_number=ticket_number,
        subject=clean_subject(message.subject),
        description=body,
        contact_id=contact.id,
        source=TicketSource.email,
    )
    add_ticket_message(
        db,
        ticket.id,
        body=body,
        author_type=MessageAuthorType.contact,
        author_id=contact.id,
        author_name=sender_display_name(message),
    )
    db.commit()
    logger.info("Created ticket #%s from %s: %s", ticket_number, message.from_address, ticket.subject)

    run = run_ticket_created_automations(db, ticket.id)
    for error in run.errors:
        logger.warning("Automation error on ticket #%s: %s", ticket_number, error)
    return ProcessOutcome(OutcomeKind.new_ticket, ticket_id=ticket.id, ticket_number=ticket_number)


def process_inbound_email(
    db: Session,
    message: ParsedEmail,
    channel: Any = None,
    *,
    allocator: TicketNumberAllocator | None = None,
) -> ProcessOutcome:
    """Thread a message onto its ticket, or open a new ticket for it."""
    sender = (message.from_address or "").strip().lower()
    if not sender:
        return ProcessOutcome(OutcomeKind.rejected, error="No sender address")

    body = extract_reply_text(message.body)

    ticket_number = parse_ticket_number(message.subject)
    if ticket_number is not None:
        ticket = get_ticket_by_number(db, ticket_number)
        if ticket is not None and ticket.contact is not None and ticket.contact.email.lower() == sender:
            return _append_reply(db, ticket, message, body)
        logger.info(
            "Subject references ticket #%s but sender %s does not own it; opening a new ticket",
            ticket_number,
            sender,
        )

    return _open_ticket(db, message, body, allocator or get_ticket_number_allocator())


def _ingest_channel(
    db: Session,
    channel: EmailChannel,
    result: IngestionResult,
    *,
    reader_factory: ReaderFactory,
    allocator: TicketNumberAllocator | None,
    activity_logger: ActivityLogger,
) -> None:
    logger.info("Fetching emails for %s", channel.email)
    fetched = reader_factory(channel, activity_logger).fetch_unseen()
    result.errors.extend(fetched.errors)

    for message in fetched.messages:
        try:
            outcome = process_inbound_email(db, message, channel, allocator=allocator)
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.exception("Failed to process message %s from %s", message.uid, channel.email)
            activity_logger.error(
                f"Failed to process message from {message.from_address}: {exc}",
                channel_id=channel.id,
                channel_name=channel.name,
                details={"uid": message.uid, "subject": message.subject},
            )
            result.errors.append(f"{channel.name}: {exc}")
            continue
        result.add(outcome)


def fetch_all_mailboxes(
    db: Session,
    *,
    reader_factory: ReaderFactory = MailboxReader,
    allocator: TicketNumberAllocator | None = None,
    activity_logger: ActivityLogger | None = None,
) -> IngestionResult:
    """Poll every active channel with an IMAP host, one after another."""
    activity_logger = activity_logger or get_activity_logger()
    result = IngestionResult()
    channels = (
        db.query(EmailChannel)
        .filter(
            EmailChannel.is_active.is_(True),
            EmailChannel.imap_host.is_not(None),
            EmailChannel.imap_port.is_not(None),
        )
        .order_by(EmailChannel.created_at.asc())
        .all()
    )
    if not channels:
        logger.info(NO_CHANNELS_ERROR)
        result.errors.append(NO_CHANNELS_ERROR)
        return result

    for channel in channels:
        try:
            _ingest_channel(
                db,
                channel,
                result,
                reader_factory=reader_factory,
                allocator=allocator,
                activity_logger=activity_logger,
            )
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.exception("Mailbox fetch failed for %s", channel.email)
            result.success = False
            result.errors.append(str(exc))

    if result.new_tickets or result.new_messages or result.errors:
        activity_logger.info(f"Mail fetch finished: {result.summary()}")
    return result


def fetch_mailbox(
    db: Session,
    channel_id: str,
    *,
    reader_factory: ReaderFactory = MailboxReader,
    allocator: TicketNumberAllocator | None = None,
    activity_logger: ActivityLogger | None = None,
) -> IngestionResult:
    activity_logger = activity_logger or get_activity_logger()
    result = IngestionResult()
    channel = db.get(EmailChannel, channel_id)
    if channel is None:
        result.success = False
        result.errors.append(CHANNEL_NOT_FOUND_ERROR)
        return result
    if not channel.imap_host or not channel.imap_port:
        result.success = False
        result.errors.append(CHANNEL_NOT_CONFIGURED_ERROR)
        return result

    try:
        _ingest_channel(
            db,
            channel,
            result,
            reader_factory=reader_factory,
            allocator=allocator,
            activity_logger=activity_logger,
        )
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        logger.exception("Mailbox fetch failed for %s", channel.email)
        result.success = False
        result.errors.append(str(exc))
    return result
