"""Ticket repository helpers: snapshots, numbering, contacts, messages, tags."""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import threading
from typing import Any, Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from helpdesk.core.exceptions import NotFoundError
from helpdesk.core.sanitize import clean_email, clean_single_line
from helpdesk.models.contact import Contact
from helpdesk.models.counter import TICKET_NUMBER_COUNTER, Counter
from helpdesk.models.enums import MessageAuthorType, TicketPriority, TicketSource, TicketStatus
from helpdesk.models.ticket import Tag, Ticket, TicketMessage, TicketTag

logger = logging.getLogger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


@dataclasses.dataclass(frozen=True)
class TicketSnapshot:
    """Point-in-time view of the ticket fields automations can see."""

    id: str
    subject: str
    status: str
    priority: str
    ticket_number: int | None = None
    description: str | None = None
    assignee_id: str | None = None
    group_id: str | None = None
    contact_id: str | None = None
    source: str | None = None

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> TicketSnapshot:
        return cls(
            id=ticket.id,
            ticket_number=ticket.ticket_number,
            subject=ticket.subject,
            description=ticket.description,
            status=_enum_value(ticket.status),
            priority=_enum_value(ticket.priority),
            assignee_id=ticket.assignee_id,
            group_id=ticket.group_id,
            contact_id=ticket.contact_id,
            source=ticket.source,
        )

    def apply(self, patch: dict[str, Any]) -> TicketSnapshot:
        if not patch:
            return self
        return dataclasses.replace(self, **{key: _enum_value(value) for key, value in patch.items()})

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def get_ticket(db: Session, ticket_id: str) -> Ticket | None:
    return db.get(Ticket, ticket_id)


def get_ticket_by_number(db: Session, ticket_number: int) -> Ticket | None:
    return db.query(Ticket).filter(Ticket.ticket_number == ticket_number).first()


def load_snapshot(db: Session, ticket_id: str) -> TicketSnapshot:
    ticket = get_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("ticket_not_found", details={"ticket_id": ticket_id})
    return TicketSnapshot.from_ticket(ticket)


class TicketNumberAllocator:
    """Single-writer allocator for ticket numbers.

    Numbers come from the durable ``ticket_number`` counter, row-locked and
    committed in a dedicated transaction, and are reconciled upward against
    ``MAX(tickets.ticket_number)`` so tickets inserted by other paths never
    collide. Gaps are possible when a ticket insert later fails; duplicates
    are not.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._lock = threading.Lock()

    def allocate(self) -> int:
        with self._lock:
            db = self._session_factory()
            try:
                counter = db.execute(
                    select(Counter).where(Counter.name == TICKET_NUMBER_COUNTER).with_for_update()
                ).scalar_one_or_none()
                highest = db.execute(select(func.max(Ticket.ticket_number))).scalar() or 0
                if counter is None:
                    counter = Counter(name=TICKET_NUMBER_COUNTER, value=0)
                    db.add(counter)
                if highest > counter.value:
                    logger.warning(
                        "Ticket number counter drifted behind existing tickets (%s < %s); reconciling",
                        counter.value,
                        highest,
                    )
                next_number = max(counter.value, highest) + 1
                counter.value = next_number
                db.commit()
                return next_number
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()


_default_allocator: TicketNumberAllocator | None = None
_default_allocator_lock = threading.Lock()


def get_ticket_number_allocator() -> TicketNumberAllocator:
    global _default_allocator
    with _default_allocator_lock:
        if _default_allocator is None:
            from helpdesk.db.session import SessionLocal

            _default_allocator = TicketNumberAllocator(SessionLocal)
        return _default_allocator


def find_or_create_contact(db: Session, email: str, name: str | None = None) -> Contact:
    normalized = clean_email(email)
    contact = db.query(Contact).filter(Contact.email == normalized).first()
    if contact:
        return contact
    contact = Contact(email=normalized, name=clean_single_line(name) or None)
    db.add(contact)
    db.flush()
    logger.info("Created contact %s", normalized)
    return contact


def create_ticket(
    db: Session,
    *,
    ticket_number: int,
    subject: str,
    description: str | None,
    contact_id: str | None,
    source: TicketSource = TicketSource.portal,
    status: TicketStatus = TicketStatus.open,
    priority: TicketPriority = TicketPriority.medium,
) -> Ticket:
    ticket = Ticket(
        ticket_number=ticket_number,
        subject=subject,
        description=description,
        status=status,
        priority=priority,
        source=source.value,
        contact_id=contact_id,
    )
    db.add(ticket)
    db.flush()
    return ticket


def add_ticket_message(
    db: Session,
    ticket_id: str,
    *,
    body: str,
    author_type: MessageAuthorType,
    internal: bool = False,
    author_id: str | None = None,
    author_name: str | None = None,
) -> TicketMessage:
    message = TicketMessage(
        ticket_id=ticket_id,
        body=body,
        internal=internal,
        author_type=author_type,
        author_id=author_id,
        author_name=author_name,
    )
    db.add(message)
    db.flush()
    return message


def update_ticket_fields(db: Session, ticket_id: str, **values: Any) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("ticket_not_found", details={"ticket_id": ticket_id})
    for key, value in values.items():
        setattr(ticket, key, value)
    ticket.updated_at = _utcnow()
    db.add(ticket)
    db.flush()
    return ticket


def get_or_create_tag(db: Session, name: str) -> Tag:
    tag = db.query(Tag).filter(Tag.name == name).first()
    if tag:
        return tag
    tag = Tag(name=name)
    db.add(tag)
    db.flush()
    return tag


def add_tag_to_ticket(db: Session, ticket_id: str, tag_name: str) -> bool:
    """Attach a tag, creating it if needed. Returns False when already attached."""
    tag = get_or_create_tag(db, tag_name)
    if db.get(TicketTag, (ticket_id, tag.id)) is not None:
        return False
    db.add(TicketTag(ticket_id=ticket_id, tag_id=tag.id))
    db.flush()
    return True


def remove_tag_from_ticket(db: Session, ticket_id: str, tag_name: str) -> bool:
    tag = db.query(Tag).filter(Tag.name == tag_name).first()
    if not tag:
        return False
    link = db.get(TicketTag, (ticket_id, tag.id))
    if link is None:
        return False
    db.delete(link)
    db.flush()
    return True


def list_ticket_tag_names(db: Session, ticket_id: str) -> list[str]:
    rows = (
        db.query(Tag.name)
        .join(TicketTag, TicketTag.tag_id == Tag.id)
        .filter(TicketTag.ticket_id == ticket_id)
        .order_by(Tag.name.asc())
        .all()
    )
    return [name for (name,) in rows]
