"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    admin = "admin"
    agent = "agent"


class TicketStatus(str, enum.Enum):
    open = "OPEN"
    pending = "PENDING"
    resolved = "RESOLVED"
    closed = "CLOSED"


class TicketPriority(str, enum.Enum):
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"
    urgent = "URGENT"


class TicketSource(str, enum.Enum):
    email = "EMAIL"
    portal = "PORTAL"
    agent = "AGENT"
    ai_generated = "AI_GENERATED"


class MessageAuthorType(str, enum.Enum):
    agent = "AGENT"
    contact = "CONTACT"
    system = "SYSTEM"


class AutomationTrigger(str, enum.Enum):
    ticket_created = "TICKET_CREATED"
    ticket_updated = "TICKET_UPDATED"


class ActivityType(str, enum.Enum):
    connection = "CONNECTION"
    fetch = "FETCH"
    send = "SEND"
    error = "ERROR"
    info = "INFO"


class ActivityLevel(str, enum.Enum):
    debug = "DEBUG"
    info = "INFO"
    warn = "WARN"
    error = "ERROR"


# Statuses from which an inbound customer reply reopens the ticket.
REOPENABLE_STATUSES = frozenset({TicketStatus.closed, TicketStatus.resolved})
