"""Convenience imports for Alembic metadata discovery."""

from helpdesk.models.user import Group, User
from helpdesk.models.contact import Contact
from helpdesk.models.ticket import Tag, Ticket, TicketMessage, TicketTag
from helpdesk.models.automation import Automation
from helpdesk.models.automation_event import AutomationEvent
from helpdesk.models.email_channel import EmailChannel
from helpdesk.models.email_activity_log import EmailActivityLog
from helpdesk.models.counter import Counter

__all__ = [
    "Automation",
    "AutomationEvent",
    "Contact",
    "Counter",
    "EmailActivityLog",
    "EmailChannel",
    "Group",
    "Tag",
    "Ticket",
    "TicketMessage",
    "TicketTag",
    "User",
]
