"""Side-effecting automation actions applied to a single ticket."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from helpdesk.core.exceptions import InvalidAutomationActionError
from helpdesk.models.enums import MessageAuthorType, TicketPriority, TicketStatus
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import Group, User
from helpdesk.services.activity_logger import get_activity_logger
from helpdesk.services.ai import analyze_ticket, determine_approval_status
from helpdesk.services.ai.analysis import TicketContext
from helpdesk.services.automation.rules import Action, ActionType
from helpdesk.services.notifications import NotificationRequest, dispatch_notification
from helpdesk.services.tickets import (
    add_tag_to_ticket,
    add_ticket_message,
    list_ticket_tag_names,
    remove_tag_from_ticket,
    update_ticket_fields,
)

logger = logging.getLogger(__name__)

AUTOMATION_AUTHOR = "Automation"


@dataclass
class ActionResult:
    success: bool
    description: str
    patch: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)


def _set_status(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    raw = action.value.strip().upper()
    try:
        status = TicketStatus(raw)
    except ValueError as exc:
        raise InvalidAutomationActionError(action.type.value, action.value) from exc
    update_ticket_fields(db, ticket.id, status=status)
    return ActionResult(True, f"Set status to {status.value}", patch={"status": status})


def _set_priority(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    raw = action.value.strip().upper()
    try:
        priority = TicketPriority(raw)
    except ValueError as exc:
        raise InvalidAutomationActionError(action.type.value, action.value) from exc
    update_ticket_fields(db, ticket.id, priority=priority)
    return ActionResult(True, f"Set priority to {priority.value}", patch={"priority": priority})


def _assign_agent(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    assignee_id = action.value.strip() or None
    update_ticket_fields(db, ticket.id, assignee_id=assignee_id)
    agent = db.get(User, assignee_id) if assignee_id else None
    label = (agent.name or agent.email) if agent else "Unassigned"
    return ActionResult(True, f"Assigned to {label}", patch={"assignee_id": assignee_id})


def _assign_group(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    group_id = action.value.strip() or None
    update_ticket_fields(db, ticket.id, group_id=group_id)
    group = db.get(Group, group_id) if group_id else None
    label = group.name if group else "None"
    return ActionResult(True, f"Assigned to group {label}", patch={"group_id": group_id})


def _add_tag(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    name = action.value.strip()
    if not name:
        raise InvalidAutomationActionError(action.type.value, action.value)
    add_tag_to_ticket(db, ticket.id, name)
    return ActionResult(True, f'Added tag "{name}"')


def _remove_tag(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    name = action.value.strip()
    remove_tag_from_ticket(db, ticket.id, name)
    return ActionResult(True, f'Removed tag "{name}"')


def _add_note(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    add_ticket_message(
        db,
        ticket.id,
        body=action.value,
        author_type=MessageAuthorType.system,
        internal=True,
        author_name=AUTOMATION_AUTHOR,
    )
    return ActionResult(True, "Added internal note")


def _template_data(db: Session, ticket: Ticket) -> dict[str, Any]:
    contact = ticket.contact
    assignee = db.get(User, ticket.assignee_id) if ticket.assignee_id else None
    return {
        "ticketNumber": ticket.ticket_number,
        "subject": ticket.subject,
        "contactName": contact.name if contact else None,
        "contactEmail": contact.email if contact else None,
        "newStatus": getattr(ticket.status, "value", ticket.status),
        "priority": getattr(ticket.priority, "value", ticket.priority),
        "assigneeName": (assignee.name or assignee.email) if assignee else None,
    }


def _send_email(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    contact = ticket.contact
    if contact is None or not contact.email:
        return ActionResult(False, "No contact email to notify")
    dispatch_notification(
        NotificationRequest(
            template=action.value,
            recipient=contact.email,
            data=_template_data(db, ticket),
            ticket_id=ticket.id,
        ),
        activity_logger=get_activity_logger(),
    )
    return ActionResult(True, "Email notification queued")


def _trigger_ai_analysis(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    context = TicketContext(
        ticket_number=ticket.ticket_number,
        subject=ticket.subject,
        description=ticket.description,
        status=getattr(ticket.status, "value", ticket.status),
        priority=getattr(ticket.priority, "value", ticket.priority),
        tags=list_ticket_tag_names(db, ticket.id),
    )
    analysis = analyze_ticket(context)
    approval = determine_approval_status(analysis.confidence)
    add_ticket_message(
        db,
        ticket.id,
        body=analysis.text,
        author_type=MessageAuthorType.system,
        internal=True,
        author_name=AUTOMATION_AUTHOR,
    )
    return ActionResult(
        True,
        "AI analysis added",
        meta={
            "ai": {
                "confidence": analysis.confidence,
                "reasoning": analysis.reasoning,
                "approval_status": getattr(approval, "value", approval),
            }
        },
    )


ActionHandler = Callable[[Session, Action, Ticket], ActionResult]

ACTION_HANDLERS: dict[ActionType, ActionHandler] = {
    ActionType.set_status: _set_status,
    ActionType.set_priority: _set_priority,
    ActionType.assign_agent: _assign_agent,
    ActionType.assign_group: _assign_group,
    ActionType.add_tag: _add_tag,
    ActionType.remove_tag: _remove_tag,
    ActionType.add_note: _add_note,
    ActionType.send_email: _send_email,
    ActionType.trigger_ai_analysis: _trigger_ai_analysis,
}


def execute_action(db: Session, action: Action, ticket: Ticket) -> ActionResult:
    """Run one action. Invalid values and collaborator failures raise."""
    handler = ACTION_HANDLERS.get(action.type)
    if handler is None:
        name = action.raw_type or action.type.value
        logger.warning("[Automation] Unknown action type: %s", name)
        return ActionResult(False, f"Unknown action: {name}")
    return handler(db, action, ticket)
