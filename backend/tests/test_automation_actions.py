from __future__ import annotations

import pytest

from helpdesk.core.exceptions import InvalidAutomationActionError
from helpdesk.models import Group, TicketMessage, User
from helpdesk.models.enums import MessageAuthorType, TicketPriority, TicketStatus
from helpdesk.services.ai.analysis import AiAnalysis
from helpdesk.services.automation import actions
from helpdesk.services.automation.rules import decode_actions
from helpdesk.services.tickets import list_ticket_tag_names


def _action(type_: str, value: str = ""):  # noqa: ANN202
    return decode_actions([{"type": type_, "value": value}])[0]


def test_set_status_and_priority_write_and_patch(db, make_ticket) -> None:  # noqa: ANN001
    ticket = make_ticket()

    result = actions.execute_action(db, _action("SET_STATUS", "pending"), ticket)
    assert result.success is True
    assert result.description == "Set status to PENDING"
    assert result.patch == {"status": TicketStatus.pending}

    result = actions.execute_action(db, _action("SET_PRIORITY", "URGENT"), ticket)
    db.commit()
    assert result.description == "Set priority to URGENT"
    db.refresh(ticket)
    assert ticket.status == TicketStatus.pending
    assert ticket.priority == TicketPriority.urgent


def test_invalid_enum_value_raises(db, make_ticket) -> None:  # noqa: ANN001
    ticket = make_ticket()
    with pytest.raises(InvalidAutomationActionError):
        actions.execute_action(db, _action("SET_STATUS", "SNOOZED"), ticket)


def test_assign_agent_and_group_describe_the_target(db, make_ticket) -> None:  # noqa: ANN001
    agent = User(email="bob@example.com", name="Bob")
    group = Group(name="Network")
    db.add_all([agent, group])
    db.commit()
    ticket = make_ticket()

    result = actions.execute_action(db, _action("ASSIGN_AGENT", agent.id), ticket)
    assert result.description == "Assigned to Bob"
    assert result.patch == {"assignee_id": agent.id}

    result = actions.execute_action(db, _action("ASSIGN_GROUP", group.id), ticket)
    assert result.description == "Assigned to group Network"

    result = actions.execute_action(db, _action("ASSIGN_AGENT", ""), ticket)
    assert result.description == "Assigned to Unassigned"
    assert result.patch == {"assignee_id": None}

    result = actions.execute_action(db, _action("ASSIGN_GROUP", ""), ticket)
    assert result.description == "Assigned to group None"


def test_tags_are_idempotent(db, make_ticket) -> None:  # noqa: ANN001
    ticket = make_ticket()

    for _ in range(2):
        result = actions.execute_action(db, _action("ADD_TAG", "vip"), ticket)
        db.commit()
        assert result.description == 'Added tag "vip"'
    assert list_ticket_tag_names(db, ticket.id) == ["vip"]

    result = actions.execute_action(db, _action("REMOVE_TAG", "vip"), ticket)
    db.commit()
    assert result.success is True
    assert list_ticket_tag_names(db, ticket.id) == []

    result = actions.execute_action(db, _action("REMOVE_TAG", "never-existed"), ticket)
    assert result.success is True


def test_add_note_creates_internal_system_message(db, make_ticket) -> None:  # noqa: ANN001
    ticket = make_ticket()
    result = actions.execute_action(db, _action("ADD_NOTE", "Escalated by rule"), ticket)
    db.commit()

    assert result.description == "Added internal note"
    note = db.query(TicketMessage).filter(TicketMessage.ticket_id == ticket.id).one()
    assert note.internal is True
    assert note.author_type == MessageAuthorType.system
    assert note.author_name == "Automation"
    assert note.body == "Escalated by rule"


def test_send_email_queues_notification_for_contact(
    db, make_ticket, make_contact, activity_log, monkeypatch
) -> None:  # noqa: ANN001
    sent = []
    loggers = []

    def fake_dispatch(request, *, activity_logger=None):  # noqa: ANN001, ANN202
        sent.append(request)
        loggers.append(activity_logger)

    monkeypatch.setattr(actions, "dispatch_notification", fake_dispatch)
    monkeypatch.setattr(actions, "get_activity_logger", lambda: activity_log)
    ticket = make_ticket(contact=make_contact(email="carol@example.com", name="Carol"))

    result = actions.execute_action(db, _action("SEND_EMAIL", "ticket_created"), ticket)

    assert result.success is True
    assert result.description == "Email notification queued"
    assert len(sent) == 1
    assert sent[0].recipient == "carol@example.com"
    assert sent[0].template == "ticket_created"
    assert sent[0].data["ticketNumber"] == ticket.ticket_number
    assert sent[0].data["contactName"] == "Carol"
    assert loggers == [activity_log]


def test_send_email_without_contact_fails(db, make_ticket, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(actions, "dispatch_notification", lambda request, **kwargs: pytest.fail("should not send"))
    result = actions.execute_action(db, _action("SEND_EMAIL", "hello"), make_ticket())
    assert result.success is False


def test_ai_analysis_adds_note_and_returns_meta(db, make_ticket, monkeypatch) -> None:  # noqa: ANN001
    seen = []

    def fake_analyze(context):  # noqa: ANN001
        seen.append(context)
        return AiAnalysis(text="Likely a DNS issue.", confidence=0.95, reasoning="matches past incidents")

    monkeypatch.setattr(actions, "analyze_ticket", fake_analyze)
    monkeypatch.setattr(actions, "determine_approval_status", lambda confidence: "AUTO_APPROVED")
    ticket = make_ticket(subject="Cannot resolve intranet")

    result = actions.execute_action(db, _action("TRIGGER_AI_ANALYSIS"), ticket)
    db.commit()

    assert seen[0].subject == "Cannot resolve intranet"
    assert result.meta["ai"] == {
        "confidence": 0.95,
        "reasoning": "matches past incidents",
        "approval_status": "AUTO_APPROVED",
    }
    note = db.query(TicketMessage).filter(TicketMessage.ticket_id == ticket.id).one()
    assert note.body == "Likely a DNS issue."
    assert note.internal is True


def test_unknown_action_fails_without_raising(db, make_ticket) -> None:  # noqa: ANN001
    result = actions.execute_action(db, _action("LAUNCH_ROCKET", "x"), make_ticket())
    assert result.success is False
    assert result.description == "Unknown action: LAUNCH_ROCKET"
