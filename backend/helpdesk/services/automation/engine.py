"""Rule engine: load, evaluate and execute automations for a ticket event."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy.orm import Session

from helpdesk.core.exceptions import AutomationException, NotFoundError
from helpdesk.models.automation import Automation
from helpdesk.models.automation_event import AutomationEvent
from helpdesk.models.enums import AutomationTrigger
from helpdesk.models.ticket import Ticket
from helpdesk.services.automation.actions import execute_action
from helpdesk.services.automation.conditions import evaluate_conditions
from helpdesk.services.automation.rules import Rule
from helpdesk.services.tickets import TicketSnapshot, get_ticket

logger = logging.getLogger(__name__)

RULE_FIRED_EVENT = "automation_rule_fired"
AUTOMATION_ACTOR = "automation"


@dataclass
class AutomationRunResult:
    executed_count: int = 0
    actions: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class _RuleOutcome:
    executed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    patch: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)


def load_active_automations(db: Session, trigger: AutomationTrigger) -> tuple[list[Rule], list[str]]:
    """Active rules for ``trigger`` by ascending priority, plus decode errors."""
    rows = (
        db.query(Automation)
        .filter(Automation.trigger == trigger, Automation.is_active.is_(True))
        .order_by(Automation.priority.asc(), Automation.created_at.asc())
        .all()
    )
    rules: list[Rule] = []
    errors: list[str] = []
    for row in rows:
        try:
            rules.append(Rule.from_model(row))
        except AutomationException as exc:
            logger.warning("[Automation] Skipping rule %s (%s): %s", row.name, row.id, exc.message)
            errors.append(f"{row.name}: {exc.message}")
    return rules, errors


def _run_rule(db: Session, rule: Rule, ticket: Ticket) -> _RuleOutcome:
    outcome = _RuleOutcome()
    for action in rule.actions:
        label = action.raw_type or action.type.value
        try:
            result = execute_action(db, action, ticket)
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.exception("[Automation] Action %s failed in rule %s on ticket %s", label, rule.name, ticket.id)
            outcome.failed.append(f"{label}: {exc}")
            continue
        if not result.success:
            db.rollback()
            logger.warning("[Automation] Action %s in rule %s did not apply: %s", label, rule.name, result.description)
            outcome.failed.append(result.description)
            continue
        db.commit()
        outcome.executed.append(result.description)
        outcome.patch.update(result.patch)
        outcome.meta.update(result.meta)
    return outcome


def _record_rule_fired(
    db: Session,
    rule: Rule,
    ticket_id: str,
    before: TicketSnapshot,
    after: TicketSnapshot,
    outcome: _RuleOutcome,
) -> None:
    meta: dict[str, Any] = {
        "automation_id": rule.id,
        "name": rule.name,
        "trigger": rule.trigger.value,
        "actions": outcome.executed,
        "failed": outcome.failed,
    }
    if "ai" in outcome.meta:
        meta["ai"] = outcome.meta["ai"]
    try:
        db.add(
            AutomationEvent(
                ticket_id=ticket_id,
                event_type=RULE_FIRED_EVENT,
                actor=AUTOMATION_ACTOR,
                before_snapshot=before.to_dict(),
                after_snapshot=after.to_dict(),
                meta=meta,
            )
        )
        db.commit()
    except Exception:  # noqa: BLE001
        db.rollback()
        logger.exception("[Automation] Failed to record event for rule %s on ticket %s", rule.name, ticket_id)


def run_automations(
    db: Session,
    trigger: AutomationTrigger,
    ticket: Ticket,
    previous: TicketSnapshot | None = None,
) -> AutomationRunResult:
    """Run every matching rule for ``trigger`` in priority order.

    Each rule sees the ticket as patched by the rules before it, while
    ``previous`` stays fixed for the whole run. Actions commit one at a time
    and a failing action is rolled back without stopping the run, so callers
    must commit their own pending work first.
    """
    result = AutomationRunResult()
    ticket_id = ticket.id
    try:
        rules, decode_errors = load_active_automations(db, trigger)
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        logger.exception("[Automation] Failed to load %s rules for ticket %s", trigger.value, ticket_id)
        result.errors.append(f"Failed to load automations: {exc}")
        return result
    result.errors.extend(decode_errors)
    if not rules:
        logger.debug("[Automation] No active %s rules", trigger.value)
        return result

    current = TicketSnapshot.from_ticket(ticket)
    for rule in rules:
        if not evaluate_conditions(rule.conditions, current, previous):
            continue
        logger.info("[Automation] Rule %s matched ticket %s", rule.name, ticket_id)
        outcome = _run_rule(db, rule, ticket)
        after = current.apply(outcome.patch)
        _record_rule_fired(db, rule, ticket_id, current, after, outcome)
        current = after

        result.actions.extend(f"{rule.name}: {description}" for description in outcome.executed)
        result.errors.extend(f"{rule.name}: {failure}" for failure in outcome.failed)

    result.executed_count = len(result.actions)
    return result


def _require_ticket(db: Session, ticket_id: str) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("ticket_not_found", details={"ticket_id": ticket_id})
    return ticket


def run_ticket_created_automations(db: Session, ticket_id: str) -> AutomationRunResult:
    ticket = _require_ticket(db, ticket_id)
    return run_automations(db, AutomationTrigger.ticket_created, ticket)


def run_ticket_updated_automations(
    db: Session,
    ticket_id: str,
    previous: TicketSnapshot | Mapping[str, Any] | None,
) -> AutomationRunResult:
    """``previous`` may be a full snapshot or just the fields that changed."""
    ticket = _require_ticket(db, ticket_id)
    if previous is not None and not isinstance(previous, TicketSnapshot):
        previous = TicketSnapshot.from_ticket(ticket).apply(dict(previous))
    return run_automations(db, AutomationTrigger.ticket_updated, ticket, previous)
