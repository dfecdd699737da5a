"""Typed view of automation rules decoded from their stored JSON lists."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter, ValidationError

from helpdesk.core.exceptions import AutomationException
from helpdesk.models.automation import Automation
from helpdesk.models.enums import AutomationTrigger
from helpdesk.schemas.automation import ActionIn, ConditionIn

logger = logging.getLogger(__name__)


class ConditionField(str, enum.Enum):
    status = "status"
    priority = "priority"
    assignee_id = "assigneeId"
    group_id = "groupId"
    subject = "subject"
    description = "description"
    source = "source"
    contact_id = "contactId"
    status_changed = "status_changed"
    priority_changed = "priority_changed"
    assignee_changed = "assignee_changed"
    unknown = "unknown"


class ConditionOperator(str, enum.Enum):
    equals = "equals"
    not_equals = "not_equals"
    contains = "contains"
    not_contains = "not_contains"
    starts_with = "starts_with"
    ends_with = "ends_with"
    is_empty = "is_empty"
    is_not_empty = "is_not_empty"
    unknown = "unknown"


class ActionType(str, enum.Enum):
    set_status = "SET_STATUS"
    set_priority = "SET_PRIORITY"
    assign_agent = "ASSIGN_AGENT"
    assign_group = "ASSIGN_GROUP"
    add_tag = "ADD_TAG"
    remove_tag = "REMOVE_TAG"
    add_note = "ADD_NOTE"
    send_email = "SEND_EMAIL"
    trigger_ai_analysis = "TRIGGER_AI_ANALYSIS"
    unknown = "UNKNOWN"


# Snapshot attribute read by each value field.
VALUE_FIELDS: dict[ConditionField, str] = {
    ConditionField.status: "status",
    ConditionField.priority: "priority",
    ConditionField.assignee_id: "assignee_id",
    ConditionField.group_id: "group_id",
    ConditionField.subject: "subject",
    ConditionField.description: "description",
    ConditionField.source: "source",
    ConditionField.contact_id: "contact_id",
}

# Snapshot attribute compared between previous and current by each change field.
CHANGE_FIELDS: dict[ConditionField, str] = {
    ConditionField.status_changed: "status",
    ConditionField.priority_changed: "priority",
    ConditionField.assignee_changed: "assignee_id",
}


def _lookup(enum_cls: type[enum.Enum], raw: str) -> Any:
    try:
        member = enum_cls(raw)
    except ValueError:
        return enum_cls.unknown
    if member is enum_cls.unknown:
        return enum_cls.unknown
    return member


@dataclass(frozen=True)
class Condition:
    field: ConditionField
    operator: ConditionOperator
    value: str = ""
    raw_field: str = ""
    raw_operator: str = ""

    @classmethod
    def from_payload(cls, payload: ConditionIn) -> Condition:
        return cls(
            field=_lookup(ConditionField, payload.field),
            operator=_lookup(ConditionOperator, payload.operator),
            value=payload.value,
            raw_field=payload.field,
            raw_operator=payload.operator,
        )


@dataclass(frozen=True)
class Action:
    type: ActionType
    value: str = ""
    raw_type: str = ""

    @classmethod
    def from_payload(cls, payload: ActionIn) -> Action:
        return cls(type=_lookup(ActionType, payload.type), value=payload.value, raw_type=payload.type)


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    trigger: AutomationTrigger
    priority: int
    conditions: list[Condition] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)

    @classmethod
    def from_model(cls, automation: Automation) -> Rule:
        return cls(
            id=automation.id,
            name=automation.name,
            trigger=automation.trigger,
            priority=automation.priority,
            conditions=decode_conditions(automation.conditions),
            actions=decode_actions(automation.actions),
        )


_CONDITIONS_ADAPTER = TypeAdapter(list[ConditionIn])
_ACTIONS_ADAPTER = TypeAdapter(list[ActionIn])


def _load_list(raw: Any, *, kind: str) -> list[Any]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise AutomationException(f"Malformed {kind} JSON: {exc.msg}", error_code="INVALID_AUTOMATION_RULE") from exc
    if not isinstance(raw, list):
        raise AutomationException(f"Automation {kind} must be a list", error_code="INVALID_AUTOMATION_RULE")
    return raw


def decode_conditions(raw: Any) -> list[Condition]:
    items = _load_list(raw, kind="conditions")
    try:
        payloads = _CONDITIONS_ADAPTER.validate_python(items)
    except ValidationError as exc:
        raise AutomationException(f"Invalid conditions: {exc.error_count()} errors", error_code="INVALID_AUTOMATION_RULE") from exc
    return [Condition.from_payload(payload) for payload in payloads]


def decode_actions(raw: Any) -> list[Action]:
    items = _load_list(raw, kind="actions")
    try:
        payloads = _ACTIONS_ADAPTER.validate_python(items)
    except ValidationError as exc:
        raise AutomationException(f"Invalid actions: {exc.error_count()} errors", error_code="INVALID_AUTOMATION_RULE") from exc
    return [Action.from_payload(payload) for payload in payloads]
