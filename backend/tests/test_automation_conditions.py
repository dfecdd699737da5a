from __future__ import annotations

import pytest

from helpdesk.core.exceptions import AutomationException
from helpdesk.services.automation.conditions import evaluate_condition, evaluate_conditions
from helpdesk.services.automation.rules import (
    ActionType,
    ConditionField,
    ConditionOperator,
    decode_actions,
    decode_conditions,
)
from helpdesk.services.tickets import TicketSnapshot


def _snapshot(**overrides) -> TicketSnapshot:  # noqa: ANN003
    values = {
        "id": "t-1",
        "subject": "VPN is down for the whole office",
        "status": "OPEN",
        "priority": "MEDIUM",
        "description": None,
        "assignee_id": None,
    }
    values.update(overrides)
    return TicketSnapshot(**values)


def _condition(field: str, operator: str, value: str = ""):  # noqa: ANN202
    return decode_conditions([{"field": field, "operator": operator, "value": value}])[0]


def test_empty_condition_list_always_matches() -> None:
    assert evaluate_conditions([], _snapshot()) is True


def test_all_conditions_must_hold() -> None:
    conditions = decode_conditions(
        [
            {"field": "status", "operator": "equals", "value": "OPEN"},
            {"field": "subject", "operator": "contains", "value": "vpn"},
        ]
    )
    assert evaluate_conditions(conditions, _snapshot()) is True

    conditions.append(_condition("priority", "equals", "HIGH"))
    assert evaluate_conditions(conditions, _snapshot()) is False


def test_equals_is_exact_but_string_operators_ignore_case() -> None:
    snapshot = _snapshot()
    assert evaluate_condition(_condition("status", "equals", "open"), snapshot) is False
    assert evaluate_condition(_condition("subject", "contains", "WHOLE OFFICE"), snapshot) is True
    assert evaluate_condition(_condition("subject", "starts_with", "vpn"), snapshot) is True
    assert evaluate_condition(_condition("subject", "ends_with", "OFFICE"), snapshot) is True
    assert evaluate_condition(_condition("subject", "not_contains", "printer"), snapshot) is True


def test_null_values_and_emptiness() -> None:
    snapshot = _snapshot(assignee_id=None, description="   ")
    assert evaluate_condition(_condition("assigneeId", "is_empty"), snapshot) is True
    assert evaluate_condition(_condition("description", "is_empty"), snapshot) is True
    assert evaluate_condition(_condition("assigneeId", "is_not_empty"), snapshot) is False
    assert evaluate_condition(_condition("assigneeId", "contains", "x"), snapshot) is False
    assert evaluate_condition(_condition("assigneeId", "not_contains", "x"), snapshot) is True
    assert evaluate_condition(_condition("assigneeId", "not_equals", "u-1"), snapshot) is True


def test_change_fields_need_a_previous_snapshot() -> None:
    current = _snapshot(status="OPEN")
    condition = _condition("status_changed", "equals", "true")

    assert evaluate_condition(condition, current, None) is False
    assert evaluate_condition(condition, current, _snapshot(status="CLOSED")) is True
    assert evaluate_condition(condition, current, _snapshot(status="OPEN")) is False


def test_unknown_field_and_operator_are_false_not_errors(caplog) -> None:  # noqa: ANN001
    snapshot = _snapshot()
    unknown_field = _condition("mood", "equals", "happy")
    unknown_operator = _condition("status", "matches_regex", "OP.*")

    assert unknown_field.field == ConditionField.unknown
    assert unknown_operator.operator == ConditionOperator.unknown
    assert evaluate_condition(unknown_field, snapshot) is False
    assert evaluate_condition(unknown_operator, snapshot) is False
    assert "mood" in caplog.text
    assert "matches_regex" in caplog.text


def test_decoding_accepts_json_strings_and_normalizes_actions() -> None:
    actions = decode_actions('[{"type": "set_priority", "value": "HIGH"}, {"type": "EXPLODE"}]')
    assert actions[0].type == ActionType.set_priority
    assert actions[0].value == "HIGH"
    assert actions[1].type == ActionType.unknown
    assert actions[1].raw_type == "EXPLODE"

    assert decode_conditions(None) == []
    with pytest.raises(AutomationException):
        decode_conditions("{not json")
    with pytest.raises(AutomationException):
        decode_actions({"type": "ADD_TAG"})
