"""Pure evaluation of automation conditions against ticket snapshots."""

from __future__ import annotations

import logging
from typing import Sequence

from helpdesk.services.automation.rules import (
    CHANGE_FIELDS,
    VALUE_FIELDS,
    Condition,
    ConditionOperator,
)
from helpdesk.services.tickets import TicketSnapshot

logger = logging.getLogger(__name__)


def evaluate_conditions(
    conditions: Sequence[Condition],
    current: TicketSnapshot,
    previous: TicketSnapshot | None = None,
) -> bool:
    """AND of every condition; an empty list always matches."""
    if not conditions:
        return True
    return all(evaluate_condition(condition, current, previous) for condition in conditions)


def evaluate_condition(
    condition: Condition,
    current: TicketSnapshot,
    previous: TicketSnapshot | None = None,
) -> bool:
    change_attr = CHANGE_FIELDS.get(condition.field)
    if change_attr is not None:
        # Nothing to compare against on creation.
        if previous is None:
            return False
        return getattr(previous, change_attr) != getattr(current, change_attr)

    value_attr = VALUE_FIELDS.get(condition.field)
    if value_attr is None:
        logger.warning("[Automation] Unknown condition field: %s", condition.raw_field or condition.field.value)
        return False

    raw = getattr(current, value_attr)
    current_value = None if raw is None else str(raw)
    return compare(condition.operator, current_value, condition.value, raw_operator=condition.raw_operator)


def compare(
    operator: ConditionOperator,
    current: str | None,
    expected: str,
    *,
    raw_operator: str = "",
) -> bool:
    if operator == ConditionOperator.equals:
        return current == expected
    if operator == ConditionOperator.not_equals:
        return current != expected
    if operator == ConditionOperator.is_empty:
        return not current or not current.strip()
    if operator == ConditionOperator.is_not_empty:
        return bool(current) and bool(current.strip())

    haystack = current.lower() if current is not None else None
    needle = expected.lower()
    if operator == ConditionOperator.contains:
        return haystack is not None and needle in haystack
    if operator == ConditionOperator.not_contains:
        return not (haystack is not None and needle in haystack)
    if operator == ConditionOperator.starts_with:
        return haystack is not None and haystack.startswith(needle)
    if operator == ConditionOperator.ends_with:
        return haystack is not None and haystack.endswith(needle)

    logger.warning("[Automation] Unknown operator: %s", raw_operator or operator.value)
    return False
