"""Schemas for automation rule payloads and manual runs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from helpdesk.models.enums import AutomationTrigger


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ConditionIn(BaseModel):
    field: str = ""
    operator: str = ""
    value: str = ""

    @field_validator("field", "operator", mode="before")
    @classmethod
    def normalize_name(cls, value: Any) -> str:
        return _as_text(value).strip()

    @field_validator("value", mode="before")
    @classmethod
    def normalize_value(cls, value: Any) -> str:
        return _as_text(value)


class ActionIn(BaseModel):
    type: str = ""
    value: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> str:
        return _as_text(value).strip().upper()

    @field_validator("value", mode="before")
    @classmethod
    def normalize_value(cls, value: Any) -> str:
        return _as_text(value)


class TicketPreviousState(BaseModel):
    status: str | None = None
    priority: str | None = None
    assignee_id: str | None = None
    group_id: str | None = None
    subject: str | None = None
    description: str | None = None
    source: str | None = None
    contact_id: str | None = None


class AutomationRunRequest(BaseModel):
    trigger: AutomationTrigger = AutomationTrigger.ticket_updated
    previous: TicketPreviousState | None = None


class AutomationRunOut(BaseModel):
    executed_count: int = 0
    actions: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
