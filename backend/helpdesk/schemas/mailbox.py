"""Schemas for mailbox fetch runs and the activity log."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field

from helpdesk.models.enums import ActivityLevel, ActivityType


class MailboxFetchRequest(BaseModel):
    channel_id: str | None = None


class IngestionResultOut(BaseModel):
    success: bool
    new_tickets: int = 0
    new_messages: int = 0
    errors: list[str] = Field(default_factory=list)
    summary: str = ""


class ActivityLogOut(BaseModel):
    id: str
    channel_id: str | None = None
    channel_name: str | None = None
    type: ActivityType
    level: ActivityLevel
    message: str
    details: dict[str, Any] | None = None
    duration_ms: int | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ActivityLogListOut(BaseModel):
    logs: list[ActivityLogOut] = Field(default_factory=list)


class ActivityLogPruneOut(BaseModel):
    success: bool = True
    deleted_count: int = 0
    message: str = ""
