"""Operator-configured automation rules."""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.db.base import Base, JSONType
from helpdesk.models.enums import AutomationTrigger
from helpdesk.models.ticket import new_id, utcnow


class Automation(Base):
    __tablename__ = "automations"
    __table_args__ = (
        Index("ix_automations_trigger_active_priority", "trigger", "is_active", "priority"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    trigger: Mapped[AutomationTrigger] = mapped_column(
        Enum(AutomationTrigger, name="automation_trigger", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Raw [{field, operator, value}] / [{type, value}] lists; decoded by services.automation.rules.
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    actions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
