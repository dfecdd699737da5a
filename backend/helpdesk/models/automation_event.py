"""Audit trail for automation rules that fired on a ticket."""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.db.base import Base, JSONType
from helpdesk.models.ticket import new_id, utcnow


class AutomationEvent(Base):
    __tablename__ = "automation_events"
    __table_args__ = (
        Index("ix_automation_events_ticket_id", "ticket_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    ticket_id: Mapped[str] = mapped_column(ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    actor: Mapped[str] = mapped_column(String(64), nullable=False)
    before_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    after_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
