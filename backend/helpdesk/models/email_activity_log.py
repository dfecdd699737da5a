"""Append-only activity log for mailbox connections and fetches."""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.db.base import Base, JSONType
from helpdesk.models.enums import ActivityLevel, ActivityType
from helpdesk.models.ticket import new_id, utcnow


class EmailActivityLog(Base):
    __tablename__ = "email_activity_logs"
    __table_args__ = (
        Index("ix_email_activity_logs_channel_created", "channel_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    channel_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    channel_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    type: Mapped[ActivityType] = mapped_column(
        Enum(ActivityType, name="activity_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    level: Mapped[ActivityLevel] = mapped_column(
        Enum(ActivityLevel, name="activity_level", values_callable=lambda x: [e.value for e in x]),
        default=ActivityLevel.info,
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
