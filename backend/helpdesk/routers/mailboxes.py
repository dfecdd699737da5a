"""Operator endpoints for mailbox fetching and the mailbox activity log."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.db.session import get_db
from helpdesk.models.enums import ActivityLevel, ActivityType
from helpdesk.schemas.mailbox import (
    ActivityLogListOut,
    ActivityLogOut,
    ActivityLogPruneOut,
    IngestionResultOut,
    MailboxFetchRequest,
)
from helpdesk.services.activity_logger import list_recent_activity, prune_activity_logs
from helpdesk.services.ingestion import fetch_all_mailboxes, fetch_mailbox

router = APIRouter()


@router.post("/fetch", response_model=IngestionResultOut)
def post_fetch(
    payload: MailboxFetchRequest | None = Body(default=None),
    db: Session = Depends(get_db),
) -> IngestionResultOut:
    if payload and payload.channel_id:
        result = fetch_mailbox(db, payload.channel_id)
    else:
        result = fetch_all_mailboxes(db)
    return IngestionResultOut(
        success=result.success,
        new_tickets=result.new_tickets,
        new_messages=result.new_messages,
        errors=result.errors,
        summary=result.summary(),
    )


@router.get("/logs", response_model=ActivityLogListOut)
def get_logs(
    channel_id: str | None = Query(default=None),
    type: ActivityType | None = Query(default=None),
    level: ActivityLevel | None = Query(default=None),
    limit: int = Query(default=100, ge=1),
    db: Session = Depends(get_db),
) -> ActivityLogListOut:
    records = list_recent_activity(
        db,
        channel_id=channel_id,
        type=type,
        level=level,
        limit=min(limit, settings.ACTIVITY_LOG_MAX_LIMIT),
    )
    return ActivityLogListOut(logs=[ActivityLogOut.model_validate(record) for record in records])


@router.delete("/logs", response_model=ActivityLogPruneOut)
def delete_logs(
    days_to_keep: int = Query(default=7, ge=0),
    db: Session = Depends(get_db),
) -> ActivityLogPruneOut:
    deleted = prune_activity_logs(db, days_to_keep=days_to_keep)
    return ActivityLogPruneOut(
        success=True,
        deleted_count=deleted,
        message=f"Deleted {deleted} log entries older than {days_to_keep} days",
    )
