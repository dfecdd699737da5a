"""Persistent activity log for mailbox connections, fetches and sends.

Entries are written through their own short-lived session so that a rollback
in the caller's unit of work never erases the audit trail, and a failing
write never breaks the caller. Every entry is mirrored into the process log.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from helpdesk.models.email_activity_log import EmailActivityLog
from helpdesk.models.enums import ActivityLevel, ActivityType

logger = logging.getLogger(__name__)

_PY_LEVELS = {
    ActivityLevel.debug: logging.DEBUG,
    ActivityLevel.info: logging.INFO,
    ActivityLevel.warn: logging.WARNING,
    ActivityLevel.error: logging.ERROR,
}


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class ActivityLogger:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def log(
        self,
        type: ActivityType,
        message: str,
        *,
        level: ActivityLevel = ActivityLevel.info,
        channel_id: str | None = None,
        channel_name: str | None = None,
        details: dict[str, Any] | None = None,
        duration_ms: int | None = None,
    ) -> None:
        logger.log(
            _PY_LEVELS.get(level, logging.INFO),
            "[%s] %s%s",
            type.value,
            f"{channel_name}: " if channel_name else "",
            message,
        )
        db = self._session_factory()
        try:
            db.add(
                EmailActivityLog(
                    channel_id=channel_id,
                    channel_name=channel_name,
                    type=type,
                    level=level,
                    message=message,
                    details=details or None,
                    duration_ms=duration_ms,
                )
            )
            db.commit()
        except Exception:  # noqa: BLE001
            db.rollback()
            logger.exception("Failed to persist activity log entry: %s", message)
        finally:
            db.close()

    def info(self, message: str, *, level: ActivityLevel = ActivityLevel.info, **options: Any) -> None:
        self.log(ActivityType.info, message, level=level, **options)

    def warn(self, message: str, **options: Any) -> None:
        self.log(ActivityType.info, message, level=ActivityLevel.warn, **options)

    def error(self, message: str, *, level: ActivityLevel = ActivityLevel.error, **options: Any) -> None:
        self.log(ActivityType.error, message, level=level, **options)

    def connection(self, message: str, *, level: ActivityLevel = ActivityLevel.info, **options: Any) -> None:
        self.log(ActivityType.connection, message, level=level, **options)

    def fetch(self, message: str, *, level: ActivityLevel = ActivityLevel.info, **options: Any) -> None:
        self.log(ActivityType.fetch, message, level=level, **options)

    def send(self, message: str, *, level: ActivityLevel = ActivityLevel.info, **options: Any) -> None:
        self.log(ActivityType.send, message, level=level, **options)


def list_recent_activity(
    db: Session,
    *,
    channel_id: str | None = None,
    type: ActivityType | None = None,
    level: ActivityLevel | None = None,
    limit: int = 100,
) -> list[EmailActivityLog]:
    query = db.query(EmailActivityLog)
    if channel_id:
        query = query.filter(EmailActivityLog.channel_id == channel_id)
    if type is not None:
        query = query.filter(EmailActivityLog.type == type)
    if level is not None:
        query = query.filter(EmailActivityLog.level == level)
    return query.order_by(EmailActivityLog.created_at.desc()).limit(limit).all()


def prune_activity_logs(db: Session, *, days_to_keep: int = 7) -> int:
    """Retention pruning for operators; the ingestion path never calls this."""
    cutoff = _utcnow() - dt.timedelta(days=max(0, days_to_keep))
    deleted = (
        db.query(EmailActivityLog)
        .filter(EmailActivityLog.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return int(deleted or 0)


def get_activity_logger() -> ActivityLogger:
    from helpdesk.db.session import SessionLocal

    return ActivityLogger(SessionLocal)
