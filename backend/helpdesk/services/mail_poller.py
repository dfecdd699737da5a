"""Background loop that polls every configured mailbox on an interval."""

from __future__ import annotations

import asyncio
import logging
import threading

from helpdesk.core.config import settings
from helpdesk.db.session import SessionLocal
from helpdesk.services.ingestion import fetch_all_mailboxes

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
# A cycle that outlives its timeout keeps its worker thread; never start a second one beside it.
_cycle_lock = threading.Lock()


def _run_once() -> None:
    if not _cycle_lock.acquire(blocking=False):
        logger.warning("Skipping mail poll: previous cycle still running")
        return
    db = SessionLocal()
    try:
        result = fetch_all_mailboxes(db)
        logger.info(
            "Mail poll completed: tickets=%s replies=%s errors=%s",
            result.new_tickets,
            result.new_messages,
            len(result.errors),
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Mail poll failed: %s", exc)
    finally:
        db.close()
        _cycle_lock.release()


async def _loop() -> None:
    startup_delay = max(0, settings.MAIL_POLL_STARTUP_DELAY_SECONDS)
    interval = max(30, settings.MAIL_POLL_INTERVAL_SECONDS)
    cycle_timeout = max(1.0, settings.MAIL_CYCLE_TIMEOUT_SECONDS)
    if startup_delay:
        await asyncio.sleep(startup_delay)
    while True:
        try:
            await asyncio.wait_for(asyncio.to_thread(_run_once), timeout=cycle_timeout)
        except asyncio.TimeoutError:
            logger.warning("Mail poll cycle exceeded %s seconds", cycle_timeout)
        await asyncio.sleep(interval)


async def start_mail_poller() -> None:
    global _task
    if _task is not None:
        return
    if not settings.MAIL_POLL_ENABLED:
        return
    _task = asyncio.create_task(_loop(), name="mail-poller")
    logger.info("Mail poller started (every %s seconds)", max(30, settings.MAIL_POLL_INTERVAL_SECONDS))


async def stop_mail_poller() -> None:
    global _task
    task = _task
    _task = None
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
