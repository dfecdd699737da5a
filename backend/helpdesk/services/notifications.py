"""Fire-and-forget delivery of contact-facing notifications.

Sends run on a small thread pool so ticket processing never waits on SMTP.
Outcomes, including failures, are reported from the future's completion
callback instead of being raised to the caller.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from helpdesk.core.config import settings
from helpdesk.services.activity_logger import ActivityLogger
from helpdesk.services.email import compose_ticket_email, send_email

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


@dataclass(frozen=True)
class NotificationRequest:
    template: str
    recipient: str
    data: dict[str, Any] = field(default_factory=dict)
    ticket_id: str | None = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=max(1, settings.NOTIFICATION_WORKERS),
                thread_name_prefix="notify",
            )
        return _executor


def deliver_notification(request: NotificationRequest) -> bool:
    subject, body, html_body = compose_ticket_email(request.template, request.data)
    return send_email(request.recipient, subject, body, html_body=html_body)


def _report(request: NotificationRequest, activity_logger: ActivityLogger | None):
    def _callback(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Notification to %s failed: %s", request.recipient, exc, exc_info=exc)
            if activity_logger is not None:
                activity_logger.error(
                    f"Failed to send notification to {request.recipient}: {exc}",
                    details={"ticket_id": request.ticket_id, "template": request.template},
                )
            return
        sent = future.result()
        logger.info("Notification to %s %s", request.recipient, "sent" if sent else "skipped")
        if activity_logger is not None:
            activity_logger.send(
                f"Notification {'sent' if sent else 'skipped'} to {request.recipient}",
                details={"ticket_id": request.ticket_id, "template": request.template},
            )

    return _callback


def dispatch_notification(
    request: NotificationRequest,
    *,
    activity_logger: ActivityLogger | None = None,
) -> Future:
    future = _get_executor().submit(deliver_notification, request)
    future.add_done_callback(_report(request, activity_logger))
    return future


def shutdown_notifications(wait: bool = True) -> None:
    global _executor
    with _executor_lock:
        executor = _executor
        _executor = None
    if executor is not None:
        executor.shutdown(wait=wait)
