"""Outbound ticket email composition and SMTP delivery."""

from __future__ import annotations

import logging
import re
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Any

from helpdesk.core.config import settings

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

# Fallbacks applied when the caller does not supply a value.
_PLACEHOLDER_DEFAULTS = {
    "contactName": "Customer",
    "agentName": "Support Agent",
    "assigneeName": "Unassigned",
}

TICKET_TEMPLATES: dict[str, tuple[str, str]] = {
    "ticket_created": (
        "We received your request",
        "Hello {{contactName}},\n\n"
        "Your request \"{{subject}}\" has been logged as ticket #{{ticketNumber}}.\n"
        "Reply to this email to add details.\n\n"
        "{{portalUrl}}",
    ),
    "ticket_status_changed": (
        "Status updated to {{newStatus}}",
        "Hello {{contactName}},\n\n"
        "Ticket #{{ticketNumber}} is now {{newStatus}}.\n\n"
        "{{portalUrl}}",
    ),
    "ticket_assigned": (
        "Ticket assigned",
        "Hello {{contactName}},\n\n"
        "Ticket #{{ticketNumber}} has been assigned to {{assigneeName}}.",
    ),
    "ticket_resolved": (
        "Ticket resolved",
        "Hello {{contactName}},\n\n"
        "Ticket #{{ticketNumber}} has been marked as resolved. "
        "Reply to this email if the problem persists.",
    ),
}


def format_ticket_subject(ticket_number: int, subject: str) -> str:
    """Embed the ticket marker that inbound threading looks for."""
    return f"[Ticket #{ticket_number}] {subject}".strip()


def render_template(template: str, data: dict[str, Any]) -> str:
    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key == "portalUrl":
            return str(data.get(key) or settings.FRONTEND_BASE_URL)
        value = data.get(key)
        if value is None or value == "":
            return _PLACEHOLDER_DEFAULTS.get(key, "")
        return str(value)

    return _PLACEHOLDER_RE.sub(_replace, template)


def compose_ticket_email(
    template_or_body: str,
    data: dict[str, Any],
) -> tuple[str, str, str]:
    """Return (subject, text body, html body) for a template id or raw body."""
    ticket_number = data.get("ticketNumber")
    if template_or_body in TICKET_TEMPLATES:
        subject_template, body_template = TICKET_TEMPLATES[template_or_body]
    else:
        subject_template, body_template = "{{subject}}", template_or_body
    subject = render_template(subject_template, data)
    if ticket_number is not None:
        subject = format_ticket_subject(int(ticket_number), subject)
    body = render_template(body_template, data)
    html_body = "<br>".join(escape(line) for line in body.split("\n"))
    return subject, body, f"<html><body style=\"font-family:Arial,sans-serif;\">{html_body}</body></html>"


def send_email(to: str, subject: str, body: str, *, html_body: str | None = None) -> bool:
    if not settings.smtp_ready:
        logger.info("SMTP not configured; skipping send to %s", to)
        return False

    message = EmailMessage()
    message["From"] = settings.SMTP_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    if html_body:
        message.add_alternative(html_body, subtype="html")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.ehlo()
        if settings.SMTP_TLS:
            server.starttls()
            server.ehlo()
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(message)
    logger.info("Email sent: %s", to)
    return True
