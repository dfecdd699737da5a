"""RFC 822 parsing and the text rules used to thread inbound mail."""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import parseaddr, parsedate_to_datetime

from helpdesk.core.sanitize import clean_email, clean_single_line, html_to_text

NO_SUBJECT = "No Subject"

_TICKET_MARKER_RE = re.compile(r"\[(?:Ticket\s*)?#?(\d+)\]", re.IGNORECASE)
_REPLY_PREFIX_RE = re.compile(r"^\s*(?:re|fwd?)\s*:\s*", re.IGNORECASE)

# Start of quoted history in a reply; the earliest match wins.
_QUOTE_MARKERS = (
    re.compile(r"\n>"),
    re.compile(r"\nOn .* wrote:", re.IGNORECASE),
    re.compile(r"\n-{3,}.*Original Message", re.IGNORECASE),
    re.compile(r"\n_{3,}\nFrom:"),
)


@dataclass(frozen=True)
class ParsedEmail:
    uid: str
    message_id: str | None
    from_address: str
    from_name: str | None
    subject: str
    date: dt.datetime | None
    text_body: str | None
    html_body: str | None

    @property
    def body(self) -> str:
        if self.text_body and self.text_body.strip():
            return self.text_body
        if self.html_body:
            return html_to_text(self.html_body)
        return ""


def _header(message: EmailMessage, name: str) -> str:
    value = message.get(name)
    return str(value).strip() if value is not None else ""


def _part_content(message: EmailMessage, subtype: str) -> str | None:
    part = message.get_body(preferencelist=(subtype,))
    if part is None:
        return None
    try:
        content = part.get_content()
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True) or b""
        content = payload.decode("utf-8", errors="replace")
    return content if isinstance(content, str) else None


def _parse_date(raw: str) -> dt.datetime | None:
    if not raw:
        return None
    try:
        return parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None


def parse_message(uid: str, raw: bytes) -> ParsedEmail:
    """Parse raw RFC 822 bytes. Raises ValueError when there is no sender."""
    message = BytesParser(policy=policy.default).parsebytes(raw)
    name, address = parseaddr(_header(message, "From"))
    address = clean_email(address)
    if not address or "@" not in address:
        raise ValueError(f"message {uid} has no sender address")
    return ParsedEmail(
        uid=uid,
        message_id=_header(message, "Message-ID") or None,
        from_address=address,
        from_name=clean_single_line(name) or None,
        subject=clean_single_line(_header(message, "Subject")),
        date=_parse_date(_header(message, "Date")),
        text_body=_part_content(message, "plain"),
        html_body=_part_content(message, "html"),
    )


def sender_display_name(message: ParsedEmail) -> str:
    return message.from_name or message.from_address.split("@", 1)[0]


def extract_reply_text(body: str) -> str:
    """Cut quoted history from a reply body; falls back to the whole body."""
    text = body.replace("\r\n", "\n")
    cut = len(text)
    for marker in _QUOTE_MARKERS:
        match = marker.search(text)
        if match and match.start() < cut:
            cut = match.start()
    reply = text[:cut].strip()
    return reply or text.strip()


def parse_ticket_number(subject: str) -> int | None:
    match = _TICKET_MARKER_RE.search(subject or "")
    return int(match.group(1)) if match else None


def clean_subject(subject: str) -> str:
    cleaned = subject or ""
    while True:
        stripped = _REPLY_PREFIX_RE.sub("", cleaned, count=1)
        if stripped == cleaned:
            break
        cleaned = stripped
    return cleaned.strip() or NO_SUBJECT
