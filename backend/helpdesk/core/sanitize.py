"""Text normalization helpers for inbound mail and rule values."""

from __future__ import annotations

import re
import unicodedata
from html import unescape

_WHITESPACE_RE = re.compile(r"\s+")
_HTML_BREAK_RE = re.compile(r"<\s*(br|/p|/div|/li|/tr|/h[1-6])\s*/?\s*>", re.IGNORECASE)
_HTML_DROP_RE = re.compile(r"<(script|style|head)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_HTML_TAG_RE = re.compile(r"<[^>]+>")


def _strip_control_chars(value: str, *, allow_newlines: bool) -> str:
    cleaned: list[str] = []
    for ch in value:
        if ch == "\n" and allow_newlines:
            cleaned.append(ch)
            continue
        if unicodedata.category(ch) == "Cc":
            continue
        cleaned.append(ch)
    return "".join(cleaned)


def clean_text(value: str | None, *, allow_newlines: bool = False) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    value = _strip_control_chars(value, allow_newlines=allow_newlines)
    value = value.strip()
    if not allow_newlines:
        value = _WHITESPACE_RE.sub(" ", value)
    else:
        value = "\n".join(line.rstrip() for line in value.split("\n"))
        value = re.sub(r"\n{3,}", "\n\n", value)
    return value


def clean_single_line(value: str | None) -> str:
    return clean_text(value, allow_newlines=False)


def clean_multiline(value: str | None) -> str:
    return clean_text(value, allow_newlines=True)


def clean_email(value: str | None) -> str:
    return clean_single_line(value).lower()


def html_to_text(value: str | None) -> str:
    """Rough plain-text rendering of an HTML mail body."""
    if not value:
        return ""
    text = _HTML_DROP_RE.sub("", value)
    text = _HTML_BREAK_RE.sub("\n", text)
    text = _HTML_TAG_RE.sub("", text)
    return clean_multiline(unescape(text))
