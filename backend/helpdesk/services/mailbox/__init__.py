"""Mailbox reading: IMAP access, message parsing and failure classification."""

from __future__ import annotations

from helpdesk.services.mailbox.parsing import ParsedEmail
from helpdesk.services.mailbox.reader import MailboxFetchResult, MailboxReader

__all__ = ["MailboxFetchResult", "MailboxReader", "ParsedEmail"]
