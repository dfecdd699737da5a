"""IMAP reader that pulls unseen messages from one mailbox per poll."""

from __future__ import annotations

import enum
import imaplib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from helpdesk.core.config import settings
from helpdesk.core.exceptions import MailboxConnectionError, MailboxNotConfiguredError
from helpdesk.models.enums import ActivityLevel
from helpdesk.services.activity_logger import ActivityLogger
from helpdesk.services.mailbox.errors import classify_connection_error
from helpdesk.services.mailbox.parsing import ParsedEmail, parse_message

logger = logging.getLogger(__name__)

INBOX = "INBOX"

ClientFactory = Callable[[str, int, bool, float], Any]


class ReaderState(str, enum.Enum):
    disconnected = "DISCONNECTED"
    connecting = "CONNECTING"
    connected = "CONNECTED"
    inbox_opened = "INBOX_OPENED"
    searching = "SEARCHING"
    fetching = "FETCHING"
    parsing = "PARSING"


@dataclass
class MailboxFetchResult:
    messages: list[ParsedEmail] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: bool = False


def open_imap_client(host: str, port: int, secure: bool, timeout: float) -> imaplib.IMAP4:
    if secure:
        return imaplib.IMAP4_SSL(host, port, timeout=timeout)
    return imaplib.IMAP4(host, port, timeout=timeout)


def parse_uid_search_data(data: object) -> list[str]:
    if not isinstance(data, list) or not data or not data[0]:
        return []
    raw = data[0]
    if isinstance(raw, bytes):
        return [uid.decode("ascii", errors="ignore") for uid in raw.split()]
    if isinstance(raw, str):
        return [uid for uid in raw.split() if uid]
    return []


def parse_fetch_message(fetch_data: object) -> bytes | None:
    if not isinstance(fetch_data, list):
        return None
    for part in fetch_data:
        if isinstance(part, tuple) and len(part) >= 2 and isinstance(part[1], bytes):
            return part[1]
    return None


class MailboxReader:
    """Connects, searches UNSEEN, fetches (marking seen) and parses.

    The connection is opened and closed within a single ``fetch_unseen`` call.
    Fetching uses ``RFC822`` rather than ``BODY.PEEK`` so the server flags each
    message as seen as it is downloaded.
    """

    def __init__(
        self,
        channel: Any,
        activity_logger: ActivityLogger,
        *,
        client_factory: ClientFactory | None = None,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.channel = channel
        self.activity_logger = activity_logger
        self.client_factory = client_factory or open_imap_client
        self.timeout = timeout if timeout is not None else settings.MAIL_CONNECT_TIMEOUT_SECONDS
        self.clock = clock
        self.state = ReaderState.disconnected
        self._started = 0.0

    def _elapsed_ms(self) -> int:
        return int((self.clock() - self._started) * 1000)

    def _log(self, log_type: str, message: str, *, level: ActivityLevel = ActivityLevel.info, **details: Any) -> None:
        log_method = getattr(self.activity_logger, log_type)
        log_method(
            message,
            level=level,
            channel_id=self.channel.id,
            channel_name=self.channel.name,
            details=details or None,
            duration_ms=self._elapsed_ms(),
        )

    def _transition(self, state: ReaderState) -> None:
        logger.debug("Mailbox %s: %s -> %s", self.channel.email, self.state.value, state.value)
        self.state = state

    def _check_configured(self) -> None:
        if not (
            self.channel.imap_host
            and self.channel.imap_port
            and self.channel.imap_user
            and self.channel.imap_password
        ):
            raise MailboxNotConfiguredError(self.channel.email)

    def _connect(self) -> Any:
        host, port = self.channel.imap_host, int(self.channel.imap_port)
        self._transition(ReaderState.connecting)
        self._log("connection", f"Connecting to {host}:{port}", secure=bool(self.channel.imap_secure))
        client = None
        try:
            client = self.client_factory(host, port, bool(self.channel.imap_secure), self.timeout)
            client.login(self.channel.imap_user, self.channel.imap_password)
        except Exception as exc:  # noqa: BLE001
            if client is not None:
                self._close(client)
            failure = classify_connection_error(exc)
            raise MailboxConnectionError(failure.message, kind=failure.kind, hint=failure.hint) from exc
        self._transition(ReaderState.connected)
        self._log("connection", f"Connected to {host}:{port}")
        return client

    def _close(self, client: Any) -> None:
        try:
            client.logout()
        except Exception as exc:  # noqa: BLE001
            logger.debug("IMAP logout failed for %s: %s", self.channel.email, exc)

    def _fetch_one(self, client: Any, uid: str) -> ParsedEmail | None:
        self._transition(ReaderState.fetching)
        status, data = client.uid("FETCH", uid, "(RFC822)")
        raw = parse_fetch_message(data) if status == "OK" else None
        if raw is None:
            self._log("fetch", f"Could not fetch message {uid}", level=ActivityLevel.warn, uid=uid, status=str(status))
            return None
        self._transition(ReaderState.parsing)
        try:
            parsed = parse_message(uid, raw)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Dropping unparseable message %s from %s: %s", uid, self.channel.email, exc)
            self._log("fetch", f"Failed to parse message {uid}: {exc}", level=ActivityLevel.error, uid=uid)
            return None
        self._log(
            "fetch",
            f"Fetched message {uid} from {parsed.from_address}",
            uid=uid,
            subject=parsed.subject,
        )
        return parsed

    def fetch_unseen(self) -> MailboxFetchResult:
        result = MailboxFetchResult()
        self._started = self.clock()
        try:
            self._check_configured()
        except MailboxNotConfiguredError as exc:
            self._log("info", f"Skipping mailbox: {exc.message}", level=ActivityLevel.warn)
            result.skipped = True
            return result

        try:
            client = self._connect()
        except MailboxConnectionError as exc:
            self._transition(ReaderState.disconnected)
            self._log("connection", f"Connection failed: {exc.message}", level=ActivityLevel.error, **exc.details)
            result.errors.append(f"{self.channel.name}: {exc.message} ({exc.kind})")
            return result

        try:
            status, _ = client.select(INBOX)
            if status != "OK":
                raise imaplib.IMAP4.error(f"could not open {INBOX}")
            self._transition(ReaderState.inbox_opened)
            self._log("connection", f"Opened {INBOX}")

            self._transition(ReaderState.searching)
            status, data = client.uid("SEARCH", None, "UNSEEN")
            uids = parse_uid_search_data(data) if status == "OK" else []
            if not uids:
                self._log("fetch", "No new messages")
                return result

            self._log("fetch", f"Found {len(uids)} unseen message(s)", count=len(uids))
            for uid in uids:
                parsed = self._fetch_one(client, uid)
                if parsed is not None:
                    result.messages.append(parsed)
            self._log("fetch", f"Fetched {len(result.messages)} message(s)", count=len(result.messages))
        except Exception as exc:  # noqa: BLE001
            failure = classify_connection_error(exc)
            logger.warning("Mailbox %s failed mid-session: %s", self.channel.email, failure.message)
            self._log(
                "error",
                f"Mailbox session failed: {failure.message}",
                level=ActivityLevel.error,
                kind=failure.kind,
                hint=failure.hint,
            )
            result.errors.append(f"{self.channel.name}: {failure.message} ({failure.kind})")
        finally:
            self._close(client)
            self._transition(ReaderState.disconnected)
            self._log("connection", "Disconnected")
        return result
