from __future__ import annotations

import imaplib
import socket
from email.message import EmailMessage
from types import SimpleNamespace

from helpdesk.core.exceptions import MailboxConnectionError
from helpdesk.services.mailbox import errors
from helpdesk.services.mailbox.reader import MailboxReader, ReaderState


def _channel(**overrides) -> SimpleNamespace:  # noqa: ANN003
    values = {
        "id": "ch-1",
        "name": "Support",
        "email": "support@example.com",
        "imap_host": "imap.example.com",
        "imap_port": 993,
        "imap_user": "support@example.com",
        "imap_password": "secret",
        "imap_secure": True,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _raw(sender: str, subject: str) -> bytes:
    message = EmailMessage()
    message["From"] = sender
    message["Subject"] = subject
    message.set_content("body")
    return message.as_bytes()


class _FakeImap:
    def __init__(self, messages: dict[str, bytes], *, login_error: Exception | None = None) -> None:
        self.messages = messages
        self.login_error = login_error
        self.calls: list[tuple] = []
        self.logged_out = False

    def login(self, user: str, password: str):  # noqa: ANN201
        self.calls.append(("login", user))
        if self.login_error is not None:
            raise self.login_error
        return "OK", [b"logged in"]

    def select(self, mailbox: str):  # noqa: ANN201
        self.calls.append(("select", mailbox))
        return "OK", [str(len(self.messages)).encode()]

    def uid(self, command: str, *args):  # noqa: ANN002, ANN201
        self.calls.append((command, *args))
        if command == "SEARCH":
            return "OK", [" ".join(self.messages).encode()]
        if command == "FETCH":
            uid = args[0]
            return "OK", [(f"{uid} (RFC822 {{100}}".encode(), self.messages[uid]), b")"]
        return "NO", [None]

    def logout(self):  # noqa: ANN201
        self.logged_out = True
        return "BYE", [b""]


def _reader(channel, activity_log, client):  # noqa: ANN001, ANN202
    factory_calls = []

    def factory(host, port, secure, timeout):  # noqa: ANN001
        factory_calls.append((host, port, secure, timeout))
        return client

    reader = MailboxReader(channel, activity_log, client_factory=factory, timeout=5.0)
    return reader, factory_calls


def test_fetches_unseen_messages_with_marking_fetch(activity_log) -> None:  # noqa: ANN001
    client = _FakeImap({"11": _raw("a@example.com", "First"), "12": _raw("b@example.com", "Second")})
    reader, factory_calls = _reader(_channel(), activity_log, client)

    result = reader.fetch_unseen()

    assert factory_calls == [("imap.example.com", 993, True, 5.0)]
    assert [message.subject for message in result.messages] == ["First", "Second"]
    assert result.errors == []
    assert ("SEARCH", None, "UNSEEN") in client.calls
    assert ("FETCH", "11", "(RFC822)") in client.calls
    assert client.logged_out is True
    assert reader.state == ReaderState.disconnected
    assert all(entry["duration_ms"] is not None for entry in activity_log.entries)
    assert all(entry["channel_id"] == "ch-1" for entry in activity_log.entries)
    assert "Opened INBOX" in activity_log.messages("connection")
    per_message = [entry for entry in activity_log.entries if entry["message"].startswith("Fetched message")]
    assert [entry["details"] for entry in per_message] == [
        {"uid": "11", "subject": "First"},
        {"uid": "12", "subject": "Second"},
    ]


def test_no_unseen_messages_disconnects_cleanly(activity_log) -> None:  # noqa: ANN001
    client = _FakeImap({})
    reader, _ = _reader(_channel(), activity_log, client)

    result = reader.fetch_unseen()

    assert result.messages == []
    assert "No new messages" in activity_log.messages("fetch")
    assert client.logged_out is True


def test_unparseable_message_is_dropped(activity_log) -> None:  # noqa: ANN001
    client = _FakeImap({"1": b"Subject: no sender\r\n\r\nx", "2": _raw("ok@example.com", "Fine")})
    reader, _ = _reader(_channel(), activity_log, client)

    result = reader.fetch_unseen()

    assert [message.uid for message in result.messages] == ["2"]
    assert result.errors == []
    assert any("Failed to parse message 1" in message for message in activity_log.messages("fetch"))


def test_missing_credentials_skip_without_error(activity_log) -> None:  # noqa: ANN001
    reader, factory_calls = _reader(_channel(imap_password=None), activity_log, _FakeImap({}))

    result = reader.fetch_unseen()

    assert result.skipped is True
    assert result.errors == []
    assert factory_calls == []


def test_authentication_failure_is_classified(activity_log) -> None:  # noqa: ANN001
    client = _FakeImap({}, login_error=imaplib.IMAP4.error("[AUTHENTICATIONFAILED] Invalid credentials"))
    reader, _ = _reader(_channel(), activity_log, client)

    result = reader.fetch_unseen()

    assert len(result.errors) == 1
    assert result.errors[0].endswith("(authentication)")
    assert client.logged_out is True
    failure = [entry for entry in activity_log.entries if entry["message"].startswith("Connection failed")][0]
    assert failure["details"]["kind"] == "authentication"
    assert failure["details"]["hint"]


def test_connection_errors_map_to_kinds() -> None:
    assert errors.classify_connection_error(socket.timeout("timed out")).kind == errors.TIMEOUT
    assert errors.classify_connection_error(ConnectionRefusedError(111, "Connection refused")).kind == errors.CONNECTION_REFUSED
    assert errors.classify_connection_error(socket.gaierror(-2, "Name or service not known")).kind == errors.HOST_NOT_FOUND
    assert errors.classify_connection_error(imaplib.IMAP4.error("LOGIN failed")).kind == errors.AUTHENTICATION
    assert errors.classify_connection_error(imaplib.IMAP4.error("BAD command")).kind == errors.OTHER
    assert errors.classify_connection_error(RuntimeError("ETIMEDOUT while reading")).kind == errors.TIMEOUT
    assert errors.classify_connection_error(RuntimeError("boom")).hint == errors.HINTS[errors.OTHER]


def test_connection_error_exception_carries_kind() -> None:
    exc = MailboxConnectionError("nope", kind=errors.HOST_NOT_FOUND, hint="check host")
    assert exc.details == {"kind": "host_not_found", "hint": "check host"}
    assert exc.status_code == 502


def test_connect_timeout_is_reported_with_hint(activity_log) -> None:  # noqa: ANN001
    def factory(host, port, secure, timeout):  # noqa: ANN001
        raise socket.timeout("timed out")

    reader = MailboxReader(_channel(), activity_log, client_factory=factory, timeout=5.0)

    result = reader.fetch_unseen()

    assert result.errors == ["Support: timed out (timeout)"]
    assert reader.state == ReaderState.disconnected
    failure = [entry for entry in activity_log.entries if entry["message"].startswith("Connection failed")][0]
    assert failure["details"] == {"kind": errors.TIMEOUT, "hint": errors.HINTS[errors.TIMEOUT]}


class _DroppingImap(_FakeImap):
    def uid(self, command: str, *args):  # noqa: ANN002, ANN201
        if command == "SEARCH":
            raise ConnectionResetError("connection reset by peer")
        return super().uid(command, *args)


def test_failure_mid_session_is_classified_and_disconnects(activity_log) -> None:  # noqa: ANN001
    client = _DroppingImap({"1": _raw("a@example.com", "Lost")})
    reader, _ = _reader(_channel(), activity_log, client)

    result = reader.fetch_unseen()

    assert result.messages == []
    assert result.errors == ["Support: connection reset by peer (other)"]
    assert client.logged_out is True
    failure = [entry for entry in activity_log.entries if entry["message"].startswith("Mailbox session failed")][0]
    assert failure["details"]["kind"] == errors.OTHER
    assert activity_log.messages("connection")[-1] == "Disconnected"
