"""Classification of IMAP connection failures into operator-facing kinds."""

from __future__ import annotations

import imaplib
import socket
import ssl
from dataclasses import dataclass

TIMEOUT = "timeout"
CONNECTION_REFUSED = "connection_refused"
AUTHENTICATION = "authentication"
HOST_NOT_FOUND = "host_not_found"
OTHER = "other"

HINTS = {
    TIMEOUT: "Check the IMAP host and port, and that the server is reachable from this network.",
    CONNECTION_REFUSED: "The server refused the connection. Verify the port and whether SSL is required.",
    AUTHENTICATION: "Check the IMAP username and password. Some providers require an app password.",
    HOST_NOT_FOUND: "The IMAP host name could not be resolved. Check for typos in the host.",
    OTHER: "See the error message for details.",
}

_AUTH_MARKERS = ("authenticationfailed", "authentication failed", "invalid credentials", "login failed", "auth")
_TIMEOUT_MARKERS = ("timed out", "timeout", "etimedout")
_REFUSED_MARKERS = ("connection refused", "econnrefused")
_HOST_MARKERS = ("name or service not known", "nodename nor servname", "getaddrinfo", "enotfound")


@dataclass(frozen=True)
class ConnectionFailure:
    kind: str
    hint: str
    message: str


def _kind_from_text(text: str) -> str:
    lowered = text.lower()
    if any(marker in lowered for marker in _TIMEOUT_MARKERS):
        return TIMEOUT
    if any(marker in lowered for marker in _REFUSED_MARKERS):
        return CONNECTION_REFUSED
    if any(marker in lowered for marker in _HOST_MARKERS):
        return HOST_NOT_FOUND
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AUTHENTICATION
    return OTHER


def classify_connection_error(exc: BaseException) -> ConnectionFailure:
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, (socket.timeout, TimeoutError)):
        kind = TIMEOUT
    elif isinstance(exc, ConnectionRefusedError):
        kind = CONNECTION_REFUSED
    elif isinstance(exc, socket.gaierror):
        kind = HOST_NOT_FOUND
    elif isinstance(exc, imaplib.IMAP4.error):
        kind = AUTHENTICATION if _kind_from_text(message) == AUTHENTICATION else OTHER
    elif isinstance(exc, ssl.SSLError):
        kind = OTHER
    else:
        kind = _kind_from_text(message)
    return ConnectionFailure(kind=kind, hint=HINTS[kind], message=message)
