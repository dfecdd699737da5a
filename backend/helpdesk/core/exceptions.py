"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class HelpdeskException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(HelpdeskException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not_found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class ConflictError(HelpdeskException):
    """Raised when a request conflicts with current state."""

    def __init__(self, message: str = "conflict", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details, status_code=409)


class BadRequestError(HelpdeskException):
    """Raised when request is invalid."""

    def __init__(self, message: str = "bad_request", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="BAD_REQUEST", details=details, status_code=400)


# ===== MAILBOX EXCEPTIONS =====


class MailboxException(HelpdeskException):
    """Base exception for inbound mailbox errors."""


class MailboxNotConfiguredError(MailboxException):
    """Raised when a mailbox has no inbound credentials."""

    def __init__(self, channel_email: str):
        super().__init__(
            f"IMAP not configured for {channel_email}",
            error_code="MAILBOX_NOT_CONFIGURED",
            details={"channel_email": channel_email},
            status_code=400,
        )


class MailboxConnectionError(MailboxException):
    """Raised when the IMAP session cannot be established or breaks."""

    def __init__(self, message: str, *, kind: str = "other", hint: Optional[str] = None):
        super().__init__(
            message,
            error_code="MAILBOX_CONNECTION_ERROR",
            details={"kind": kind, "hint": hint} if hint else {"kind": kind},
            status_code=502,
        )
        self.kind = kind
        self.hint = hint


# ===== AUTOMATION EXCEPTIONS =====


class AutomationException(HelpdeskException):
    """Base exception for automation rule errors."""


class InvalidAutomationActionError(AutomationException):
    """Raised when an action carries an unusable value."""

    def __init__(self, action_type: str, value: str):
        super().__init__(
            f"Invalid value {value!r} for action {action_type}",
            error_code="INVALID_AUTOMATION_ACTION",
            details={"action_type": action_type, "value": value},
            status_code=422,
        )


# ===== AI EXCEPTIONS =====


class AIException(HelpdeskException):
    """Base exception for AI-related errors."""


class AIResponseParsingError(AIException):
    """Raised when cannot parse AI response."""

    def __init__(self, message: str = "Failed to parse AI response", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="AI_PARSING_ERROR", details=details, status_code=502)
