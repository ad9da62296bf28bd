"""Domain-specific exceptions.

Every failure a flow can report to a caller is one of these. The API layer
renders them as ``{"status": "ERROR", "reason": ...}`` with ``status_code``.
"""

from __future__ import annotations


class LnurlError(Exception):
    """Base class for failures reported to LNURL callers."""

    status_code: int = 400

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ValidationError(LnurlError):
    """Raised for malformed or out-of-range input."""

    status_code = 400


class NotFoundError(LnurlError):
    """Raised when a payment config, invoice record or session does not exist."""

    status_code = 404


class InvalidTokenError(NotFoundError):
    """Raised when a k1 is unknown, expired or already consumed."""

    status_code = 400


class UpstreamError(LnurlError):
    """Raised when the Lightning or chain node fails, times out or answers garbage."""

    status_code = 502


class SignatureError(LnurlError):
    """Raised when an auth signature cannot be decoded or does not verify."""

    status_code = 400


class UnauthorizedError(LnurlError):
    """Raised when a session is missing or expired on validation."""

    status_code = 401
