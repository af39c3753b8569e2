"""Error classification and sanitization utilities."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from ..constants import REASON_TEMPORARY_ERROR

# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"access[_\s]?key[_\s]?id[:\s]+([A-Z0-9]{20})",
    r"secret[_\s]?access[_\s]?key[:\s]+([A-Za-z0-9/+=]{40})",
    r"account[_\s]?key[:\s]+([A-Za-z0-9/+=]+)",
    r"auth[_\s]?token[:\s]+([A-Za-z0-9\-_\.]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "access_key_id",
    "secret_access_key",
    "auth_token",
    "password",
    "secret",
    "credentials",
    "token",
}


class ErrorKind(str, Enum):
    """How a reconciliation error should be reacted to."""

    PERSISTENT = "Persistent"
    TRANSIENT = "Transient"


class ReconcileError(Exception):
    """A classified reconciliation error.

    Persistent errors mean the NamespaceStore spec will never converge without being edited.
    Transient errors are expected to resolve on a later attempt.
    """

    def __init__(self, kind: ErrorKind, reason: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.reason = reason
        self.message = message

    @classmethod
    def persistent(cls, reason: str, message: str) -> ReconcileError:
        return cls(ErrorKind.PERSISTENT, reason, message)

    @classmethod
    def transient(cls, message: str, reason: str = REASON_TEMPORARY_ERROR) -> ReconcileError:
        return cls(ErrorKind.TRANSIENT, reason, message)

    @classmethod
    def combine(cls, *errors: BaseException | None) -> ReconcileError | None:
        """Reduce several errors to one.

        The first persistent error wins, otherwise the first transient one.
        Unclassified errors count as transient and None entries are ignored.

        Returns:
            The combined error, or None when no error was given
        """
        classified = [classify_error(e) for e in errors if e is not None]
        for error in classified:
            if error.is_persistent:
                return error
        return classified[0] if classified else None

    @property
    def is_persistent(self) -> bool:
        return self.kind is ErrorKind.PERSISTENT

    def __repr__(self) -> str:
        return f"ReconcileError({self.kind.value}, {self.reason!r}, {self.message!r})"


def classify_error(error: BaseException) -> ReconcileError:
    """Classify any error, defaulting unclassified errors to transient."""
    if isinstance(error, ReconcileError):
        return error
    return ReconcileError.transient(sanitize_exception(error))


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, lambda m: m.group(0).replace(m.group(1), "[REDACTED]"), sanitized, flags=re.IGNORECASE)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}\s*[:=]\s*([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
