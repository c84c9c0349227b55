"""Error taxonomy and sanitization helpers for the Nginx Operator."""

from __future__ import annotations

import re
from typing import Iterable


class OperatorError(Exception):
    """Base class for all errors raised by the operator."""


class NotFoundError(OperatorError):
    """The requested object does not exist in the store."""


class AlreadyExistsError(OperatorError):
    """An object with the same identity already exists."""


class ConflictError(OperatorError):
    """The object's version token is stale (optimistic-concurrency conflict)."""


class TransientError(OperatorError):
    """The store is unavailable or returned an unexpected failure."""


class SchemeError(OperatorError):
    """An object's type is not registered against the expected scheme."""


class AlreadyOwnedError(SchemeError):
    """The object already has a different controller owner."""


class TemplateError(OperatorError):
    """A managed-resource template could not be rendered."""


class SpecValidationError(OperatorError, ValueError):
    """The desired-state resource spec holds invalid values."""


class ReconcileCancelled(OperatorError):
    """The reconciliation was cancelled or ran past its deadline."""


class AggregateError(OperatorError):
    """Several errors occurred during one reconciliation."""

    def __init__(self, errors: list[BaseException]):
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        return "[" + ", ".join(str(err) for err in self.errors) + "]"


def aggregate_errors(errors: Iterable[BaseException | None]) -> BaseException | None:
    """Combine errors into one value.

    ``None`` entries are dropped. Returns ``None`` when nothing is left, the
    error itself when only one is left, and an AggregateError otherwise.
    """
    remaining = [err for err in errors if err is not None]
    if not remaining:
        return None
    if len(remaining) == 1:
        return remaining[0]
    return AggregateError(remaining)


# Fields whose values should never reach logs, events or conditions.
# "bearer" goes before "authorization" so both header parts are redacted.
SENSITIVE_FIELDS = (
    "password",
    "secret",
    "token",
    "bearer",
    "authorization",
)


def sanitize_error_message(message: str) -> str:
    """Redact credential-like values from an error message.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = message
    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"({field})([\"']?\s*[:=]\s*[\"']?|\s+)([^\s,;\)\"']+)",
            r"\1\2[REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )
    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize an exception's message."""
    return sanitize_error_message(str(error))
