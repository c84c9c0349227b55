"""Utility functions for the Nginx Operator."""

from .conditions import (
    find_condition,
    set_condition,
    set_degraded_condition,
    set_succeeded_condition,
)
from .context import get_correlation_id, with_correlation_id
from .errors import (
    AggregateError,
    AlreadyExistsError,
    AlreadyOwnedError,
    ConflictError,
    NotFoundError,
    OperatorError,
    ReconcileCancelled,
    SchemeError,
    SpecValidationError,
    TemplateError,
    TransientError,
    aggregate_errors,
    sanitize_exception,
)

__all__ = [
    "set_condition",
    "set_degraded_condition",
    "set_succeeded_condition",
    "find_condition",
    "get_correlation_id",
    "with_correlation_id",
    "OperatorError",
    "NotFoundError",
    "AlreadyExistsError",
    "ConflictError",
    "TransientError",
    "SchemeError",
    "AlreadyOwnedError",
    "TemplateError",
    "SpecValidationError",
    "ReconcileCancelled",
    "AggregateError",
    "aggregate_errors",
    "sanitize_exception",
]
