"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_OPERATOR_DEGRADED,
    REASON_OPERATOR_SUCCEEDED,
    STATUS_FALSE,
    STATUS_TRUE,
    STATUS_UNKNOWN,
)

_VALID_STATUSES = (STATUS_TRUE, STATUS_FALSE, STATUS_UNKNOWN)


def _format_time(now: datetime | None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat().replace("+00:00", "Z")


def find_condition(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    """Return the condition of the given type, if present."""
    for cond in conditions:
        if cond.get("type") == condition_type:
            return cond
    return None


def set_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Replace or add a condition in the conditions list.

    The list is searched linearly by type so insertion order is kept. An
    existing entry of the same type is replaced in place; lastTransitionTime
    is only moved forward when the status actually changes.

    Args:
        conditions: List of existing conditions, modified in place
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Short machine-readable reason
        message: Human-readable message
        now: Timestamp to use, defaults to the current UTC time

    Returns:
        The updated list of conditions
    """
    if status not in _VALID_STATUSES:
        raise ValueError(f"invalid condition status {status!r}")

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": _format_time(now),
    }

    for idx, existing in enumerate(conditions):
        if existing.get("type") == condition_type:
            if existing.get("status") == status and existing.get("lastTransitionTime"):
                new_condition["lastTransitionTime"] = existing["lastTransitionTime"]
            conditions[idx] = new_condition
            return conditions

    conditions.append(new_condition)
    return conditions


def set_degraded_condition(
    conditions: list[dict[str, Any]],
    reason: str,
    message: str,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Set OperatorDegraded=True with the given failure reason."""
    return set_condition(conditions, COND_OPERATOR_DEGRADED, STATUS_TRUE, reason, message, now)


def set_succeeded_condition(
    conditions: list[dict[str, Any]],
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Set OperatorDegraded=False after a successful reconciliation."""
    return set_condition(
        conditions,
        COND_OPERATOR_DEGRADED,
        STATUS_FALSE,
        REASON_OPERATOR_SUCCEEDED,
        "operator successfully reconciling",
        now,
    )


def merge_conditions(
    conditions: list[dict[str, Any]],
    updates: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Overlay ``updates`` onto ``conditions`` by type, keeping every other type.

    Entries are copied verbatim, so timestamps computed by the writer win.
    """
    for update in updates:
        for idx, existing in enumerate(conditions):
            if existing.get("type") == update.get("type"):
                conditions[idx] = dict(update)
                break
        else:
            conditions.append(dict(update))
    return conditions
