"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_DEPLOYMENT_CREATED,
    EVENT_REASON_DEPLOYMENT_UPDATED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_VALIDATE_FAILED,
)


def emit_event(
    body: Any,
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event for the given resource body.

    Args:
        body: Resource body (or kopf Body) the event refers to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: Any) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: Any, message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_validate_failed(body: Any, message: str) -> None:
    """Emit validation failed event."""
    emit_event(body, EVENT_REASON_VALIDATE_FAILED, message, type_="Warning")


def emit_deployment_created(body: Any, deployment_name: str) -> None:
    emit_event(body, EVENT_REASON_DEPLOYMENT_CREATED, f"Deployment {deployment_name} created")


def emit_deployment_updated(body: Any, deployment_name: str) -> None:
    emit_event(body, EVENT_REASON_DEPLOYMENT_UPDATED, f"Deployment {deployment_name} updated")
