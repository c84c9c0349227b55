"""Base handler class with common functionality for all CRD handlers."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

import kopf

from .. import metrics
from ..constants import FIELD_MANAGER
from ..logging import log_resource_event
from ..utils.errors import ReconcileCancelled, SpecValidationError, sanitize_exception
from ..utils.events import emit_reconcile_failed, emit_reconcile_started, emit_validate_failed

_T = TypeVar("_T")

MAX_RETRY_DELAY_SECONDS = 60


def retry_delay(retry: int) -> int:
    """Exponential delay for kopf retries: 1s, 2s, 4s, ... capped at 60s."""
    return min(2 ** max(retry, 0), MAX_RETRY_DELAY_SECONDS)


class BaseHandler:
    """Base class for all CRD handlers with common functionality."""

    def __init__(self, kind: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "NginxOperator")
        """
        self.kind = kind
        self.logger = logging.getLogger(__name__)

    def _log(
        self,
        level: int,
        meta: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        log_resource_event(
            self.logger,
            controller=FIELD_MANAGER,
            resource_kind=self.kind,
            resource_name=meta.get("name", "unknown"),
            namespace=meta.get("namespace", "default"),
            uid=meta.get("uid", "unknown"),
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self, meta: dict[str, Any], message: str, event: str = "info", reason: str = "Info", **kwargs: Any
    ) -> None:
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_warning(
        self, meta: dict[str, Any], message: str, event: str = "warning", reason: str = "Warning", **kwargs: Any
    ) -> None:
        self._log(logging.WARNING, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: BaseException | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        if error is not None:
            kwargs["error"] = sanitize_exception(error)
            kwargs["error_type"] = type(error).__name__
        self._log(logging.ERROR, meta, message, event, reason, **kwargs)

    def reconcile_with_metrics(
        self,
        body: Any,
        reconcile_fn: Callable[[], _T],
        retry: int = 0,
    ) -> _T:
        """Execute reconciliation with metrics, events and error translation.

        Failures are re-raised as kopf errors so that kopf schedules the
        retry: invalid specs are permanent, everything else is temporary.

        Args:
            body: Kubernetes resource body
            reconcile_fn: Function to execute for reconciliation
            retry: kopf retry counter of the current handler

        Returns:
            Whatever ``reconcile_fn`` returns
        """
        meta = body.get("metadata", {})
        emit_reconcile_started(body)
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()

        start_time = time.time()
        try:
            result = reconcile_fn()
            metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
            return result
        except SpecValidationError as e:
            message = f"Invalid spec: {sanitize_exception(e)}"
            self.log_error(meta, message, error=e, reason="ValidationFailed")
            emit_validate_failed(body, message)
            metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
            metrics.reconcile_total.labels(kind=self.kind, result="failed").inc()
            raise kopf.PermanentError(message) from e
        except ReconcileCancelled as e:
            self.log_warning(meta, f"Reconciliation cancelled: {e}", reason="ReconciliationCancelled")
            metrics.reconcile_total.labels(kind=self.kind, result="cancelled").inc()
            raise kopf.TemporaryError(f"Reconciliation cancelled: {e}", delay=retry_delay(retry)) from e
        except Exception as e:
            sanitized_error = sanitize_exception(e)
            metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
            self.log_error(meta, "Reconciliation failed", error=e, reason="ReconciliationFailed")
            emit_reconcile_failed(body, f"Reconciliation failed: {sanitized_error}")
            metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
            raise kopf.TemporaryError(f"Reconciliation failed: {sanitized_error}", delay=retry_delay(retry)) from e
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)
