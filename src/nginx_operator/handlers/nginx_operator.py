"""Handler for NginxOperator CRD and the Deployments it owns."""

from __future__ import annotations

import threading
from typing import Any

import kopf

from .. import metrics
from ..constants import (
    ANNOTATION_DEPLOYMENT_DRIFT,
    API_GROUP,
    API_GROUP_VERSION,
    API_VERSION,
    KIND_NGINX_OPERATOR,
    PLURAL_NGINX_OPERATORS,
)
from ..reconciler import OP_CREATED, OP_UPDATED, NginxOperatorReconciler, ReconcileResult
from ..services.store.base import ObjectStore
from ..utils.cancellation import CancelToken
from ..utils.context import with_correlation_id
from ..utils.errors import NotFoundError
from ..utils.events import emit_deployment_created, emit_deployment_updated
from ..utils.owner import get_controller_reference
from .base import BaseHandler


class NginxOperatorHandler(BaseHandler):
    """Handler for NginxOperator resources."""

    def __init__(self):
        """Initialize NginxOperator handler."""
        super().__init__(KIND_NGINX_OPERATOR)
        # (namespace, deployment name) -> resourceVersion of our last write
        self._own_writes: dict[tuple[str, str], str] = {}
        self._own_writes_lock = threading.Lock()

    def reconcile(
        self,
        reconciler: NginxOperatorReconciler,
        body: Any,
        stop_event: threading.Event | None = None,
        timeout: float | None = None,
        retry: int = 0,
    ) -> ReconcileResult:
        """Run one reconciliation of the NginxOperator described by ``body``."""
        meta = body.get("metadata", {})
        namespace = meta.get("namespace", "default")
        name = meta.get("name", "unknown")
        cancel = CancelToken(stop_event, timeout)

        with with_correlation_id():
            result = self.reconcile_with_metrics(
                body, lambda: reconciler.reconcile(namespace, name, cancel), retry=retry
            )

            if result.deployment_name and result.deployment_version:
                self.record_own_write(namespace, result.deployment_name, result.deployment_version)

            if result.operation == OP_CREATED:
                emit_deployment_created(body, result.deployment_name)
                metrics.deployment_operations_total.labels(operation="create", result="success").inc()
            elif result.operation == OP_UPDATED:
                emit_deployment_updated(body, result.deployment_name)
                metrics.deployment_operations_total.labels(operation="update", result="success").inc()
            else:
                self.log_info(meta, "NginxOperator no longer exists, nothing to do", reason="NotFound")

        if result.requeue_after is not None:
            raise kopf.TemporaryError("requeue requested", delay=result.requeue_after)
        return result

    def record_own_write(self, namespace: str, deployment_name: str, resource_version: str) -> None:
        with self._own_writes_lock:
            self._own_writes[(namespace, deployment_name)] = resource_version

    def is_own_write(self, namespace: str, deployment_name: str, resource_version: str | None) -> bool:
        """Whether a Deployment version is the one this operator last wrote."""
        if not resource_version:
            return False
        with self._own_writes_lock:
            return self._own_writes.get((namespace, deployment_name)) == resource_version

    def request_owner_reconcile(
        self,
        store: ObjectStore,
        ref: dict[str, Any],
        deployment_meta: dict[str, Any],
        stop_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> bool:
        """Mark the owning NginxOperator so kopf re-runs its handler.

        The reconcile itself then runs in the NginxOperator's own handler,
        which kopf serializes per object and retries on failure.

        Returns:
            False if the owner no longer exists
        """
        namespace = deployment_meta.get("namespace", "default")
        owner_meta = {"name": ref.get("name"), "namespace": namespace, "uid": ref.get("uid")}
        marker = deployment_meta.get("resourceVersion") or deployment_meta.get("uid", "")
        try:
            store.annotate(
                KIND_NGINX_OPERATOR,
                namespace,
                ref.get("name", ""),
                {ANNOTATION_DEPLOYMENT_DRIFT: str(marker)},
                CancelToken(stop_event, timeout),
            )
        except NotFoundError:
            self.log_info(owner_meta, "Owner of drifted deployment is gone, nothing to do", reason="NotFound")
            return False

        self.log_info(
            owner_meta,
            f"Deployment {deployment_meta.get('name')} drifted, reconciliation requested",
            reason="DeploymentDrifted",
        )
        return True


def owned_by_nginx_operator(meta: dict[str, Any], **_: Any) -> bool:
    """Whether a Deployment is controlled by an NginxOperator."""
    ref = get_controller_reference({"metadata": meta})
    return (
        ref is not None
        and ref.get("kind") == KIND_NGINX_OPERATOR
        and ref.get("apiVersion") == API_GROUP_VERSION
    )


def spec_drifted(event: dict[str, Any], meta: dict[str, Any], status: dict[str, Any], **_: Any) -> bool:
    """Whether an owned Deployment event carries a spec change or a deletion.

    Status-only updates leave ``metadata.generation`` equal to
    ``status.observedGeneration`` and are ignored.
    """
    if event.get("type") == "DELETED":
        return True
    return meta.get("generation") != (status or {}).get("observedGeneration")


def not_own_write(event: dict[str, Any], meta: dict[str, Any], **_: Any) -> bool:
    """Whether an owned Deployment event was caused by someone other than us.

    Deletions always count, even of a version we wrote.
    """
    if event.get("type") == "DELETED":
        return True
    return not _handler.is_own_write(
        meta.get("namespace", "default"), meta.get("name", ""), meta.get("resourceVersion")
    )


# Global handler instance
_handler = NginxOperatorHandler()


@kopf.on.create(API_GROUP, API_VERSION, PLURAL_NGINX_OPERATORS)
@kopf.on.update(API_GROUP, API_VERSION, PLURAL_NGINX_OPERATORS)
@kopf.on.resume(API_GROUP, API_VERSION, PLURAL_NGINX_OPERATORS)
def handle_nginx_operator(
    body: kopf.Body,
    memo: kopf.Memo,
    retry: int,
    **kwargs: Any,
) -> None:
    """Handle NginxOperator resource reconciliation."""
    _handler.reconcile(
        memo.reconciler,
        body,
        stop_event=memo.stop_event,
        timeout=memo.config.reconcile_timeout_seconds,
        retry=retry,
    )


@kopf.on.event(
    "apps", "v1", "deployments",
    when=kopf.all_([owned_by_nginx_operator, spec_drifted, not_own_write]),
)
def handle_owned_deployment(
    meta: kopf.Meta,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """Ask for the owning NginxOperator to be reconciled when its Deployment drifts."""
    ref = get_controller_reference({"metadata": dict(meta)})
    if ref is None:
        return
    _handler.request_owner_reconcile(
        memo.store,
        ref,
        dict(meta),
        stop_event=memo.stop_event,
        timeout=memo.config.reconcile_timeout_seconds,
    )
