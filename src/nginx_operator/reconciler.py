"""Reconciliation of NginxOperator resources into their managed Deployment."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, NoReturn

from .assets import DeploymentParams, TemplateRenderer
from .builders.deployment import apply_overrides, parse_operator_spec
from .constants import (
    API_GROUP_VERSION,
    FIELD_MANAGER,
    KIND_DEPLOYMENT,
    KIND_NGINX_OPERATOR,
    REASON_DEPLOYMENT_NOT_AVAILABLE,
    REASON_RESOURCE_NOT_AVAILABLE,
    REASON_UPDATE_DEPLOYMENT_FAILED,
)
from .logging import log_resource_event
from .scheme import Scheme
from .services.store.base import ObjectStore
from .utils.cancellation import CancelToken
from .utils.conditions import merge_conditions, set_degraded_condition, set_succeeded_condition
from .utils.errors import (
    AlreadyExistsError,
    NotFoundError,
    OperatorError,
    ReconcileCancelled,
    aggregate_errors,
    sanitize_exception,
)
from .utils.owner import set_controller_reference
from .utils.retry import DEFAULT_BACKOFF, Backoff, retry_on_conflict

logger = logging.getLogger(__name__)

OP_CREATED = "created"
OP_UPDATED = "updated"
OP_DELETED = "deleted"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one successful reconciliation."""

    operation: str
    deployment_name: str | None = None
    deployment_version: str | None = None
    requeue_after: float | None = None


class NginxOperatorReconciler:
    """Drives the managed Deployment toward the state an NginxOperator declares.

    One instance serves every NginxOperator. Calls for different resources
    may run concurrently; calls for the same resource must be serialized by
    the caller.
    """

    def __init__(
        self,
        store: ObjectStore,
        renderer: TemplateRenderer,
        scheme: Scheme,
        backoff: Backoff = DEFAULT_BACKOFF,
        params: DeploymentParams | None = None,
        sleep: Callable[[float], None] | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.renderer = renderer
        self.scheme = scheme
        self.backoff = backoff
        self.params = params or DeploymentParams()
        self._sleep = sleep
        self._now = now

    def reconcile(self, namespace: str, name: str, cancel: CancelToken | None = None) -> ReconcileResult:
        """Reconcile one NginxOperator.

        Args:
            namespace: Namespace of the NginxOperator
            name: Name of the NginxOperator
            cancel: Optional cancellation token honoured by every remote call

        Returns:
            ReconcileResult describing what was done

        Raises:
            OperatorError: The iteration failed; when the status write failed
                as well, an AggregateError carrying both errors
        """
        try:
            operator = self.store.get(KIND_NGINX_OPERATOR, namespace, name, cancel)
        except NotFoundError:
            self._log(namespace, name, None, "NginxOperator not found, assuming it was deleted", reason="NotFound")
            return ReconcileResult(OP_DELETED)
        except ReconcileCancelled:
            raise
        except OperatorError as e:
            self._log(
                namespace, name, None, f"Error getting operator resource: {sanitize_exception(e)}",
                reason=REASON_RESOURCE_NOT_AVAILABLE, level=logging.ERROR,
            )
            placeholder = {
                "apiVersion": API_GROUP_VERSION,
                "kind": KIND_NGINX_OPERATOR,
                "metadata": {"namespace": namespace, "name": name},
                "status": {"conditions": []},
            }
            self._fail(
                placeholder, e, REASON_RESOURCE_NOT_AVAILABLE,
                f"unable to get operator custom resource: {sanitize_exception(e)}", cancel,
            )

        uid = operator.get("metadata", {}).get("uid")
        spec = parse_operator_spec(operator.get("spec"))

        deployment = self.renderer.render(self.params)
        apply_overrides(deployment, namespace, spec)
        set_controller_reference(deployment, operator, self.scheme)
        deployment_name = deployment["metadata"]["name"]

        operation = OP_CREATED
        written: dict[str, Any] = {}
        try:
            written = self.store.create(KIND_DEPLOYMENT, deployment, cancel)
            self._log(namespace, name, uid, f"Created deployment {deployment_name}", reason="DeploymentCreated")
        except AlreadyExistsError:
            operation = OP_UPDATED
        except ReconcileCancelled:
            raise
        except OperatorError as e:
            self._log(
                namespace, name, uid, f"Error creating deployment {deployment_name}: {sanitize_exception(e)}",
                reason=REASON_DEPLOYMENT_NOT_AVAILABLE, level=logging.ERROR,
            )
            self._fail(
                operator, e, REASON_DEPLOYMENT_NOT_AVAILABLE,
                f"unable to get operand deployment: {sanitize_exception(e)}", cancel,
            )

        if operation == OP_UPDATED:
            written = self._update_deployment(operator, deployment, cancel)

        set_succeeded_condition(_conditions(operator), self._timestamp())
        error = self._persist_status(operator, None, cancel)
        if error is not None:
            raise error
        return ReconcileResult(
            operation,
            deployment_name=deployment_name,
            deployment_version=(written or {}).get("metadata", {}).get("resourceVersion"),
        )

    def _update_deployment(
        self, operator: dict[str, Any], target: dict[str, Any], cancel: CancelToken | None
    ) -> dict[str, Any]:
        meta = operator.get("metadata", {})
        namespace = target["metadata"]["namespace"]
        name = target["metadata"]["name"]

        # Make sure the deployment is really there before overwriting it.
        try:
            self.store.get(KIND_DEPLOYMENT, namespace, name, cancel)
        except OperatorError as e:
            self._log(
                meta.get("namespace", namespace), meta.get("name", ""), meta.get("uid"),
                f"Error fetching existing deployment {name}: {sanitize_exception(e)}",
                reason="DeploymentFetchFailed", level=logging.ERROR,
            )
            raise

        desired_spec = target["spec"]

        def apply_spec() -> dict[str, Any]:
            current = self.store.get(KIND_DEPLOYMENT, namespace, name, cancel)
            # Adopts an unowned Deployment, refuses one controlled by another object
            set_controller_reference(current, operator, self.scheme)
            current["spec"] = copy.deepcopy(desired_spec)
            return self.store.update(KIND_DEPLOYMENT, current, cancel)

        try:
            updated = retry_on_conflict(self.backoff, apply_spec, sleep=self._sleep, cancel=cancel)
        except ReconcileCancelled:
            raise
        except OperatorError as e:
            self._log(
                meta.get("namespace", namespace), meta.get("name", ""), meta.get("uid"),
                f"Error updating deployment {name} after conflict retry: {sanitize_exception(e)}",
                reason=REASON_UPDATE_DEPLOYMENT_FAILED, level=logging.ERROR,
            )
            self._fail(
                operator, e, REASON_UPDATE_DEPLOYMENT_FAILED,
                f"unable to update deployment: {sanitize_exception(e)}", cancel,
            )

        self._log(
            meta.get("namespace", namespace), meta.get("name", ""), meta.get("uid"),
            f"Updated deployment {name}", reason="DeploymentUpdated",
        )
        return updated

    def _fail(
        self,
        operator: dict[str, Any],
        error: OperatorError,
        reason: str,
        message: str,
        cancel: CancelToken | None,
    ) -> NoReturn:
        set_degraded_condition(_conditions(operator), reason, message, self._timestamp())
        raise self._persist_status(operator, error, cancel) or error

    def _persist_status(
        self, operator: dict[str, Any], primary: OperatorError | None, cancel: CancelToken | None
    ) -> BaseException | None:
        """Write the condition list and combine its failure with the primary error.

        On a version conflict the latest NginxOperator is re-read and the same
        conditions are written onto it, under the same backoff as Deployment
        updates.
        """
        meta = operator.get("metadata", {})
        conditions = copy.deepcopy(_conditions(operator))
        pending = [operator]

        def write_status() -> dict[str, Any]:
            if pending:
                body = pending.pop()
            else:
                body = self.store.get(KIND_NGINX_OPERATOR, meta.get("namespace", ""), meta.get("name", ""), cancel)
                merge_conditions(_conditions(body), copy.deepcopy(conditions))
            return self.store.update_status(KIND_NGINX_OPERATOR, body, cancel)

        status_error = None
        try:
            retry_on_conflict(self.backoff, write_status, sleep=self._sleep, cancel=cancel)
        except OperatorError as e:
            self._log(
                meta.get("namespace", ""), meta.get("name", ""), meta.get("uid"),
                f"Error updating operator status: {sanitize_exception(e)}",
                reason="StatusUpdateFailed", level=logging.ERROR,
            )
            status_error = e

        return aggregate_errors([primary, status_error])

    def _timestamp(self) -> datetime | None:
        return self._now() if self._now is not None else None

    def _log(
        self,
        namespace: str,
        name: str,
        uid: str | None,
        message: str,
        reason: str,
        level: int = logging.INFO,
    ) -> None:
        log_resource_event(
            logger,
            controller=FIELD_MANAGER,
            resource_kind=KIND_NGINX_OPERATOR,
            resource_name=name,
            namespace=namespace,
            uid=uid or "unknown",
            event="reconcile",
            reason=reason,
            message=message,
            level=level,
        )


def _conditions(operator: dict[str, Any]) -> list[dict[str, Any]]:
    status = operator.get("status")
    if not isinstance(status, dict):
        status = {}
        operator["status"] = status
    conditions = status.get("conditions")
    if not isinstance(conditions, list):
        conditions = []
        status["conditions"] = conditions
    return conditions
