"""Object store backed by the Kubernetes API."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterator

import urllib3
from kubernetes import client, config, watch
from kubernetes.client.exceptions import ApiException

from ... import metrics
from ...scheme import ResourceType, Scheme
from ...utils.cancellation import CancelToken, check_cancelled
from ...utils.conditions import merge_conditions
from ...utils.errors import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    OperatorError,
    ReconcileCancelled,
    TransientError,
)
from ...utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def load_custom_objects_api() -> client.CustomObjectsApi:
    """Load cluster credentials and return a CustomObjectsApi client.

    In-cluster service account credentials are preferred; a local kubeconfig
    is used when running outside a cluster.
    """
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return client.CustomObjectsApi()


def translate_api_exception(e: ApiException, operation: str, kind: str, namespace: str, name: str) -> OperatorError:
    """Map a Kubernetes API exception onto the operator's error taxonomy."""
    target = f"{kind} {namespace}/{name}"
    if e.status == 404:
        return NotFoundError(f"{target} not found")
    if e.status == 409:
        if operation == "create":
            return AlreadyExistsError(f"{target} already exists")
        return ConflictError(f"{target} was modified concurrently: {e.reason}")
    return TransientError(f"{operation} {target} failed: {e.status} {e.reason}")


class KubernetesStore:
    """ObjectStore implementation over ``CustomObjectsApi``.

    The generic custom-objects endpoints also serve built-in grouped kinds
    such as ``apps/v1`` Deployments, so every kind is handled as a plain dict.
    """

    def __init__(
        self,
        api: client.CustomObjectsApi,
        scheme: Scheme,
        rate_limiter: RateLimiter | None = None,
    ):
        self.api = api
        self.scheme = scheme
        self.rate_limiter = rate_limiter

    def _call(
        self,
        operation: str,
        resource_type: ResourceType,
        obj_namespace: str,
        obj_name: str,
        fn: Callable[..., Any],
        cancel: CancelToken | None,
        **kwargs: Any,
    ) -> Any:
        check_cancelled(cancel)
        if self.rate_limiter is not None:
            self.rate_limiter.wait()
            check_cancelled(cancel)

        if cancel is not None:
            remaining = cancel.remaining()
            if remaining is not None:
                kwargs["_request_timeout"] = remaining

        metric_op = f"{operation}_{resource_type.plural}"
        target = f"{resource_type.kind} {obj_namespace}/{obj_name}"
        start_time = time.time()
        try:
            result = fn(**kwargs)
            metrics.api_call_total.labels(operation=metric_op, result="success").inc()
            return result
        except ApiException as e:
            metrics.api_call_total.labels(operation=metric_op, result="error").inc()
            raise translate_api_exception(e, operation, resource_type.kind, obj_namespace, obj_name) from e
        except urllib3.exceptions.HTTPError as e:
            metrics.api_call_total.labels(operation=metric_op, result="error").inc()
            if cancel is not None and cancel.cancelled:
                raise ReconcileCancelled(f"{operation} {target} cancelled") from e
            raise TransientError(f"{operation} {target} failed: {e}") from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(operation=metric_op).observe(duration)

    def get(
        self, kind: str, namespace: str, name: str, cancel: CancelToken | None = None
    ) -> dict[str, Any]:
        rt = self.scheme.lookup(kind)
        return self._call(
            "get", rt, namespace, name, self.api.get_namespaced_custom_object, cancel,
            group=rt.group, version=rt.version, namespace=namespace, plural=rt.plural, name=name,
        )

    def create(self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None) -> dict[str, Any]:
        rt = self.scheme.lookup(kind)
        namespace, name = _identity(body)
        body.setdefault("apiVersion", rt.api_version)
        body.setdefault("kind", rt.kind)
        return self._call(
            "create", rt, namespace, name, self.api.create_namespaced_custom_object, cancel,
            group=rt.group, version=rt.version, namespace=namespace, plural=rt.plural, body=body,
        )

    def update(self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None) -> dict[str, Any]:
        rt = self.scheme.lookup(kind)
        namespace, name = _identity(body)
        return self._call(
            "update", rt, namespace, name, self.api.replace_namespaced_custom_object, cancel,
            group=rt.group, version=rt.version, namespace=namespace, plural=rt.plural, name=name, body=body,
        )

    def update_status(
        self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None
    ) -> dict[str, Any]:
        """Replace the status subresource.

        A body without a version token (the object could not be read earlier)
        is first merged into a fresh copy, condition by condition, so condition
        types written by others survive.
        """
        rt = self.scheme.lookup(kind)
        namespace, name = _identity(body)
        if not body.get("metadata", {}).get("resourceVersion"):
            current = self.get(kind, namespace, name, cancel)
            status = current.get("status")
            if not isinstance(status, dict):
                status = current["status"] = {}
            merge_conditions(status.setdefault("conditions", []), body.get("status", {}).get("conditions") or [])
            body = current
        return self._call(
            "update_status", rt, namespace, name, self.api.replace_namespaced_custom_object_status, cancel,
            group=rt.group, version=rt.version, namespace=namespace, plural=rt.plural, name=name, body=body,
        )

    def annotate(
        self,
        kind: str,
        namespace: str,
        name: str,
        annotations: dict[str, str],
        cancel: CancelToken | None = None,
    ) -> dict[str, Any]:
        rt = self.scheme.lookup(kind)
        return self._call(
            "annotate", rt, namespace, name, self.api.patch_namespaced_custom_object, cancel,
            group=rt.group, version=rt.version, namespace=namespace, plural=rt.plural, name=name,
            body={"metadata": {"annotations": annotations}},
        )

    def watch(
        self, kind: str, namespace: str | None = None, timeout_seconds: int = 60
    ) -> Iterator[tuple[str, dict[str, Any]]]:
        rt = self.scheme.lookup(kind)
        watcher = watch.Watch()
        try:
            if namespace:
                stream = watcher.stream(
                    self.api.list_namespaced_custom_object,
                    group=rt.group, version=rt.version, namespace=namespace, plural=rt.plural,
                    timeout_seconds=timeout_seconds,
                )
            else:
                stream = watcher.stream(
                    self.api.list_cluster_custom_object,
                    group=rt.group, version=rt.version, plural=rt.plural,
                    timeout_seconds=timeout_seconds,
                )
            for event in stream:
                yield event["type"], event["object"]
        except ApiException as e:
            raise translate_api_exception(e, "watch", rt.kind, namespace or "*", "*") from e
        finally:
            watcher.stop()


def _identity(body: dict[str, Any]) -> tuple[str, str]:
    meta = body.get("metadata", {})
    return meta.get("namespace", "default"), meta.get("name", "")
