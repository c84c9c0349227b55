"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
import uuid
from typing import Any, Callable, Iterator

import pytest

from nginx_operator.assets import TemplateRenderer, load_templates
from nginx_operator.constants import API_GROUP_VERSION, KIND_NGINX_OPERATOR
from nginx_operator.reconciler import NginxOperatorReconciler
from nginx_operator.scheme import Scheme, build_scheme
from nginx_operator.utils.cancellation import CancelToken, check_cancelled
from nginx_operator.utils.conditions import merge_conditions
from nginx_operator.utils.errors import AlreadyExistsError, ConflictError, NotFoundError
from nginx_operator.utils.retry import Backoff


class FakeStore:
    """In-memory versioned object store that records every call.

    Failures can be scripted per (method, kind); they are raised in order
    before the call touches any state.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.failures: dict[tuple[str, str], list[Exception]] = {}
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def put(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Store an object directly, bypassing call recording."""
        obj = copy.deepcopy(body)
        meta = obj.setdefault("metadata", {})
        meta.setdefault("namespace", "default")
        meta.setdefault("uid", str(uuid.uuid4()))
        meta["resourceVersion"] = self._next_version()
        self.objects[(kind, meta["namespace"], meta["name"])] = obj
        return copy.deepcopy(obj)

    def stored(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        return self.objects[(kind, namespace, name)]

    def fail(self, method: str, kind: str, *errors: Exception) -> None:
        self.failures.setdefault((method, kind), []).extend(errors)

    def writes(self) -> list[tuple[str, str, str]]:
        return [call for call in self.calls if call[0] != "get"]

    def calls_for(self, kind: str) -> list[str]:
        return [method for method, call_kind, _ in self.calls if call_kind == kind]

    def _record(self, method: str, kind: str, name: str, cancel: CancelToken | None) -> None:
        check_cancelled(cancel)
        self.calls.append((method, kind, name))
        queue = self.failures.get((method, kind))
        if queue:
            raise queue.pop(0)

    def get(self, kind: str, namespace: str, name: str, cancel: CancelToken | None = None) -> dict[str, Any]:
        self._record("get", kind, name, cancel)
        try:
            return copy.deepcopy(self.objects[(kind, namespace, name)])
        except KeyError:
            raise NotFoundError(f"{kind} {namespace}/{name} not found") from None

    def create(self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None) -> dict[str, Any]:
        meta = body["metadata"]
        self._record("create", kind, meta["name"], cancel)
        if (kind, meta["namespace"], meta["name"]) in self.objects:
            raise AlreadyExistsError(f"{kind} {meta['namespace']}/{meta['name']} already exists")
        return self.put(kind, body)

    def update(self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None) -> dict[str, Any]:
        meta = body["metadata"]
        self._record("update", kind, meta["name"], cancel)
        key = (kind, meta["namespace"], meta["name"])
        if key not in self.objects:
            raise NotFoundError(f"{kind} {meta['namespace']}/{meta['name']} not found")
        if meta.get("resourceVersion") != self.objects[key]["metadata"]["resourceVersion"]:
            raise ConflictError(f"{kind} {meta['namespace']}/{meta['name']} was modified concurrently")
        return self.put(kind, body)

    def update_status(self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None) -> dict[str, Any]:
        meta = body["metadata"]
        self._record("update_status", kind, meta["name"], cancel)
        key = (kind, meta["namespace"], meta["name"])
        if key not in self.objects:
            raise NotFoundError(f"{kind} {meta['namespace']}/{meta['name']} not found")
        stored = self.objects[key]
        if meta.get("resourceVersion") and meta["resourceVersion"] != stored["metadata"]["resourceVersion"]:
            raise ConflictError(f"{kind} {meta['namespace']}/{meta['name']} was modified concurrently")
        if meta.get("resourceVersion"):
            stored["status"] = copy.deepcopy(body.get("status", {}))
        else:
            conditions = stored.setdefault("status", {}).setdefault("conditions", [])
            merge_conditions(conditions, copy.deepcopy(body.get("status", {}).get("conditions") or []))
        stored["metadata"]["resourceVersion"] = self._next_version()
        return copy.deepcopy(stored)

    def annotate(
        self,
        kind: str,
        namespace: str,
        name: str,
        annotations: dict[str, str],
        cancel: CancelToken | None = None,
    ) -> dict[str, Any]:
        self._record("annotate", kind, name, cancel)
        key = (kind, namespace, name)
        if key not in self.objects:
            raise NotFoundError(f"{kind} {namespace}/{name} not found")
        stored = self.objects[key]
        stored["metadata"].setdefault("annotations", {}).update(annotations)
        stored["metadata"]["resourceVersion"] = self._next_version()
        return copy.deepcopy(stored)

    def watch(
        self, kind: str, namespace: str | None = None, timeout_seconds: int = 60
    ) -> Iterator[tuple[str, dict[str, Any]]]:
        for (obj_kind, obj_ns, _), obj in list(self.objects.items()):
            if obj_kind == kind and (namespace is None or obj_ns == namespace):
                yield "ADDED", copy.deepcopy(obj)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def scheme() -> Scheme:
    return build_scheme()


@pytest.fixture
def renderer() -> TemplateRenderer:
    return load_templates()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_reconciler(
    store: FakeStore, renderer: TemplateRenderer, scheme: Scheme, sleeps: list[float]
) -> Callable[..., NginxOperatorReconciler]:
    """Build a reconciler over the fake store with a recording, non-blocking sleep."""

    def factory(**kwargs: Any) -> NginxOperatorReconciler:
        kwargs.setdefault("backoff", Backoff(steps=10, initial_delay=0.01, factor=2.0, max_delay=1.0, jitter=0))
        kwargs.setdefault("sleep", sleeps.append)
        return NginxOperatorReconciler(store, renderer, scheme, **kwargs)

    return factory


@pytest.fixture
def add_nginx_operator(store: FakeStore) -> Callable[..., dict[str, Any]]:
    """Store an NginxOperator and return the stored body."""

    def factory(name: str = "nginx", namespace: str = "default", **spec: Any) -> dict[str, Any]:
        return store.put(
            KIND_NGINX_OPERATOR,
            {
                "apiVersion": API_GROUP_VERSION,
                "kind": KIND_NGINX_OPERATOR,
                "metadata": {"name": name, "namespace": namespace},
                "spec": spec,
            },
        )

    return factory
