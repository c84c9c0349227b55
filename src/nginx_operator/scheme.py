"""Registry of the resource types the operator reads and writes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .constants import (
    API_GROUP,
    API_VERSION,
    KIND_DEPLOYMENT,
    KIND_NGINX_OPERATOR,
    PLURAL_DEPLOYMENTS,
    PLURAL_NGINX_OPERATORS,
)
from .utils.errors import SchemeError


@dataclass(frozen=True)
class ResourceType:
    """Where a kind lives in the Kubernetes API."""

    group: str
    version: str
    kind: str
    plural: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


class Scheme:
    """Explicit kind registry, built once at startup and passed around."""

    def __init__(self) -> None:
        self._types: dict[str, ResourceType] = {}

    def register(self, resource_type: ResourceType) -> None:
        existing = self._types.get(resource_type.kind)
        if existing is not None and existing != resource_type:
            raise SchemeError(f"kind {resource_type.kind} is already registered as {existing.api_version}")
        self._types[resource_type.kind] = resource_type

    def lookup(self, kind: str) -> ResourceType:
        """Return the registered type for ``kind``.

        Raises:
            SchemeError: If the kind is not registered
        """
        try:
            return self._types[kind]
        except KeyError:
            raise SchemeError(f"kind {kind} is not registered in the scheme") from None

    def recognizes(self, api_version: str | None, kind: str | None) -> bool:
        resource_type = self._types.get(kind or "")
        return resource_type is not None and resource_type.api_version == api_version

    def type_for(self, obj: dict[str, Any]) -> ResourceType:
        """Return the registered type of an object body."""
        api_version = obj.get("apiVersion")
        kind = obj.get("kind")
        if not self.recognizes(api_version, kind):
            raise SchemeError(f"{api_version}/{kind} is not registered in the scheme")
        return self._types[kind]

    def __contains__(self, kind: object) -> bool:
        return kind in self._types


def build_scheme() -> Scheme:
    """Build the scheme with every kind this operator handles."""
    scheme = Scheme()
    scheme.register(ResourceType(API_GROUP, API_VERSION, KIND_NGINX_OPERATOR, PLURAL_NGINX_OPERATORS))
    scheme.register(ResourceType("apps", "v1", KIND_DEPLOYMENT, PLURAL_DEPLOYMENTS))
    return scheme
