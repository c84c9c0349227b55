"""Builder for the managed Deployment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..utils.errors import SpecValidationError

MIN_PORT = 1
MAX_PORT = 65535


@dataclass(frozen=True)
class OperatorSpec:
    """Validated view of an NginxOperator spec."""

    replicas: int | None = None
    port: int | None = None


def _optional_int(spec: dict[str, Any], field: str) -> int | None:
    value = spec.get(field)
    if value is None:
        return None
    # bool is an int subclass but never a valid count or port
    if isinstance(value, bool) or not isinstance(value, int):
        raise SpecValidationError(f"spec.{field} must be an integer, got {value!r}")
    return value


def parse_operator_spec(spec: dict[str, Any] | None) -> OperatorSpec:
    """Parse and validate an NginxOperator spec.

    Raises:
        SpecValidationError: If replicas is negative or port is out of range
    """
    spec = spec or {}
    replicas = _optional_int(spec, "replicas")
    port = _optional_int(spec, "port")

    if replicas is not None and replicas < 0:
        raise SpecValidationError(f"spec.replicas must be >= 0, got {replicas}")
    if port is not None and not MIN_PORT <= port <= MAX_PORT:
        raise SpecValidationError(f"spec.port must be between {MIN_PORT} and {MAX_PORT}, got {port}")

    return OperatorSpec(replicas=replicas, port=port)


def apply_overrides(deployment: dict[str, Any], namespace: str, spec: OperatorSpec) -> dict[str, Any]:
    """Scope a rendered Deployment to ``namespace`` and apply spec overrides.

    Replicas are replaced only when set. The port replaces the first port of
    the first container only when both the spec field and that slot exist;
    a template without containers or ports is left untouched.

    Args:
        deployment: Rendered Deployment body, modified in place
        namespace: Namespace of the owning NginxOperator
        spec: Validated NginxOperator spec

    Returns:
        The modified Deployment body
    """
    deployment.setdefault("metadata", {})["namespace"] = namespace
    deployment_spec = deployment.setdefault("spec", {})

    if spec.replicas is not None:
        deployment_spec["replicas"] = spec.replicas

    if spec.port is not None:
        pod_spec = (deployment_spec.get("template") or {}).get("spec") or {}
        containers = pod_spec.get("containers") or []
        if containers:
            ports = containers[0].get("ports") or []
            if ports:
                ports[0]["containerPort"] = spec.port

    return deployment
