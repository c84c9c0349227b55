"""Operator configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from .utils.retry import Backoff

DEFAULT_METRICS_PORT = 8080
DEFAULT_RECONCILE_TIMEOUT_SECONDS = 60.0
DEFAULT_K8S_RATE_LIMIT_PER_SECOND = 10.0
DEFAULT_MAX_WORKERS = 4

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""


@dataclass(frozen=True)
class OperatorConfig:
    """Runtime settings of the operator.

    All fields are validated at construction time so a bad environment fails
    at startup instead of during the first reconciliation.
    """

    metrics_port: int = DEFAULT_METRICS_PORT
    log_level: str = "INFO"
    reconcile_timeout_seconds: float = DEFAULT_RECONCILE_TIMEOUT_SECONDS
    k8s_rate_limit_per_second: float = DEFAULT_K8S_RATE_LIMIT_PER_SECOND
    max_workers: int = DEFAULT_MAX_WORKERS
    conflict_backoff: Backoff = field(default_factory=Backoff)

    def __post_init__(self) -> None:
        if not 1 <= self.metrics_port <= 65535:
            raise ConfigurationError(f"METRICS_PORT must be between 1 and 65535, got {self.metrics_port}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level}")
        if self.reconcile_timeout_seconds <= 0:
            raise ConfigurationError("RECONCILE_TIMEOUT_SECONDS must be positive")
        if self.k8s_rate_limit_per_second <= 0:
            raise ConfigurationError("K8S_RATE_LIMIT_PER_SECOND must be positive")
        if self.max_workers < 1:
            raise ConfigurationError("KOPF_MAX_WORKERS must be at least 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OperatorConfig:
        """Build the configuration from environment variables.

        Raises:
            ConfigurationError: If a variable is malformed or out of range
        """
        env = os.environ if environ is None else environ
        try:
            backoff = Backoff(
                steps=int(env.get("CONFLICT_RETRY_STEPS", "10")),
                initial_delay=float(env.get("CONFLICT_RETRY_INITIAL_DELAY", "0.01")),
                factor=float(env.get("CONFLICT_RETRY_FACTOR", "2.0")),
                max_delay=float(env.get("CONFLICT_RETRY_MAX_DELAY", "1.0")),
            )
            return cls(
                metrics_port=int(env.get("METRICS_PORT", str(DEFAULT_METRICS_PORT))),
                log_level=env.get("LOG_LEVEL", "INFO"),
                reconcile_timeout_seconds=float(
                    env.get("RECONCILE_TIMEOUT_SECONDS", str(DEFAULT_RECONCILE_TIMEOUT_SECONDS))
                ),
                k8s_rate_limit_per_second=float(
                    env.get("K8S_RATE_LIMIT_PER_SECOND", str(DEFAULT_K8S_RATE_LIMIT_PER_SECOND))
                ),
                max_workers=int(env.get("KOPF_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))),
                conflict_backoff=backoff,
            )
        except ValueError as e:
            raise ConfigurationError(f"invalid operator configuration: {e}") from e
