"""Main entry point for the Nginx Operator.

Run with ``kopf run -m nginx_operator.main --all-namespaces``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import kopf
from kubernetes import client

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .assets import load_templates
from .config import OperatorConfig
from .reconciler import NginxOperatorReconciler
from .scheme import build_scheme
from .services.kubernetes.client import KubernetesStore, load_custom_objects_api
from .utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def build_reconciler(
    config: OperatorConfig,
    api: client.CustomObjectsApi | None = None,
) -> NginxOperatorReconciler:
    """Wire the reconciler with its scheme, templates and store.

    Args:
        config: Operator configuration
        api: Kubernetes client to use; loaded from the environment when omitted
    """
    scheme = build_scheme()
    renderer = load_templates()
    store = KubernetesStore(
        api if api is not None else load_custom_objects_api(),
        scheme,
        rate_limiter=RateLimiter(config.k8s_rate_limit_per_second),
    )
    return NginxOperatorReconciler(store, renderer, scheme, backoff=config.conflict_backoff)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Configure the operator."""
    config = OperatorConfig.from_env()

    # Set up structured JSON logging
    structured_logging.setup_structured_logging(config.log_level)

    # Use annotations for kopf's own state so the status subresource stays ours
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = config.max_workers

    memo.config = config
    memo.stop_event = threading.Event()
    memo.reconciler = build_reconciler(config)
    memo.store = memo.reconciler.store

    # Metrics and health checks share one port
    memo.metrics_server = health.start_metrics_server(config.metrics_port)
    logger.info(f"Nginx Operator started, metrics on port {config.metrics_port}")


@kopf.on.cleanup()
def shutdown(memo: kopf.Memo, **_: Any) -> None:
    """Cancel in-flight reconciliations and stop the metrics server."""
    stop_event = getattr(memo, "stop_event", None)
    if stop_event is not None:
        stop_event.set()
    server = getattr(memo, "metrics_server", None)
    if server is not None:
        server.shutdown()
    logger.info("Nginx Operator stopped")
