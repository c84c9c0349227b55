"""Structured logging configuration for the Nginx Operator."""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any

from .utils.context import get_context_dict


def setup_structured_logging(level: str | None = None) -> None:
    """Configure structured JSON logging."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event.

    The current correlation ID, if any, is attached so all lines of one
    reconciliation can be grouped.
    """
    log_data = get_context_dict({
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    })
    log_data.update(kwargs)
    logger.log(level, json.dumps(log_data, default=str))
