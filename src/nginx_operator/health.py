"""Metrics and health check endpoints for the operator."""

from __future__ import annotations

import threading
from typing import Any, Callable

from prometheus_client import make_wsgi_app
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Response


def create_combined_wsgi_app(is_ready: Callable[[], bool] | None = None) -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.

    Args:
        is_ready: Readiness probe; ``/readyz`` answers 503 while it returns False

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> Any:
        """Route /healthz and /readyz, delegate everything else to prometheus."""
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            response = Response('{"status":"ok"}', mimetype="application/json", status=200)
            return response(environ, start_response)
        if path == "/readyz":
            if is_ready is None or is_ready():
                response = Response('{"status":"ready"}', mimetype="application/json", status=200)
            else:
                response = Response('{"status":"not ready"}', mimetype="application/json", status=503)
            return response(environ, start_response)
        return metrics_app(environ, start_response)

    return combined_app


def start_metrics_server(port: int, is_ready: Callable[[], bool] | None = None) -> BaseWSGIServer:
    """Serve metrics and health checks from a background thread.

    Returns:
        The running server; call ``shutdown()`` to stop it
    """
    server = make_server("", port, create_combined_wsgi_app(is_ready), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
