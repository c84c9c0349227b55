"""Unit tests for the metrics and health endpoints."""

from __future__ import annotations

from werkzeug.test import Client

from nginx_operator import metrics  # noqa: F401
from nginx_operator.health import create_combined_wsgi_app


class TestCombinedApp:
    """Test the combined WSGI app."""

    def test_healthz(self) -> None:
        """Test liveness always answers ok."""
        response = Client(create_combined_wsgi_app()).get("/healthz")

        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}

    def test_readyz(self) -> None:
        """Test readiness follows the probe."""
        ready = {"value": False}
        client = Client(create_combined_wsgi_app(lambda: ready["value"]))

        assert client.get("/readyz").status_code == 503
        ready["value"] = True
        assert client.get("/readyz").status_code == 200

    def test_readyz_without_probe(self) -> None:
        """Test readiness defaults to ready."""
        assert Client(create_combined_wsgi_app()).get("/readyz").status_code == 200

    def test_metrics(self) -> None:
        """Test other paths serve prometheus metrics."""
        response = Client(create_combined_wsgi_app()).get("/metrics")

        assert response.status_code == 200
        assert b"nginx_operator_reconcile_total" in response.data
        assert b"nginx_operator_conflict_retries_total" in response.data
