"""Tests for the app factory, base routes and middleware."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from server_wallet import __version__
from server_wallet.api.app import create_app
from server_wallet.config.settings import AppConfig, MetricsConfig


class TestFactory:
    def test_returns_fastapi(self, app_config: AppConfig) -> None:
        app = create_app(config=app_config)
        assert isinstance(app, FastAPI)
        assert app.version == __version__
        assert app.state.config is app_config

    def test_routes_mounted(self, app_config: AppConfig) -> None:
        paths = {getattr(r, "path", None) for r in create_app(config=app_config).routes}
        assert {"/health", "/metrics", "/api/identity-registry", "/api/server-wallet"} <= paths

    def test_engine_lifecycle(self, app_config: AppConfig) -> None:
        app = create_app(config=app_config)
        with TestClient(app):
            assert app.state.engine.is_initialized
        assert not app.state.engine.is_initialized


class TestBaseRoutes:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_metrics_endpoint(self, client: TestClient) -> None:
        client.get("/api/server-wallet", params={"action": "status"})
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "server_wallet_stats_total" in resp.text
        assert 'action="status"' in resp.text

    def test_metrics_disabled(self, app_config: AppConfig) -> None:
        config = app_config.model_copy(update={"metrics": MetricsConfig(enabled=False)})
        app = create_app(config=config)
        assert not hasattr(app.state, "metrics")
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert client.get("/metrics").status_code == 200


class TestCors:
    def test_preflight(self, client: TestClient) -> None:
        resp = client.options(
            "/api/identity-registry",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_simple_request(self, client: TestClient) -> None:
        resp = client.get("/health", headers={"Origin": "http://example.com"})
        assert resp.headers["access-control-allow-origin"] == "*"
