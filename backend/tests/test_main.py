"""
Tests for the application entry point.

Covers the informational and health endpoints, request ID propagation,
exception handlers and the startup/shutdown lifecycle.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from service_hub import main
from service_hub.database.connection import DatabaseConnectionError
from service_hub.main import app


# ============================================================================
# Informational endpoints
# ============================================================================


class TestRootEndpoint:
    """Test suite for ``GET /``."""

    def test_root_describes_api_and_cors(self, test_client: TestClient):
        response = test_client.get("/")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Shivalik Service Hub Backend API"
        assert data["cors"] == "Configured with pattern matching for Vercel deployments"
        assert data["vercelPattern"] == "https://shivaklik-frontend*.vercel.app"
        assert "http://localhost:3000" in data["allowedOrigins"]


class TestHealthEndpoints:
    """Test suite for health and readiness endpoints."""

    def test_health_reports_ok_with_timestamp(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "OK"
        assert data["origin"] == "No origin header"
        # ISO-8601 with timezone
        assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None

    def test_health_echoes_allowed_origin(self, test_client: TestClient):
        response = test_client.get("/health", headers={"Origin": "http://localhost:3000"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["origin"] == "http://localhost:3000"

    def test_ready_when_database_answers(self, test_client: TestClient, lifespan_mocks):
        response = test_client.get("/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ready", "database": "healthy"}

    def test_not_ready_when_database_down(self, test_client: TestClient, lifespan_mocks):
        lifespan_mocks["ping"].return_value = False

        response = test_client.get("/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["status"] == "not_ready"


# ============================================================================
# Middleware and handlers
# ============================================================================


class TestRequestId:
    def test_generates_request_id(self, test_client: TestClient):
        response = test_client.get("/health")
        assert response.headers.get("X-Request-ID")

    def test_propagates_incoming_request_id(self, test_client: TestClient):
        response = test_client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestExceptionHandlers:
    def test_validation_error_is_structured(self, test_client: TestClient):
        response = test_client.post("/api/user-auth/register", json={"email": "not-an-email"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        data = response.json()
        assert data["error"] == "Validation Error"
        assert isinstance(data["details"], list)
        assert "request_id" in data

    def test_unexpected_error_returns_500(self, session_store, lifespan_mocks, product_repo):
        from service_hub.api import deps

        product_repo.categories.side_effect = RuntimeError("boom")
        app.dependency_overrides[deps.get_product_repository] = lambda: product_repo
        try:
            with TestClient(app, raise_server_exceptions=False) as client:
                response = client.get("/api/products/categories")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "Internal Server Error"
        assert "boom" not in response.text


# ============================================================================
# Lifecycle
# ============================================================================


class TestLifespan:
    """Startup and shutdown behaviour."""

    async def test_startup_connects_and_prepares_database(self, lifespan_mocks):
        async with main.lifespan(app):
            lifespan_mocks["connect"].assert_awaited_once()
            lifespan_mocks["ensure_indexes"].assert_awaited_once()
            lifespan_mocks["verify_email"].assert_awaited_once()

        lifespan_mocks["close"].assert_awaited_once()

    async def test_exits_when_database_unreachable(self, lifespan_mocks):
        lifespan_mocks["connect"].side_effect = DatabaseConnectionError("refused")

        with pytest.raises(SystemExit) as exc_info:
            async with main.lifespan(app):
                pass

        assert exc_info.value.code == 1
        lifespan_mocks["ensure_indexes"].assert_not_awaited()

    async def test_bootstraps_admin_when_configured(self, lifespan_mocks, monkeypatch):
        monkeypatch.setattr(main.settings, "admin_username", "owner")
        monkeypatch.setattr(main.settings, "admin_password", "owner-pass")
        admin_repository = MagicMock()
        admin_repository.ensure_admin = AsyncMock(return_value=True)

        with patch.object(main, "AdminRepository", return_value=admin_repository):
            async with main.lifespan(app):
                pass

        admin_repository.ensure_admin.assert_awaited_once_with("owner", "owner-pass")


class TestSocketApp:
    def test_socket_server_attached_to_app(self):
        assert app.state.sio is main.sio
        assert main.socket_app is not None


class TestRun:
    """Process entry point."""

    def test_exits_with_status_1_when_startup_fails(self, monkeypatch):
        monkeypatch.setattr(main.settings, "reload", False)
        server = MagicMock(started=False)

        with patch.object(main.uvicorn, "Server", return_value=server) as server_cls:
            with pytest.raises(SystemExit) as exc_info:
                main.run()

        assert exc_info.value.code == 1
        server.run.assert_called_once()
        config = server_cls.call_args.args[0]
        assert config.app is main.socket_app
        assert config.port == main.settings.port
        assert config.lifespan == "on"

    def test_returns_normally_after_clean_shutdown(self, monkeypatch):
        monkeypatch.setattr(main.settings, "reload", False)
        server = MagicMock(started=True)

        with patch.object(main.uvicorn, "Server", return_value=server):
            main.run()

        server.run.assert_called_once()

    def test_reload_is_opt_in(self, monkeypatch):
        monkeypatch.setattr(main.settings, "reload", True)

        with patch.object(main.uvicorn, "run") as uvicorn_run, patch.object(
            main.uvicorn, "Server"
        ) as server_cls:
            main.run()

        assert uvicorn_run.call_args.kwargs["reload"] is True
        server_cls.assert_not_called()
