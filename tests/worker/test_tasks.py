"""
Tests for worker task endpoints.

These tests verify that the Cloud Tasks endpoints correctly handle task payloads
and invoke the appropriate handlers.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from homster.models.alert import DispatchOutcome
from homster.worker.handlers import handle_alert_expiry
from homster.worker.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client for worker service"""
    return TestClient(app)


class TestHealthEndpoints:
    def test_root_endpoint(self, client: TestClient):
        """Test root endpoint returns service info and dispatch settings"""
        with patch("homster.worker.main.config") as mock_config:
            mock_config.ALERT_WINDOW_SECONDS = 45
            mock_config.ALERT_WAVE_SIZE = 3
            mock_config.VENDOR_SEARCH_RADIUS_KM = 8.0
            response = client.get("/")

        assert response.status_code == 200

        data = response.json()
        assert data["service"] == "Homster Worker API"
        assert data["status"] == "operational"
        assert data["tasks"] == ["/tasks/alert-expiry"]
        assert data["dispatch"]["alert_window_seconds"] == 45
        assert data["dispatch"]["wave_size"] == 3
        assert data["dispatch"]["search_radius_km"] == 8.0

    def test_health_endpoint(self, client: TestClient):
        """Test health check with the database connected"""
        with patch("homster.worker.main.DatabaseConnection") as mock_db:
            mock_db.is_initialized.return_value = True
            response = client.get("/health")

        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "homster-worker"
        assert data["database"] == "connected"

    def test_health_degraded_without_database(self, client: TestClient):
        with (
            patch("homster.worker.main.DatabaseConnection") as mock_db,
            patch("homster.worker.main.config") as mock_config,
        ):
            mock_db.is_initialized.return_value = False
            mock_config.REDIS_URL = ""
            response = client.get("/health")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["database"] == "unavailable"
        assert data["socket_manager"] == "in-memory"


class TestLifespan:
    def test_connects_and_closes_database(self):
        with patch("homster.worker.main.DatabaseConnection") as mock_db:
            mock_db.is_configured.return_value = True
            with TestClient(app):
                mock_db.initialize.assert_called_once()
                mock_db.close.assert_not_called()

            mock_db.close.assert_called_once()

    def test_starts_without_database(self):
        with patch("homster.worker.main.DatabaseConnection") as mock_db:
            mock_db.is_configured.return_value = False
            with TestClient(app) as client:
                assert client.get("/").status_code == 200

            mock_db.initialize.assert_not_called()
            mock_db.close.assert_not_called()


class TestAlertExpiryTask:
    def test_next_wave_sent(self, client: TestClient):
        outcome = DispatchOutcome(
            booking_id="b-1", wave=2, alerted_vendor_ids=["v-6", "v-7"], expired_alerts=5
        )
        with patch(
            "homster.worker.routes.tasks.handle_alert_expiry",
            new=AsyncMock(return_value=outcome),
        ) as mock_handler:
            response = client.post("/tasks/alert-expiry", json={"booking_id": "b-1", "wave": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["booking_id"] == "b-1"
        assert data["result"]["wave"] == 2
        assert data["result"]["alerted_vendor_ids"] == ["v-6", "v-7"]
        mock_handler.assert_awaited_once_with(booking_id="b-1", wave=1)

    def test_handler_failure_returns_500(self, client: TestClient):
        with patch(
            "homster.worker.routes.tasks.handle_alert_expiry",
            new=AsyncMock(side_effect=RuntimeError("Database not available")),
        ):
            response = client.post("/tasks/alert-expiry", json={"booking_id": "b-1", "wave": 1})

        assert response.status_code == 500
        assert response.json()["detail"] == "Alert expiry failed: Database not available"

    def test_invalid_payload(self, client: TestClient):
        response = client.post("/tasks/alert-expiry", json={"booking_id": "b-1", "wave": 0})

        assert response.status_code == 422


class TestHandleAlertExpiry:
    @pytest.mark.asyncio
    async def test_requires_database(self):
        with patch("homster.worker.handlers.DatabaseConnection") as mock_db:
            mock_db.is_initialized.return_value = False

            with pytest.raises(RuntimeError, match="Database not available"):
                await handle_alert_expiry("b-1", 1)

    @pytest.mark.asyncio
    async def test_advances_and_commits(self):
        outcome = DispatchOutcome(booking_id="b-1", wave=1, skipped=True)
        with (
            patch("homster.worker.handlers.DatabaseConnection") as mock_db,
            patch("homster.worker.handlers.UnitOfWork") as mock_uow_class,
            patch("homster.worker.handlers.advance", return_value=outcome) as mock_advance,
        ):
            mock_db.is_initialized.return_value = True
            uow = MagicMock()
            mock_uow_class.return_value.__enter__.return_value = uow

            result = await handle_alert_expiry("b-1", 1)

        assert result is outcome
        assert mock_advance.call_args[0][:3] == (uow, "b-1", 1)
        uow.commit.assert_called_once()
