"""Integration tests for the health probes."""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

STORE_TABLES = ["orders", "order_items", "catalog_items", "notifications", "archived_orders", "users"]


class TestHealthEndpoint:
    """Tests for /health."""

    def test_health_returns_healthy_status_and_version(self, client: TestClient) -> None:
        response = client.get("/health")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["timestamp"] is not None
        assert data["version"] == "0.1.0"


class TestReadinessEndpoint:
    """Tests for /health/ready."""

    def test_every_table_probed_when_healthy(self, client: TestClient, mock_supabase_client: MagicMock) -> None:
        response = client.get("/health/ready")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert [check["name"] for check in data["checks"]] == STORE_TABLES
        assert all(check["latency_ms"] >= 0 for check in data["checks"])
        probed = [c.args[0] for c in mock_supabase_client.table.call_args_list]
        assert probed == STORE_TABLES

    def test_returns_503_when_store_down(self, client: TestClient, mock_supabase_client: MagicMock) -> None:
        """A failing probe marks the service unready and reports the error."""
        mock_supabase_client.table.side_effect = Exception("Connection refused")

        response = client.get("/health/ready")
        data = response.json()

        assert response.status_code == 503
        assert data["status"] == "unhealthy"
        assert not any(check["healthy"] for check in data["checks"])
        assert "Connection refused" in data["checks"][0]["error"]
