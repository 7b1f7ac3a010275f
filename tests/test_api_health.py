"""Tests for health check endpoints."""

from httpx import AsyncClient

from ygolookup.api.deps import Runtime


class TestHealthEndpoint:
    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        """Liveness probe returns healthy."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

    async def test_health_no_dataset_check(self, client: AsyncClient) -> None:
        """Health endpoint does not include dataset status."""
        response = await client.get("/health")

        data = response.json()
        assert data.get("dataset") is None


class TestReadyEndpoint:
    async def test_ready_returns_ready(self, client: AsyncClient) -> None:
        """Readiness probe returns ready once a dataset is published."""
        response = await client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["dataset"] == "present"
        assert data["update_running"] is False

    async def test_ready_returns_503_without_dataset(
        self, client: AsyncClient, runtime: Runtime
    ) -> None:
        """Readiness probe returns 503 when no card database is published."""
        runtime.paths.card_database.unlink()

        response = await client.get("/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not ready"
        assert data["dataset"] == "missing"
