"""Tests for the dataset update endpoint."""

import asyncio

import pytest
from httpx import AsyncClient

from ygolookup.api.deps import Runtime
from ygolookup.models.dataset import BanListCounts, RunStatistics
from ygolookup.models.failure import IntegrityFailure, NetworkFailure
from ygolookup.services.update_guard import UpdateGuard


class FakePublisher:
    def __init__(self, outcome: RunStatistics | Exception, gate: asyncio.Event | None = None):
        self.outcome = outcome
        self.gate = gate
        self.calls = 0

    async def publish(self) -> RunStatistics:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def stats() -> RunStatistics:
    return RunStatistics(
        processed_files=4,
        image_count=12000,
        card_count=12500,
        ban_lists={"ocg": BanListCounts(forbidden=90, limited=60, semi_limited=10)},
        download_seconds={"cards.json": 1.0},
    )


def use_publisher(runtime: Runtime, publisher: FakePublisher) -> None:
    runtime.publisher = lambda: publisher


class TestUpdateEndpoint:
    async def test_successful_update(
        self, client: AsyncClient, runtime: Runtime, stats: RunStatistics
    ) -> None:
        use_publisher(runtime, FakePublisher(stats))

        response = await client.post("/update")

        assert response.status_code == 200
        data = response.json()
        assert data["processed_files"] == 4
        assert data["image_count"] == 12000
        assert data["card_count"] == 12500
        assert data["ban_lists"]["ocg"] == {"forbidden": 90, "limited": 60, "semi_limited": 10}
        assert data["message"] == (
            "Update complete: processed 4 files, 12000 card images, 12500 card records"
        )

    async def test_failure_is_classified(self, client: AsyncClient, runtime: Runtime) -> None:
        use_publisher(runtime, FakePublisher(NetworkFailure("cards_1.tar.xz", 3)))

        response = await client.post("/update")

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["kind"] == "network_failure"
        assert detail["phase"] == "fetch"
        assert detail["file"] == "cards_1.tar.xz"
        assert "cards_1.tar.xz" in detail["message"]

    async def test_integrity_failure(self, client: AsyncClient, runtime: Runtime) -> None:
        use_publisher(runtime, FakePublisher(IntegrityFailure("limit.tar.xz", "a" * 64, "b" * 64)))

        response = await client.post("/update")

        detail = response.json()["detail"]
        assert detail["kind"] == "integrity_failure"
        assert detail["phase"] == "verify"

    async def test_cooldown_after_run(
        self, client: AsyncClient, runtime: Runtime, stats: RunStatistics
    ) -> None:
        runtime.guard = UpdateGuard(cooldown_seconds=600)
        publisher = FakePublisher(stats)
        use_publisher(runtime, publisher)

        first = await client.post("/update")
        second = await client.post("/update")

        assert first.status_code == 200
        assert second.status_code == 429
        assert int(second.headers["Retry-After"]) > 0
        assert publisher.calls == 1

    async def test_failed_run_also_starts_cooldown(
        self, client: AsyncClient, runtime: Runtime
    ) -> None:
        runtime.guard = UpdateGuard(cooldown_seconds=600)
        use_publisher(runtime, FakePublisher(NetworkFailure("cards.json", 3)))

        await client.post("/update")
        response = await client.post("/update")

        assert response.status_code == 429

    async def test_concurrent_update_rejected(
        self, client: AsyncClient, runtime: Runtime, stats: RunStatistics
    ) -> None:
        runtime.guard = UpdateGuard(cooldown_seconds=0)
        gate = asyncio.Event()
        publisher = FakePublisher(stats, gate)
        use_publisher(runtime, publisher)

        first = asyncio.create_task(client.post("/update"))
        while publisher.calls == 0:
            await asyncio.sleep(0.01)

        second = await client.post("/update")
        gate.set()

        assert second.status_code == 409
        assert (await first).status_code == 200
