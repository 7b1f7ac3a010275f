"""Tests for release file downloads."""

from pathlib import Path

import httpx
import pytest
import respx

from ygolookup.models.failure import EmptyArtifact, FailureKind, NetworkFailure, StorageFailure
from ygolookup.services.fetcher import fetch_file, fetch_optional, release_url

URL = "https://github.com/Arshtyi/YuGiOh-Cards-Maker/releases/download/latest/cards.json"


class TestReleaseUrl:
    def test_builds_release_download_url(self) -> None:
        assert release_url("Arshtyi/YuGiOh-Cards-Maker", "latest", "cards.json") == URL

    def test_custom_base_url(self) -> None:
        url = release_url("owner/repo", "v1", "a.tar.xz", base_url="http://mirror.local")

        assert url == "http://mirror.local/owner/repo/releases/download/v1/a.tar.xz"


class TestFetchFile:
    @respx.mock
    async def test_downloads_to_destination(self, tmp_path: Path) -> None:
        respx.get(URL).mock(return_value=httpx.Response(200, content=b'{"1": {}}'))

        async with httpx.AsyncClient() as client:
            result = await fetch_file(client, URL, tmp_path / "cards.json", retry_delay=0)

        assert result.path.read_bytes() == b'{"1": {}}'
        assert result.attempts == 1
        assert result.size == 9

    @respx.mock
    async def test_succeeds_on_third_attempt(self, tmp_path: Path) -> None:
        """Two failures then a success stages the file after exactly 3 attempts."""
        route = respx.get(URL).mock(
            side_effect=[
                httpx.ConnectError("connection reset"),
                httpx.Response(500),
                httpx.Response(200, content=b"data"),
            ]
        )

        async with httpx.AsyncClient() as client:
            result = await fetch_file(client, URL, tmp_path / "cards.json", retry_delay=0)

        assert route.call_count == 3
        assert result.attempts == 3
        assert result.path.read_bytes() == b"data"

    @respx.mock
    async def test_three_failures_raise_network_failure(self, tmp_path: Path) -> None:
        route = respx.get(URL).mock(side_effect=httpx.ConnectError("unreachable"))

        async with httpx.AsyncClient() as client:
            with pytest.raises(NetworkFailure) as exc_info:
                await fetch_file(client, URL, tmp_path / "cards.json", retry_delay=0)

        assert route.call_count == 3
        assert exc_info.value.kind == FailureKind.NETWORK_FAILURE
        assert exc_info.value.file_name == "cards.json"
        assert "cards.json" in str(exc_info.value)
        assert not (tmp_path / "cards.json").exists()

    @respx.mock
    async def test_empty_file_is_a_failed_attempt(self, tmp_path: Path) -> None:
        route = respx.get(URL).mock(
            side_effect=[httpx.Response(200, content=b""), httpx.Response(200, content=b"ok")]
        )

        async with httpx.AsyncClient() as client:
            result = await fetch_file(client, URL, tmp_path / "cards.json", retry_delay=0)

        assert route.call_count == 2
        assert result.attempts == 2

    @respx.mock
    async def test_always_empty_raises_empty_artifact(self, tmp_path: Path) -> None:
        respx.get(URL).mock(return_value=httpx.Response(200, content=b""))

        async with httpx.AsyncClient() as client:
            with pytest.raises(EmptyArtifact, match="empty"):
                await fetch_file(client, URL, tmp_path / "cards.json", retry_delay=0)

    @respx.mock
    async def test_attempt_count_is_configurable(self, tmp_path: Path) -> None:
        route = respx.get(URL).mock(return_value=httpx.Response(404))

        async with httpx.AsyncClient() as client:
            with pytest.raises(NetworkFailure):
                await fetch_file(client, URL, tmp_path / "x", attempts=1, retry_delay=0)

        assert route.call_count == 1

    @respx.mock
    async def test_reports_progress(self, tmp_path: Path) -> None:
        body = b"x" * 500_000
        respx.get(URL).mock(
            return_value=httpx.Response(
                200, content=body, headers={"Content-Length": str(len(body))}
            )
        )
        messages: list[str] = []

        async with httpx.AsyncClient() as client:
            await fetch_file(
                client, URL, tmp_path / "cards.json", retry_delay=0, progress=messages.append
            )

        assert messages
        assert messages[-1] == "cards.json: 100%"


class TestFetchOptional:
    @respx.mock
    async def test_missing_companion_returns_none(self, tmp_path: Path) -> None:
        respx.get(URL + ".sha256").mock(return_value=httpx.Response(404))

        async with httpx.AsyncClient() as client:
            result = await fetch_optional(client, URL + ".sha256", tmp_path / "c.sha256")

        assert result is None
        assert not (tmp_path / "c.sha256").exists()

    @respx.mock
    async def test_writes_companion(self, tmp_path: Path) -> None:
        respx.get(URL + ".sha256").mock(return_value=httpx.Response(200, text="abc"))

        async with httpx.AsyncClient() as client:
            result = await fetch_optional(client, URL + ".sha256", tmp_path / "c.sha256")

        assert result == tmp_path / "c.sha256"
        assert result.read_text() == "abc"

    @respx.mock
    async def test_server_error_is_retried(self, tmp_path: Path) -> None:
        route = respx.get(URL + ".sha256").mock(
            side_effect=[httpx.Response(503), httpx.Response(200, text="abc")]
        )

        async with httpx.AsyncClient() as client:
            result = await fetch_optional(
                client, URL + ".sha256", tmp_path / "c.sha256", retry_delay=0
            )

        assert route.call_count == 2
        assert result == tmp_path / "c.sha256"

    @respx.mock
    async def test_persistent_failure_is_raised(self, tmp_path: Path) -> None:
        """A companion that exists but cannot be fetched is not treated as absent."""
        route = respx.get(URL + ".sha256").mock(return_value=httpx.Response(503))

        async with httpx.AsyncClient() as client:
            with pytest.raises(NetworkFailure) as exc_info:
                await fetch_optional(client, URL + ".sha256", tmp_path / "c.sha256", retry_delay=0)

        assert route.call_count == 3
        assert exc_info.value.file_name == "c.sha256"
        assert exc_info.value.phase == "fetch"
        assert not (tmp_path / "c.sha256").exists()

    @respx.mock
    async def test_empty_companion_is_raised(self, tmp_path: Path) -> None:
        respx.get(URL + ".sha256").mock(return_value=httpx.Response(200, content=b""))

        async with httpx.AsyncClient() as client:
            with pytest.raises(EmptyArtifact):
                await fetch_optional(client, URL + ".sha256", tmp_path / "c.sha256", retry_delay=0)


class TestLocalWriteErrors:
    @respx.mock
    async def test_unwritable_destination(self, tmp_path: Path) -> None:
        """A destination that cannot be written is a storage failure, not a retry."""
        route = respx.get(URL).mock(return_value=httpx.Response(200, content=b"data"))
        dest = tmp_path / "cards.json"
        dest.mkdir()

        async with httpx.AsyncClient() as client:
            with pytest.raises(StorageFailure) as exc_info:
                await fetch_file(client, URL, dest, retry_delay=0)

        assert route.call_count == 1
        assert exc_info.value.kind == FailureKind.STORAGE_FAILURE
        assert exc_info.value.file_name == "cards.json"
        assert exc_info.value.phase == "fetch"
