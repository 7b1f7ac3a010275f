"""
Release file downloads.

Streams one remote file into the scratch area with bounded retries. An
attempt fails on any transport or HTTP error, or when the finished file is
empty; after the last attempt the failure is raised. Companion files may
be absent (404), which is the only failure that is not raised.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from ygolookup.config import DOWNLOAD_ATTEMPTS, DOWNLOAD_PROGRESS_STEP, DOWNLOAD_RETRY_DELAY
from ygolookup.models.failure import (
    EmptyArtifact,
    MissingArtifact,
    NetworkFailure,
    StorageFailure,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class FetchResult:
    """A file staged by `fetch_file`."""

    path: Path
    attempts: int
    size: int
    seconds: float


def release_url(repo: str, tag: str, file_name: str, base_url: str = "https://github.com") -> str:
    """Download URL of a release asset (the dataset repo publishes a tag named "latest")."""
    return f"{base_url}/{repo}/releases/download/{tag}/{file_name}"


async def _stream_to_file(
    client: httpx.AsyncClient,
    url: str,
    dest: Path,
    progress: ProgressCallback | None,
) -> int:
    written = 0
    async with client.stream("GET", url) as response:
        response.raise_for_status()
        expected = int(response.headers.get("Content-Length") or 0)
        next_report = DOWNLOAD_PROGRESS_STEP

        with open(dest, "wb") as f:
            async for chunk in response.aiter_bytes(65536):
                f.write(chunk)
                written += len(chunk)
                if progress and expected and written / expected >= next_report:
                    progress(f"{dest.name}: {int(written / expected * 100)}%")
                    while next_report <= written / expected:
                        next_report += DOWNLOAD_PROGRESS_STEP

    return written


async def _fetch(
    client: httpx.AsyncClient,
    url: str,
    dest: Path,
    *,
    attempts: int,
    retry_delay: float,
    progress: ProgressCallback | None,
    missing_ok: bool,
) -> FetchResult | None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageFailure(dest.name, "fetch", detail=str(e)) from e

    started = time.monotonic()
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        logger.info("Downloading %s (attempt %d/%d)", dest.name, attempt, attempts)
        try:
            size = await _stream_to_file(client, url, dest, progress)
        except httpx.HTTPStatusError as e:
            if missing_ok and e.response.status_code == 404:
                dest.unlink(missing_ok=True)
                logger.info("%s is not published", dest.name)
                return None
            logger.warning("Download of %s failed: %s", dest.name, e)
            last_error = e
        except httpx.HTTPError as e:
            logger.warning("Download of %s failed: %s", dest.name, e)
            last_error = e
        except OSError as e:
            logger.error("Could not write %s: %s", dest, e)
            if dest.is_file():
                dest.unlink()
            raise StorageFailure(dest.name, "fetch", detail=str(e)) from e
        else:
            if size > 0:
                elapsed = time.monotonic() - started
                logger.info("Downloaded %s (%d bytes, %.1fs)", dest.name, size, elapsed)
                return FetchResult(path=dest, attempts=attempt, size=size, seconds=elapsed)
            logger.warning("Download of %s produced an empty file", dest.name)
            last_error = None

        if attempt < attempts:
            logger.info("Retrying %s in %.0fs...", dest.name, retry_delay)
            await asyncio.sleep(retry_delay)

    dest.unlink(missing_ok=True)
    if last_error is None:
        raise EmptyArtifact(dest.name, attempts)
    raise NetworkFailure(dest.name, attempts, detail=str(last_error)) from last_error


async def fetch_file(
    client: httpx.AsyncClient,
    url: str,
    dest: Path,
    *,
    attempts: int = DOWNLOAD_ATTEMPTS,
    retry_delay: float = DOWNLOAD_RETRY_DELAY,
    progress: ProgressCallback | None = None,
) -> FetchResult:
    """
    Download a file with retries.

    Args:
        client: HTTP client (carries proxy and timeout settings)
        url: Remote file URL
        dest: Local path to write
        attempts: Maximum number of attempts
        retry_delay: Seconds to wait between attempts
        progress: Optional advisory progress callback

    Returns:
        FetchResult describing the staged file

    Raises:
        NetworkFailure: If the last attempt failed with a transport/HTTP error
        EmptyArtifact: If the last attempt produced an empty file
        StorageFailure: If the file could not be written locally
    """
    result = await _fetch(
        client,
        url,
        dest,
        attempts=attempts,
        retry_delay=retry_delay,
        progress=progress,
        missing_ok=False,
    )
    if result is None:
        raise MissingArtifact(dest.name, phase="fetch")
    return result


async def fetch_optional(
    client: httpx.AsyncClient,
    url: str,
    dest: Path,
    *,
    attempts: int = DOWNLOAD_ATTEMPTS,
    retry_delay: float = DOWNLOAD_RETRY_DELAY,
) -> Path | None:
    """
    Download a small companion file that may not be published.

    Only a 404 means "not published". Any other failure is retried like
    `fetch_file` and raised once the attempts run out.

    Returns:
        Path to the file, or None if the server has no such file

    Raises:
        NetworkFailure, EmptyArtifact, StorageFailure: As for `fetch_file`
    """
    result = await _fetch(
        client,
        url,
        dest,
        attempts=attempts,
        retry_delay=retry_delay,
        progress=None,
        missing_ok=True,
    )
    return result.path if result else None
