"""
Dataset publisher.

Fetches the release bundle (card database, image archives, ban-list
archive), verifies and unpacks it, and replaces the live dataset.

=============================================================================
PHASES
=============================================================================

1. Prepare     fresh scratch area, live directories created if absent
2. Fetch       every manifest file, sequentially, 3 attempts each, fail-fast
3. Build       card database placed and archives verified + extracted into
               a shadow copy of the live directories inside the scratch area
4. Swap        each targeted live directory is renamed away and its shadow
               renamed into place; if any rename fails, every directory
               swapped so far is put back
5. Statistics  image, card and ban-list counts read from the live dataset
6. Cleanup     scratch area removed, always

INVARIANT: The live dataset is untouched until phase 4. Any failure in
phases 1-3 leaves the previous generation exactly as it was. A checksum
companion is skipped only when the release does not publish it (404).
Local filesystem errors surface as `StorageFailure`.

Concurrent runs are not coordinated here; see `UpdateGuard`.
"""

import asyncio
import logging
import os
import shutil
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import httpx

from ygolookup.config import (
    BAN_LIST_ENVIRONMENTS,
    DOWNLOAD_ATTEMPTS,
    DOWNLOAD_RETRY_DELAY,
    DatasetPaths,
    ProxyConfig,
    settings,
)
from ygolookup.models.dataset import RunStatistics
from ygolookup.models.failure import MissingArtifact, StorageFailure
from ygolookup.models.manifest import DEFAULT_MANIFEST, ManifestEntry, TargetCategory
from ygolookup.services.card_database import CardDatabase, count_ban_list, count_card_records
from ygolookup.services.extractor import extract_archive
from ygolookup.services.fetcher import fetch_file, fetch_optional, release_url
from ygolookup.services.integrity import verify_artifact

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]
Extractor = Callable[..., Awaitable[float]]

IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg"})


@dataclass(frozen=True, slots=True)
class StagedArtifact:
    """A manifest file sitting in the scratch area."""

    entry: ManifestEntry
    path: Path
    checksum_path: Path | None = None


def count_unique_images(image_dir: Path) -> int:
    """
    Count image files under a directory, recursively.

    Files are identified by resolved real path so symlinked duplicates
    count once.
    """
    if not image_dir.is_dir():
        return 0

    seen: set[str] = set()
    for dirpath, _dirnames, filenames in os.walk(image_dir):
        for filename in filenames:
            if Path(filename).suffix.lower() in IMAGE_SUFFIXES:
                seen.add(os.path.realpath(os.path.join(dirpath, filename)))
    return len(seen)


class DatasetPublisher:
    """
    Single-shot update of the live dataset.

    Args:
        paths: Live dataset layout
        manifest: Files to fetch
        client: Optional HTTP client (built from `proxy` if omitted)
        proxy: Proxy settings for the built client
        repo, tag, base_url: Release location
        download_attempts: Attempts per manifest file
        retry_delay: Seconds between download attempts
        extractor: Coroutine used to unpack archives
        card_database: Cache to invalidate once the new dataset is live
        progress: Optional advisory progress callback
    """

    def __init__(
        self,
        paths: DatasetPaths,
        *,
        manifest: Sequence[ManifestEntry] = DEFAULT_MANIFEST,
        client: httpx.AsyncClient | None = None,
        proxy: ProxyConfig | None = None,
        repo: str | None = None,
        tag: str | None = None,
        base_url: str | None = None,
        download_attempts: int = DOWNLOAD_ATTEMPTS,
        retry_delay: float = DOWNLOAD_RETRY_DELAY,
        extractor: Extractor = extract_archive,
        card_database: CardDatabase | None = None,
        progress: ProgressCallback | None = None,
    ):
        self.paths = paths
        self.manifest = tuple(manifest)
        self._client = client
        self._proxy = proxy or ProxyConfig()
        self._repo = repo or settings.release_repo
        self._tag = tag or settings.release_tag
        self._base_url = base_url or settings.release_base_url
        self._download_attempts = download_attempts
        self._retry_delay = retry_delay
        self._extractor = extractor
        self._card_database = card_database
        self._progress = progress

    @property
    def downloads_dir(self) -> Path:
        return self.paths.scratch / "downloads"

    @property
    def shadow_dir(self) -> Path:
        return self.paths.scratch / "next"

    @property
    def retired_dir(self) -> Path:
        return self.paths.scratch / "previous"

    def live_dir_for(self, category: TargetCategory) -> Path:
        if category == TargetCategory.CARD_DATABASE:
            return self.paths.cards
        if category == TargetCategory.CARD_ARCHIVE:
            return self.paths.images
        return self.paths.limits

    def shadow_dir_for(self, category: TargetCategory) -> Path:
        return self.shadow_dir / self.live_dir_for(category).name

    def url_for(self, file_name: str) -> str:
        return release_url(self._repo, self._tag, file_name, self._base_url)

    def _notify(self, message: str) -> None:
        if self._progress:
            self._progress(message)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(
            proxy=self._proxy.for_url(self._base_url),
            trust_env=False,
            follow_redirects=True,
            timeout=httpx.Timeout(300.0, connect=30.0),
        ) as client:
            yield client

    async def publish(self) -> RunStatistics:
        """
        Run one update.

        Returns:
            Statistics of the new dataset

        Raises:
            UpdateError: Any unrecoverable failure; see `ygolookup.models.failure`
        """
        stats = RunStatistics()
        logger.info("Starting dataset update from %s@%s", self._repo, self._tag)

        try:
            await asyncio.to_thread(self._prepare)

            async with self._session() as client:
                staged = await self._fetch_manifest(client, stats)

            await self._build_next_generation(staged, stats)
            await asyncio.to_thread(self._swap_live_dirs)
            stats.processed_files = len(staged)

            await asyncio.to_thread(self._collect_statistics, stats)
        finally:
            await asyncio.to_thread(shutil.rmtree, self.paths.scratch, ignore_errors=True)

        if self._card_database is not None:
            self._card_database.invalidate()

        logger.info(stats.summary())
        return stats

    def _prepare(self) -> None:
        try:
            if self.paths.scratch.exists():
                shutil.rmtree(self.paths.scratch)
            self.downloads_dir.mkdir(parents=True)
            for live in self.paths.live_dirs():
                live.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(self.paths.scratch.name, "prepare", detail=str(e)) from e

    async def _fetch_manifest(
        self, client: httpx.AsyncClient, stats: RunStatistics
    ) -> list[StagedArtifact]:
        staged: list[StagedArtifact] = []
        for entry in self.manifest:
            dest = self.downloads_dir / entry.name
            logger.info("Fetching %s from %s", entry.name, self.url_for(entry.name))

            result = await fetch_file(
                client,
                self.url_for(entry.name),
                dest,
                attempts=self._download_attempts,
                retry_delay=self._retry_delay,
                progress=self._progress,
            )
            stats.download_seconds[entry.name] = result.seconds

            checksum_path = None
            if entry.is_archive and entry.checksum:
                checksum_path = await fetch_optional(
                    client,
                    self.url_for(entry.checksum_name),
                    self.downloads_dir / entry.checksum_name,
                    attempts=self._download_attempts,
                    retry_delay=self._retry_delay,
                )

            staged.append(StagedArtifact(entry=entry, path=dest, checksum_path=checksum_path))
            self._notify(f"Downloaded {len(staged)}/{len(self.manifest)}: {entry.name}")

        return staged

    async def _build_next_generation(
        self, staged: list[StagedArtifact], stats: RunStatistics
    ) -> None:
        for artifact in staged:
            category = artifact.entry.category
            target = self.shadow_dir_for(category)
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageFailure(artifact.entry.name, "place", detail=str(e)) from e

            if not artifact.path.exists():
                raise MissingArtifact(artifact.entry.name, phase="place")

            if category == TargetCategory.CARD_DATABASE:
                logger.info("Placing %s", artifact.entry.name)
                try:
                    await asyncio.to_thread(
                        shutil.move, str(artifact.path), str(target / artifact.entry.name)
                    )
                except OSError as e:
                    raise StorageFailure(artifact.entry.name, "place", detail=str(e)) from e
                continue

            await asyncio.to_thread(verify_artifact, artifact.path, artifact.checksum_path)

            started = time.monotonic()
            await self._extractor(artifact.path, target, progress=self._progress)
            stats.extract_seconds[artifact.entry.name] = time.monotonic() - started

            artifact.path.unlink(missing_ok=True)
            if artifact.checksum_path is not None:
                artifact.checksum_path.unlink(missing_ok=True)

    def _swap_live_dirs(self) -> None:
        categories = {entry.category for entry in self.manifest}
        targets = sorted({self.live_dir_for(category) for category in categories})
        try:
            self.retired_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(self.retired_dir.name, "swap", detail=str(e)) from e

        swapped: list[Path] = []
        for live in targets:
            try:
                if live.exists():
                    os.replace(live, self.retired_dir / live.name)
                os.replace(self.shadow_dir / live.name, live)
            except OSError as e:
                logger.error(
                    "Could not move new %s into place, restoring previous dataset", live.name
                )
                self._restore_previous([*swapped, live])
                raise StorageFailure(live.name, "swap", detail=str(e)) from e
            swapped.append(live)
            logger.info("Published %s", live)

    def _restore_previous(self, live_dirs: list[Path]) -> None:
        # Undo in reverse; a directory whose retire step failed is still live
        for live in reversed(live_dirs):
            retired = self.retired_dir / live.name
            if not retired.exists():
                continue
            try:
                if live.exists():
                    os.replace(live, self.shadow_dir / live.name)
                os.replace(retired, live)
            except OSError as e:
                logger.error("Could not restore previous %s: %s", live.name, e)

    def _collect_statistics(self, stats: RunStatistics) -> None:
        stats.image_count = count_unique_images(self.paths.images)
        stats.card_count = count_card_records(self.paths.card_database)
        stats.ban_lists = {
            env: count_ban_list(self.paths.limits, env) for env in BAN_LIST_ENVIRONMENTS
        }
