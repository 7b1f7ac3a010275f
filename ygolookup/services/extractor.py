"""
Archive extraction through the system decompressor.

`tar` runs as a child process at reduced priority, in verbose mode so every
extracted member shows up as output. A watchdog wakes up periodically and
kills the process if nothing has been printed for `idle_timeout` seconds.
"""

import asyncio
import logging
import shutil
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from ygolookup.config import (
    EXTRACT_CHECK_INTERVAL,
    EXTRACT_HEARTBEAT_INTERVAL,
    EXTRACT_IDLE_TIMEOUT,
    EXTRACT_NICENESS,
)
from ygolookup.models.failure import ExtractionProcessFailure, ExtractionStall

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

_STDERR_TAIL_BYTES = 2048


@dataclass
class _Activity:
    """Output bookkeeping shared by the readers and the watchdog."""

    last_output: float
    lines: int = 0
    stderr_tail: bytes = b""


def build_tar_command(archive: Path, target_dir: Path) -> list[str]:
    """Verbose `tar` extraction, wrapped in `nice` when available."""
    command = ["tar", "-xvf", str(archive), "-C", str(target_dir)]
    if shutil.which("nice"):
        command = ["nice", "-n", str(EXTRACT_NICENESS), *command]
    return command


async def _drain(
    stream: asyncio.StreamReader | None, activity: _Activity, *, keep_tail: bool = False
) -> None:
    if stream is None:
        return
    while chunk := await stream.read(4096):
        activity.last_output = time.monotonic()
        activity.lines += chunk.count(b"\n")
        if keep_tail:
            activity.stderr_tail = (activity.stderr_tail + chunk)[-_STDERR_TAIL_BYTES:]


async def _watch(
    process: asyncio.subprocess.Process,
    activity: _Activity,
    *,
    name: str,
    idle_timeout: float,
    check_interval: float,
    heartbeat_interval: float,
    progress: ProgressCallback | None,
) -> float | None:
    """Return the idle time if the process had to be killed, None otherwise."""
    started = time.monotonic()
    next_heartbeat = started + heartbeat_interval

    while process.returncode is None:
        await asyncio.sleep(check_interval)
        if process.returncode is not None:
            break

        now = time.monotonic()
        idle = now - activity.last_output
        if idle >= idle_timeout:
            logger.error("No output from extraction of %s for %.0fs, killing it", name, idle)
            process.kill()
            return idle

        if now >= next_heartbeat:
            message = f"Extracting {name}: {activity.lines} entries, {now - started:.0f}s elapsed"
            logger.info(message)
            if progress:
                progress(message)
            next_heartbeat = now + heartbeat_interval

    return None


async def extract_archive(
    archive: Path,
    target_dir: Path,
    *,
    idle_timeout: float = EXTRACT_IDLE_TIMEOUT,
    check_interval: float = EXTRACT_CHECK_INTERVAL,
    heartbeat_interval: float = EXTRACT_HEARTBEAT_INTERVAL,
    progress: ProgressCallback | None = None,
    command: Sequence[str] | None = None,
) -> float:
    """
    Extract an archive into a directory.

    Args:
        archive: Staged archive
        target_dir: Directory to extract into (created if missing)
        idle_timeout: Seconds without output before the process is killed
        check_interval: Watchdog wake-up period
        heartbeat_interval: Period of advisory progress messages
        progress: Optional progress callback
        command: Override the decompressor command line

    Returns:
        Seconds spent extracting

    Raises:
        ExtractionStall: If the watchdog killed the process
        ExtractionProcessFailure: If the process could not start or exited non-zero
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    argv = list(command) if command is not None else build_tar_command(archive, target_dir)
    name = archive.name

    logger.info("Extracting %s into %s", name, target_dir)
    started = time.monotonic()
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ExtractionProcessFailure(name, None, detail=str(e)) from e

    activity = _Activity(last_output=started)
    readers = [
        asyncio.create_task(_drain(process.stdout, activity)),
        asyncio.create_task(_drain(process.stderr, activity, keep_tail=True)),
    ]
    watchdog = asyncio.create_task(
        _watch(
            process,
            activity,
            name=name,
            idle_timeout=idle_timeout,
            check_interval=check_interval,
            heartbeat_interval=heartbeat_interval,
            progress=progress,
        )
    )

    try:
        returncode = await process.wait()
        # Orphaned grandchildren may keep the pipes open; don't wait on them forever
        await asyncio.wait(readers, timeout=check_interval)
    finally:
        if process.returncode is None:
            process.kill()
            await process.wait()
        for task in readers:
            task.cancel()
        if not watchdog.done():
            watchdog.cancel()

    stalled_for = None
    if watchdog.done() and not watchdog.cancelled():
        stalled_for = watchdog.result()
    if stalled_for is not None:
        raise ExtractionStall(name, stalled_for, pid=process.pid)

    if returncode != 0:
        detail = activity.stderr_tail.decode("utf-8", errors="replace").strip() or None
        raise ExtractionProcessFailure(name, returncode, detail=detail)

    elapsed = time.monotonic() - started
    logger.info("Extracted %s (%d entries, %.1fs)", name, activity.lines, elapsed)
    return elapsed
