"""
Serialization of update runs.

The publisher itself does not lock anything. Callers go through an
`UpdateGuard`, which refuses a run while another one is in progress and
enforces a minimum interval after the previous run finished.
"""

import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from ygolookup.models.failure import FailureKind, UpdateRejected

logger = logging.getLogger(__name__)


class UpdateGuard:
    """In-progress flag plus cooldown."""

    def __init__(self, cooldown_seconds: float, clock: Callable[[], float] = time.monotonic):
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._running = False
        self._last_finished: float | None = None

    @property
    def running(self) -> bool:
        return self._running

    def remaining_cooldown(self) -> float:
        if self._last_finished is None:
            return 0.0
        return max(0.0, self._cooldown - (self._clock() - self._last_finished))

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """
        Hold the guard for the duration of one update.

        Raises:
            UpdateRejected: If an update is running or the cooldown has not elapsed
        """
        if self._running:
            raise UpdateRejected(FailureKind.UPDATE_IN_PROGRESS, "An update is already running")

        remaining = self.remaining_cooldown()
        if remaining > 0:
            raise UpdateRejected(
                FailureKind.UPDATE_COOLDOWN,
                f"Last update finished recently, try again in {remaining:.0f}s",
                retry_after=remaining,
            )

        self._running = True
        try:
            yield
        finally:
            self._running = False
            self._last_finished = self._clock()
            logger.info("Update finished, next one allowed in %.0fs", self._cooldown)
