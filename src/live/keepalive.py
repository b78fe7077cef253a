"""Keep an idle recognition connection from being closed by the vendor."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable

from src.live.connection import RecognitionConnection

logger = logging.getLogger(__name__)


class KeepAlive:
    """Send a keep-alive whenever no audio has been sent for ``interval`` seconds.

    Runs as its own asyncio task and never touches consolidation state.
    """

    def __init__(
        self,
        connection: RecognitionConnection,
        interval: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Keep-alive interval must be positive, got {interval}")
        self.connection = connection
        self.interval = interval
        self.sent = 0
        self._clock = clock
        self._last_activity = clock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def note_audio_sent(self) -> None:
        self._last_activity = self._clock()

    def start(self) -> None:
        if self.running:
            return
        self._last_activity = self._clock()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            idle = self._clock() - self._last_activity
            if idle < self.interval:
                await asyncio.sleep(self.interval - idle)
                continue

            try:
                await self.connection.keep_alive()
            except Exception:
                logger.warning("Keep-alive failed; stopping keep-alive loop", exc_info=True)
                return
            self.sent += 1
            self._last_activity = self._clock()
