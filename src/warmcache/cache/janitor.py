"""Periodic sweep that purges expired entries.

Validity is already enforced lazily on every read; the janitor only bounds
the memory held by entries nobody reads again.  It runs as an
:mod:`asyncio` task on the caller's event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Janitor:
    """Run *sweep* every *interval_seconds* until stopped.

    Args:
        sweep: Zero-argument coroutine function returning the number of
            entries removed.
        interval_seconds: Delay between sweeps.
    """

    def __init__(self, sweep: Callable[[], Awaitable[int]], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._sweep = sweep
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop.  Idempotent.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="warmcache-janitor")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                removed = await self._sweep()
            except Exception:
                logger.exception("Cache janitor sweep failed")
                continue
            if removed:
                logger.debug("Janitor removed %d expired entries", removed)
