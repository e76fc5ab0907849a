"""
Cancellable fixed-interval background task.
"""

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[Any, Awaitable[Any]]]


class PeriodicTask:
    """
    Runs ``callback`` every ``interval`` seconds until stopped.

    The callback may be sync or async. A failing callback is logged and the
    loop keeps going; only ``stop()`` ends it.
    """

    def __init__(self, name: str, interval: float, callback: Callback):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self.callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.debug(f"Periodic task {self.name} started (every {self.interval}s)")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()

    async def run_once(self) -> None:
        try:
            result = self.callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Periodic task {self.name} failed")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.debug(f"Periodic task {self.name} stopped")
