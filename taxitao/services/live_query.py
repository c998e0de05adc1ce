"""
Polling subscriptions over the database.

A ``LiveQuery`` re-runs a query function on an interval and hands the
result to a callback whenever it differs from the last one delivered.
The first result is always delivered. Listeners are independent of each
other. A failing poll is logged and retried; the subscription stops after
``max_failures`` failures in a row.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0
MAX_FAILURES = 5


class LiveQuery:

    def __init__(
        self,
        query: Callable[[], Any],
        on_change: Callable[[Any], Any],
        interval: float = DEFAULT_INTERVAL,
        max_failures: int = MAX_FAILURES
    ):
        self.query = query
        self.on_change = on_change
        self.interval = interval
        self.max_failures = max_failures
        self._last = None
        self._delivered = False
        self._task: asyncio.Task | None = None

    def subscribe(self) -> "LiveQuery":
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self

    def unsubscribe(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll(self) -> bool:
        """Runs the query once. True when the callback fired."""
        result = self.query()
        if inspect.isawaitable(result):
            result = await result

        if self._delivered and result == self._last:
            return False

        self._last = result
        self._delivered = True
        outcome = self.on_change(result)
        if inspect.isawaitable(outcome):
            await outcome
        return True

    async def _run(self):
        failures = 0
        while failures < self.max_failures:
            try:
                await self.poll()
                failures = 0
            except Exception:
                failures += 1
                logger.exception("Live query poll failed (%d/%d)", failures, self.max_failures)
            await asyncio.sleep(self.interval)

        logger.warning("Live query stopped after %d consecutive failures", failures)

    async def wait(self):
        if self._task is not None:
            await self._task
