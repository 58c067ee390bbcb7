# storefront/utils/debounce.py
from __future__ import annotations
from typing import Any, Awaitable, Callable, Optional, Union
import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Coalesce bursts of trigger() calls into a single callback run.

    Each trigger restarts the delay and replaces the pending arguments; only
    the last call of a burst reaches the callback. Once the callback has
    started it runs to completion, later triggers just schedule the next run.
    A failing callback is logged, and its exception is raised from the next
    wait(). Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[..., Union[Awaitable[Any], Any]]):
        self.delay = delay
        self.callback = callback
        self._pending: Optional[asyncio.Task] = None
        self._last: Optional[asyncio.Task] = None
        self._error: Optional[Exception] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def trigger(self, *args, **kwargs) -> None:
        if self.pending:
            self._pending.cancel()
        task = asyncio.get_running_loop().create_task(self._fire(args, kwargs))
        self._pending = task
        self._last = task

    async def _fire(self, args, kwargs) -> None:
        await asyncio.sleep(self.delay)
        # past this point the run can no longer be cancelled by trigger()
        self._pending = None
        try:
            result = self.callback(*args, **kwargs)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.exception("debounced callback %r failed", self.callback)
            self._error = e

    async def wait(self) -> None:
        """
        Wait for the most recent trigger to either fire or be superseded.
        Re-raises the error of a callback that failed since the last wait().
        """
        while self._last is not None:
            task = self._last
            await asyncio.wait([task])
            if task is self._last:
                break
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def cancel(self) -> None:
        if self.pending:
            self._pending.cancel()
        self._pending = None
