"""
Single-slot watchdog that races an operation against a timer.
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Optional


class WatchdogSlot:
    """
    Holds at most one in-flight operation guarded by a timeout.

    Each armed operation gets a generation token. The task's done
    callback and the watchdog timer both try to settle the slot with
    that token; only the first settle for the current generation has
    any effect, so a late completion after expiry (or the other way
    round) is ignored.
    """

    def __init__(self, name: str):
        self.name = name
        self.generation = 0
        self.logger = logging.getLogger(__name__)

        self._task: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._waiter: Optional[asyncio.Future] = None

    @property
    def busy(self) -> bool:
        return self._waiter is not None and not self._waiter.done()

    async def run(self, coro: Awaitable, timeout: float,
                  on_timeout: Callable[[], BaseException]) -> Any:
        """
        Run ``coro`` and return its result, or raise ``on_timeout()`` if
        ``timeout`` seconds pass first. Exceptions from ``coro`` propagate.
        A coroutine handed to a busy slot is closed unrun.
        """
        if self.busy:
            if asyncio.iscoroutine(coro):
                coro.close()
            raise RuntimeError(f"{self.name} slot already has an operation in flight")

        loop = asyncio.get_running_loop()
        self.generation += 1
        token = self.generation

        self._waiter = loop.create_future()
        self._task = asyncio.ensure_future(coro)
        self._task.add_done_callback(functools.partial(self._on_done, token))
        self._timer = loop.call_later(timeout, self._on_expired, token, on_timeout)

        waiter = self._waiter
        try:
            return await waiter
        finally:
            if token == self.generation:
                self._release()

    def cancel(self):
        """Abandon whatever is in flight. Safe to call when idle."""
        self.generation += 1
        if self._waiter is not None and not self._waiter.done():
            self._waiter.cancel()
        self._release()

    def _on_done(self, token: int, task: asyncio.Task):
        if task.cancelled():
            return
        if not self._claim(token):
            # Lost the race; retrieve the exception so it is not reported.
            if task.exception() is not None:
                self.logger.debug(f"{self.name}: late failure ignored: {task.exception()}")
            return

        exc = task.exception()
        if exc is not None:
            self._waiter.set_exception(exc)
        else:
            self._waiter.set_result(task.result())

    def _on_expired(self, token: int, on_timeout: Callable[[], BaseException]):
        if not self._claim(token):
            return
        self.logger.debug(f"{self.name}: watchdog fired for generation {token}")
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._waiter.set_exception(on_timeout())

    def _claim(self, token: int) -> bool:
        """True only for the first settle of the current generation."""
        if token != self.generation:
            return False
        if self._waiter is None or self._waiter.done():
            return False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return True

    def _release(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._waiter = None
