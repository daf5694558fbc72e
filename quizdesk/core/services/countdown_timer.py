"""Cancellable once-per-second countdown used by timed quiz sessions."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class CountdownTimer:
    """Counts down whole seconds and fires ``on_expire`` exactly once at zero.

    The countdown runs as an ``asyncio.Task`` on the current event loop. Once
    :meth:`cancel` has been called no further decrements happen and the expiry
    callback never fires, even if a sleep was already pending.
    """

    def __init__(
        self,
        duration_seconds: int,
        on_expire: Callable[[], Awaitable[None]],
        *,
        interval_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        if duration_seconds < 0:
            raise ValueError("Countdown duration cannot be negative.")
        self._remaining = duration_seconds
        self._on_expire = on_expire
        self._on_tick = on_tick
        self._interval_seconds = interval_seconds
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False
        self._expired = False

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the countdown on the running event loop."""
        if self._cancelled or self._expired:
            raise RuntimeError("A stopped countdown cannot be restarted.")
        if self.is_running():
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="quiz-countdown")

    def cancel(self) -> None:
        self._cancelled = True
        task = self._task
        if task is None or task.done():
            return
        # Expiry runs inside the task; cancelling ourselves would abort the submission.
        if task is not asyncio.current_task():
            task.cancel()

    async def tick(self) -> None:
        """Advance the countdown by one second."""
        if self._cancelled or self._expired:
            return
        if self._remaining > 0:
            self._remaining -= 1
        if self._on_tick is not None:
            self._on_tick(self._remaining)
        if self._remaining == 0:
            self._expired = True
            await self._on_expire()

    async def wait(self) -> None:
        """Wait for the countdown task to finish, whatever the reason."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def _run(self) -> None:
        while not (self._cancelled or self._expired):
            await self._sleep(self._interval_seconds)
            await self.tick()
        logger.debug("Countdown stopped with %d second(s) left", self._remaining)
