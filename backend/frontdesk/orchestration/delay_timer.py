"""
One-shot cancellable delay timer.

Backs the speak-start grace interval and the idle return after a closed
booking. Restarting a running timer resets the countdown.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Union[None, Awaitable[None]]]


class DelayTimer:
    """
    Runs a callback once after a delay unless cancelled first.

    Key Features:
    - Sync or async callback
    - Restart resets the countdown
    - Cancel is idempotent; a cancelled timer never fires
    """

    def __init__(self, on_expire: TimerCallback, delay_ms: int, name: str = "timer"):
        """
        Initialize delay timer.

        Args:
            on_expire: Callback to invoke when the delay elapses
            delay_ms: Delay in milliseconds
            name: Label used in log lines
        """
        self.on_expire = on_expire
        self.delay_ms = delay_ms
        self.name = name

        self._timer_task: Optional[asyncio.Task] = None
        self._is_running = False

    def start(self, delay_ms: Optional[int] = None):
        """
        Start the timer.

        If the timer is already running, this restarts it.

        Args:
            delay_ms: If provided, use this duration instead of the default
        """
        # A callback may restart its own timer; never cancel the running task
        if (
            self._timer_task
            and not self._timer_task.done()
            and self._timer_task is not asyncio.current_task()
        ):
            self._timer_task.cancel()

        duration = delay_ms if delay_ms is not None else self.delay_ms
        self._is_running = True
        self._timer_task = asyncio.create_task(self._run_timer(duration))
        logger.debug(f"{self.name} started: {duration}ms")

    def cancel(self):
        """Cancel the running timer."""
        if not self._is_running:
            return

        self._is_running = False

        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
            logger.debug(f"{self.name} cancelled")

    def is_running(self) -> bool:
        """Check if timer is currently active."""
        return self._is_running

    async def _run_timer(self, duration_ms: int):
        try:
            await asyncio.sleep(duration_ms / 1000.0)

            # cancel() may have raced the sleep
            if self._is_running:
                self._is_running = False
                logger.debug(f"{self.name} expired")
                result = self.on_expire()
                if inspect.isawaitable(result):
                    await result

        except asyncio.CancelledError:
            logger.debug(f"{self.name} task cancelled")
        except Exception as e:
            logger.error(f"Error in {self.name} callback: {e}", exc_info=True)

    def __repr__(self) -> str:
        status = "running" if self._is_running else "idle"
        return f"DelayTimer(name={self.name}, delay={self.delay_ms}ms, status={status})"
