"""Timer scheduler backed by the running asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from live_locations.domain.contracts import TimerSchedulerProtocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# call_later may fire up to one clock tick early; the expiry re-check compares
# wall-clock time, so fire slightly late instead.
_SLACK_SECONDS = 0.05


class AsyncioTimerScheduler(TimerSchedulerProtocol):
    """Schedules callbacks with ``loop.call_later``.

    The returned ``asyncio.TimerHandle`` already satisfies the cancel contract.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Initialize the scheduler.

        Args:
            loop: Event loop to schedule on. Defaults to the running loop at
                the time of each call.
        """
        self._loop = loop

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay_seconds, 0.0) + _SLACK_SECONDS, self._run, callback)

    @staticmethod
    def _run(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"Timer callback failed: {e}", exc_info=True)
