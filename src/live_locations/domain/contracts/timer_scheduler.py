"""Timer scheduling contract (protocol)."""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

Clock = Callable[[], datetime]


class TimerHandleProtocol(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None:
        """Cancel the callback. Cancelling twice is harmless."""
        ...


class TimerSchedulerProtocol(Protocol):
    """Protocol for running a callback once after a delay."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandleProtocol:
        """Run ``callback`` once after ``delay_seconds``.

        Returns:
            A handle that cancels the callback.
        """
        ...
