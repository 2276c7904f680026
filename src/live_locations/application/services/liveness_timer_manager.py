"""Liveness timers: grace-period expiry per connection and the periodic sweep."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from live_locations.application.services.connection_registry import utc_now
from live_locations.domain.models import LivenessState, OfflinePolicy, OnlineState

if TYPE_CHECKING:
    from collections.abc import Callable

    from live_locations.domain.contracts import (
        Clock,
        ParticipantRegistryProtocol,
        TimerHandleProtocol,
        TimerSchedulerProtocol,
    )
    from live_locations.domain.models import LivenessSettings, Participant

logger = logging.getLogger(__name__)


class LivenessTimerManager:
    """Runs the Active -> GracePeriod -> Expired state machine for each connection.

    Timers never touch the registry themselves. When a timer fires the manager
    only calls ``on_expiry_due`` (or the sweep callback); the owner is expected
    to queue the work and later call :meth:`expire` or :meth:`sweep` from its
    single serialized context.
    """

    def __init__(
        self,
        registry: ParticipantRegistryProtocol,
        settings: LivenessSettings,
        scheduler: TimerSchedulerProtocol,
        on_expiry_due: Callable[[str], None],
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the manager.

        Args:
            registry: Registry holding the participants being watched.
            settings: Grace period, sweep bound, sweep interval and offline policy.
            scheduler: Scheduler used for every timer.
            on_expiry_due: Called with a connection id when its grace timer fires.
            clock: Callable returning the current UTC time.
        """
        self.registry = registry
        self.settings = settings
        self._scheduler = scheduler
        self._on_expiry_due = on_expiry_due
        self._clock = clock
        self._states: dict[str, LivenessState] = {}
        self._timers: dict[str, TimerHandleProtocol] = {}
        self._sweep_handle: TimerHandleProtocol | None = None
        self._on_sweep_due: Callable[[], None] | None = None

    def state_of(self, connection_id: str) -> LivenessState | None:
        return self._states.get(connection_id)

    def has_pending_timer(self, connection_id: str) -> bool:
        return connection_id in self._timers

    def track(self, connection_id: str) -> None:
        """Start watching a freshly connected participant."""
        self._states[connection_id] = LivenessState.ACTIVE

    def on_disconnect(self, connection_id: str) -> Participant | None:
        """Enter the grace period for a dropped connection.

        Under the soft-offline policy the participant is marked offline right
        away. Under hard-timeout-only it is left untouched until the timer fires.
        A second disconnect for a connection already in its grace period keeps
        the original timer.

        Returns:
            The participant if it was just marked offline, otherwise None.
        """
        participant = self.registry.get(connection_id)
        if participant is None:
            logger.debug(f"Disconnect for unknown connection {connection_id}, ignoring")
            return None
        if self._states.get(connection_id) is LivenessState.GRACE_PERIOD:
            return None

        self._states[connection_id] = LivenessState.GRACE_PERIOD
        self._schedule_expiry(connection_id)

        if self.settings.offline_policy is OfflinePolicy.SOFT_OFFLINE:
            return self.registry.mark_offline(connection_id)
        return None

    def on_reactivation(self, connection_id: str) -> bool:
        """Return a connection to Active and cancel its pending timer.

        Returns:
            True if the connection was in its grace period.
        """
        self._cancel_timer(connection_id)
        previous = self._states.get(connection_id)
        if connection_id in self.registry:
            self._states[connection_id] = LivenessState.ACTIVE
        if previous is LivenessState.GRACE_PERIOD:
            logger.info(f"Connection {connection_id} reactivated during grace period")
            return True
        return False

    def expire(self, connection_id: str) -> bool:
        """Handle a fired grace timer.

        The participant is removed only if it is still in its grace period and
        has been inactive for at least the grace period. Otherwise the timer
        lost a race with a reactivation and nothing happens.

        Returns:
            True if the participant was removed.
        """
        self._timers.pop(connection_id, None)
        participant = self.registry.get(connection_id)
        if participant is None:
            self._states.pop(connection_id, None)
            return False
        if self._states.get(connection_id) is not LivenessState.GRACE_PERIOD:
            logger.debug(f"Stale expiry timer for {connection_id}, participant is active")
            return False

        inactive_for = self._clock() - participant.last_activity_at
        if inactive_for < self.settings.grace_period:
            logger.debug(
                f"Stale expiry timer for {connection_id}, "
                f"inactive for only {inactive_for.total_seconds():.1f}s"
            )
            return False

        self._states[connection_id] = LivenessState.EXPIRED
        self.registry.remove(connection_id)
        self._states.pop(connection_id, None)
        logger.info(
            f"Participant {connection_id} expired after "
            f"{inactive_for.total_seconds():.1f}s without activity"
        )
        return True

    def forget(self, connection_id: str) -> None:
        """Cancel any timer and drop all liveness state for a connection."""
        self._cancel_timer(connection_id)
        self._states.pop(connection_id, None)

    def sweep(self) -> list[str]:
        """Remove disconnected participants inactive for longer than the hard timeout.

        Covers participants whose grace timer was lost as well as offline
        records the timer machinery never saw.

        Returns:
            Connection ids removed by this sweep, in registry order.
        """
        now = self._clock()
        removed: list[str] = []
        for participant in self.registry.snapshot():
            connection_id = participant.connection_id
            disconnected = (
                participant.online_state is OnlineState.OFFLINE
                or self._states.get(connection_id) is LivenessState.GRACE_PERIOD
            )
            if not disconnected:
                continue
            if now - participant.last_activity_at > self.settings.hard_timeout:
                self.forget(connection_id)
                self.registry.remove(connection_id)
                removed.append(connection_id)

        if removed:
            logger.info(
                f"Sweep removed {len(removed)} stale participant(s). "
                f"Remaining: {len(self.registry)}"
            )
        return removed

    def start_sweep(self, on_sweep_due: Callable[[], None]) -> None:
        """Schedule the recurring sweep timer."""
        if self._sweep_handle is not None:
            logger.warning("Sweep timer already running")
            return
        self._on_sweep_due = on_sweep_due
        self._schedule_sweep()
        logger.info(
            f"Sweep scheduled every {self.settings.sweep_interval.total_seconds():.0f}s "
            f"(hard timeout {self.settings.hard_timeout.total_seconds():.0f}s)"
        )

    def shutdown(self) -> None:
        """Cancel every timer, including the sweep."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._states.clear()
        if self._sweep_handle is not None:
            self._sweep_handle.cancel()
            self._sweep_handle = None
        self._on_sweep_due = None

    def _schedule_expiry(self, connection_id: str) -> None:
        self._cancel_timer(connection_id)
        self._timers[connection_id] = self._scheduler.schedule(
            self.settings.grace_period.total_seconds(),
            partial(self._expiry_fired, connection_id),
        )

    def _expiry_fired(self, connection_id: str) -> None:
        self._timers.pop(connection_id, None)
        self._on_expiry_due(connection_id)

    def _schedule_sweep(self) -> None:
        self._sweep_handle = self._scheduler.schedule(
            self.settings.sweep_interval.total_seconds(), self._sweep_fired
        )

    def _sweep_fired(self) -> None:
        if self._on_sweep_due is None:
            return
        self._schedule_sweep()
        self._on_sweep_due()

    def _cancel_timer(self, connection_id: str) -> None:
        handle = self._timers.pop(connection_id, None)
        if handle is not None:
            handle.cancel()
