"""Location sharing service: the single serialized owner of presence state."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from live_locations.application.services.broadcast_coordinator import BroadcastCoordinator
from live_locations.application.services.connection_registry import (
    ConnectionRegistry,
    utc_now,
)
from live_locations.application.services.liveness_timer_manager import LivenessTimerManager
from live_locations.application.services.session_correlator import SessionCorrelator
from live_locations.domain.errors import DuplicateConnectionError
from live_locations.domain.models import (
    LivenessState,
    LocationFix,
    OnlineState,
    RosterSummary,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from live_locations.domain.contracts import (
        Clock,
        MessagePublisherProtocol,
        TimerSchedulerProtocol,
    )
    from live_locations.domain.models import (
        LivenessSettings,
        OutboundMessage,
        Participant,
        ParticipantAttributes,
    )

logger = logging.getLogger(__name__)

CommandResult = tuple[Any, list["OutboundMessage"]]


@dataclass
class _Command:
    """A unit of work for the service's consumer task."""

    name: str
    apply: Callable[[], CommandResult]
    future: asyncio.Future[Any] | None = None


class LocationSharingService:
    """Processes every presence event, one at a time, against shared state.

    Public coroutines put a command on a queue and wait for its result. A
    single consumer task takes commands in arrival order, applies the state
    change synchronously and publishes the resulting messages before taking
    the next command, so no two mutations ever interleave. Timer callbacks
    enqueue commands the same way instead of touching state.
    """

    def __init__(
        self,
        publisher: MessagePublisherProtocol,
        settings: LivenessSettings,
        scheduler: TimerSchedulerProtocol,
        clock: Clock = utc_now,
        echo_location_to_origin: bool = True,
    ) -> None:
        """Initialize the service and the components it owns.

        Args:
            publisher: Delivers outbound messages to clients.
            settings: Liveness timer durations and offline policy.
            scheduler: Scheduler for grace and sweep timers.
            clock: Callable returning the current UTC time.
            echo_location_to_origin: Whether location broadcasts include the sender.
        """
        self._publisher = publisher
        self._clock = clock
        self.settings = settings
        self.registry = ConnectionRegistry(clock)
        self.sessions = SessionCorrelator()
        self.coordinator = BroadcastCoordinator(echo_location_to_origin)
        self.liveness = LivenessTimerManager(
            self.registry,
            settings,
            scheduler,
            on_expiry_due=self._enqueue_expiry,
            clock=clock,
        )
        self._queue: asyncio.Queue[_Command] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the consumer task and the sweep timer."""
        if self.is_running:
            logger.warning("Location sharing service already running")
            return
        self._task = asyncio.create_task(self._consume())
        self.liveness.start_sweep(self._enqueue_sweep)
        logger.info(
            f"Location sharing service started (policy={self.settings.offline_policy.value}, "
            f"grace={self.settings.grace_period.total_seconds():.0f}s)"
        )

    async def stop(self) -> None:
        """Stop processing, cancel all timers and drop all state."""
        self.liveness.shutdown()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Location sharing consumer cancelled")
        self._task = None

        while not self._queue.empty():
            command = self._queue.get_nowait()
            if command.future is not None and not command.future.done():
                command.future.cancel()

        dropped = len(self.registry)
        self.registry.clear()
        self.sessions.clear()
        logger.info(f"Location sharing service stopped, dropped {dropped} participant(s)")

    async def connect(self, connection_id: str, attributes: ParticipantAttributes) -> Participant:
        """Register a new connection and announce it.

        Raises:
            DuplicateConnectionError: If the connection id is already registered.
        """
        try:
            participant: Participant = await self._submit(
                "connect", partial(self._apply_connect, connection_id, attributes)
            )
        except DuplicateConnectionError:
            logger.error(
                f"Invariant violation: connection {connection_id} connected twice", exc_info=True
            )
            raise
        return participant

    async def register_session(self, connection_id: str, session_token: str | None) -> str | None:
        """Correlate a connection with a session token, minting one if needed."""
        token: str | None = await self._submit(
            "register-session",
            partial(self._apply_register_session, connection_id, session_token),
        )
        return token

    async def update_location(self, connection_id: str, payload: Any) -> Participant | None:
        """Apply a raw location payload from a client."""
        participant: Participant | None = await self._submit(
            "update-location", partial(self._apply_update_location, connection_id, payload)
        )
        return participant

    async def heartbeat(self, connection_id: str) -> Participant | None:
        participant: Participant | None = await self._submit(
            "heartbeat", partial(self._apply_heartbeat, connection_id)
        )
        return participant

    async def leave(self, connection_id: str) -> bool:
        """Remove a participant right away, bypassing every grace period."""
        removed: bool = await self._submit("leave", partial(self._apply_leave, connection_id))
        return removed

    async def disconnect(
        self, connection_id: str, reason: str = "transport-closed"
    ) -> Participant | None:
        """Start the grace period for a dropped connection."""
        participant: Participant | None = await self._submit(
            "disconnect", partial(self._apply_disconnect, connection_id, reason)
        )
        return participant

    async def expire(self, connection_id: str) -> bool:
        """Run the expiry check for a connection as if its timer fired."""
        removed: bool = await self._submit("expire", partial(self._apply_expire, connection_id))
        return removed

    async def sweep(self) -> list[str]:
        """Run one sweep now."""
        removed: list[str] = await self._submit("sweep", self._apply_sweep)
        return removed

    def roster_summary(self) -> RosterSummary:
        """Aggregate counts and roster entries. Read-only."""
        participants = self.registry.snapshot()
        online = sum(1 for p in participants if p.online_state is OnlineState.ONLINE)
        return RosterSummary(
            total_count=len(participants),
            online_count=online,
            offline_count=len(participants) - online,
            located_count=sum(1 for p in participants if p.location is not None),
            session_count=self.sessions.session_count(),
            participants=[p.to_roster_entry() for p in participants],
        )

    # ------------------------------------------------------------------
    # Queue plumbing
    # ------------------------------------------------------------------

    async def _submit(self, name: str, apply: Callable[[], CommandResult]) -> Any:
        if not self.is_running:
            raise RuntimeError("Location sharing service is not running")
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_Command(name=name, apply=apply, future=future))
        return await future

    def _enqueue(self, name: str, apply: Callable[[], CommandResult]) -> None:
        if not self.is_running:
            logger.debug(f"Dropping {name} command, service is not running")
            return
        self._queue.put_nowait(_Command(name=name, apply=apply))

    def _enqueue_expiry(self, connection_id: str) -> None:
        self._enqueue("expire", partial(self._apply_expire, connection_id))

    def _enqueue_sweep(self) -> None:
        self._enqueue("sweep", self._apply_sweep)

    async def _consume(self) -> None:
        command: _Command | None = None
        try:
            while True:
                command = await self._queue.get()
                try:
                    await self._execute(command)
                finally:
                    self._queue.task_done()
                command = None
        except asyncio.CancelledError:
            # A command cancelled mid-publish has left the queue; release its caller.
            if command is not None and command.future is not None and not command.future.done():
                command.future.cancel()
            logger.info("Location sharing consumer stopping")
            raise

    async def _execute(self, command: _Command) -> None:
        future = command.future
        try:
            result, messages = command.apply()
        except Exception as e:
            if future is not None and not future.done():
                future.set_exception(e)
            else:
                logger.error(f"Command '{command.name}' failed: {e}", exc_info=True)
            return

        if messages:
            try:
                await self._publisher.publish(messages)
            except Exception as e:
                logger.error(
                    f"Failed to publish messages for command '{command.name}': {e}", exc_info=True
                )

        if future is not None and not future.done():
            future.set_result(result)

    # ------------------------------------------------------------------
    # Command bodies. These run on the consumer task only and never await.
    # ------------------------------------------------------------------

    def _apply_connect(
        self, connection_id: str, attributes: ParticipantAttributes
    ) -> CommandResult:
        participant = self.registry.on_connect(connection_id, attributes)
        self.liveness.track(connection_id)
        return participant, self.coordinator.on_connected(participant, self.registry.snapshot())

    def _apply_register_session(
        self, connection_id: str, session_token: str | None
    ) -> CommandResult:
        participant = self.registry.get(connection_id)
        if participant is None:
            logger.debug(f"register-session for unknown connection {connection_id}, ignoring")
            return None, []

        token = self.sessions.register(connection_id, session_token)
        messages: list[OutboundMessage] = []

        adopted_user_id = None
        superseded = self._find_superseded(token, connection_id)
        if superseded is not None:
            adopted_user_id = superseded.stable_user_id
            logger.info(
                f"Connection {connection_id} resumes session of {superseded.connection_id}, "
                f"taking over user {adopted_user_id}"
            )
            _, removal_messages = self._remove(
                superseded.connection_id, "superseded by session reconnect"
            )
            messages.extend(removal_messages)

        self.registry.attach_session(connection_id, token, adopted_user_id)
        messages.extend(
            self.coordinator.on_session_registered(
                participant,
                token,
                self.sessions.connections_for(token),
                self.registry.snapshot(),
            )
        )
        return token, messages

    def _apply_update_location(self, connection_id: str, payload: Any) -> CommandResult:
        if connection_id not in self.registry:
            logger.debug(f"Location update for unknown connection {connection_id}, ignoring")
            return None, []

        try:
            fix = LocationFix.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                f"Rejected malformed location update from {connection_id}: "
                f"{e.error_count()} error(s)"
            )
            return None, self.coordinator.on_malformed_update(connection_id, "send-location")

        messages: list[OutboundMessage] = []
        session_token = payload.get("sessionToken") if isinstance(payload, dict) else None
        if isinstance(session_token, str) and self.sessions.session_of(connection_id) is None:
            _, messages = self._apply_register_session(connection_id, session_token)

        self.liveness.on_reactivation(connection_id)
        participant = self.registry.on_location_update(connection_id, fix)
        if participant is None:
            return None, messages
        messages.extend(self.coordinator.on_location_updated(participant))
        return participant, messages

    def _apply_heartbeat(self, connection_id: str) -> CommandResult:
        participant = self.registry.get(connection_id)
        if participant is None:
            logger.debug(f"Heartbeat for unknown connection {connection_id}, ignoring")
            return None, []

        was_offline = not participant.is_online
        reactivated = self.liveness.on_reactivation(connection_id) or was_offline
        participant = self.registry.on_heartbeat(connection_id)
        if participant is None:
            return None, []
        return participant, self.coordinator.on_heartbeat(participant, reactivated, self._clock())

    def _apply_leave(self, connection_id: str) -> CommandResult:
        return self._remove(connection_id, "left")

    def _apply_disconnect(self, connection_id: str, reason: str) -> CommandResult:
        if connection_id not in self.registry:
            logger.debug(f"Disconnect ({reason}) for unknown connection {connection_id}, ignoring")
            return None, []

        participant = self.liveness.on_disconnect(connection_id)
        logger.info(
            f"Connection {connection_id} disconnected ({reason}), "
            f"removal in {self.settings.grace_period.total_seconds():.0f}s unless it returns"
        )
        if participant is None:
            return None, []
        return participant, self.coordinator.on_offline(participant)

    def _apply_expire(self, connection_id: str) -> CommandResult:
        if not self.liveness.expire(connection_id):
            return False, []
        self.sessions.unregister(connection_id)
        return True, self.coordinator.on_removed([connection_id], self.registry.snapshot())

    def _apply_sweep(self) -> CommandResult:
        removed = self.liveness.sweep()
        for connection_id in removed:
            self.sessions.unregister(connection_id)
        return removed, self.coordinator.on_removed(removed, self.registry.snapshot())

    def _remove(self, connection_id: str, cause: str) -> CommandResult:
        self.liveness.forget(connection_id)
        self.sessions.unregister(connection_id)
        if not self.registry.remove(connection_id):
            logger.debug(f"Removal ({cause}) of unknown connection {connection_id}, ignoring")
            return False, []
        logger.info(f"Participant {connection_id} removed: {cause}")
        return True, self.coordinator.on_removed([connection_id], self.registry.snapshot())

    def _find_superseded(self, session_token: str, connection_id: str) -> Participant | None:
        """The most recently active disconnected participant of the same session."""
        candidates = []
        for other_id in self.sessions.connections_for(session_token):
            if other_id == connection_id:
                continue
            other = self.registry.get(other_id)
            if other is None:
                continue
            if (
                other.online_state is OnlineState.OFFLINE
                or self.liveness.state_of(other_id) is LivenessState.GRACE_PERIOD
            ):
                candidates.append(other)
        if not candidates:
            return None
        return max(candidates, key=lambda p: p.last_activity_at)
