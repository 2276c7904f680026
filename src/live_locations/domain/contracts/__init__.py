"""Domain contracts (protocols) used between components."""

from live_locations.domain.contracts.message_publisher import MessagePublisherProtocol
from live_locations.domain.contracts.participant_registry import ParticipantRegistryProtocol
from live_locations.domain.contracts.session_correlator import SessionCorrelatorProtocol
from live_locations.domain.contracts.timer_scheduler import (
    Clock,
    TimerHandleProtocol,
    TimerSchedulerProtocol,
)

__all__ = [
    "Clock",
    "MessagePublisherProtocol",
    "ParticipantRegistryProtocol",
    "SessionCorrelatorProtocol",
    "TimerHandleProtocol",
    "TimerSchedulerProtocol",
]
