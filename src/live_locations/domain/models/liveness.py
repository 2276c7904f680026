"""Liveness policy and state domain models."""

from datetime import timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator


class LivenessState(StrEnum):
    """Per-connection liveness state."""

    ACTIVE = "active"
    GRACE_PERIOD = "grace_period"
    EXPIRED = "expired"


class OfflinePolicy(StrEnum):
    """What happens to a participant at the moment its connection drops.

    SOFT_OFFLINE marks the participant offline right away and keeps the
    marker visible until the grace period runs out. HARD_TIMEOUT_ONLY leaves
    the record untouched and only removes it once the grace period runs out.
    """

    SOFT_OFFLINE = "soft-offline"
    HARD_TIMEOUT_ONLY = "hard-timeout-only"


class LivenessSettings(BaseModel):
    """Timer durations and policy for the liveness state machine."""

    model_config = ConfigDict(frozen=True)

    grace_period: timedelta = timedelta(seconds=30)
    hard_timeout: timedelta = timedelta(minutes=5)
    sweep_interval: timedelta = timedelta(minutes=1)
    offline_policy: OfflinePolicy = OfflinePolicy.SOFT_OFFLINE

    @model_validator(mode="after")
    def validate_durations(self) -> "LivenessSettings":
        """Ensure durations are positive and the sweep bound is the longer one."""
        for name in ("grace_period", "hard_timeout", "sweep_interval"):
            if getattr(self, name) <= timedelta(0):
                raise ValueError(f"{name} must be positive")
        if self.hard_timeout < self.grace_period:
            raise ValueError("hard_timeout must not be shorter than grace_period")
        return self
