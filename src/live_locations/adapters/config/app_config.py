"""12-factor configuration adapter using environment variables and an optional .env file."""

from datetime import timedelta
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from live_locations.domain.models import LivenessSettings, OfflinePolicy


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to bind the server to")
    reload: bool = Field(default=False, description="Enable auto-reload for development")

    title: str = Field(
        default="Live Locations",
        description="Page title displayed in browser tab",
    )

    # Liveness configuration
    grace_period_seconds: float = Field(
        default=30,
        description="Seconds a disconnected participant stays on the map before removal",
    )
    hard_timeout_seconds: float = Field(
        default=300,
        description="Inactivity after which the sweep removes any disconnected participant",
    )
    sweep_interval_seconds: float = Field(
        default=60,
        description="Seconds between sweeps for stale participants",
    )
    offline_policy: str = Field(
        default=OfflinePolicy.SOFT_OFFLINE.value,
        description="'soft-offline' (mark offline on disconnect) or 'hard-timeout-only'",
    )
    echo_location_to_origin: bool = Field(
        default=True,
        description="Send location broadcasts back to the participant that sent them",
    )

    # Client cadence hints (rendered into the page, not enforced by the server)
    client_update_interval_seconds: int = Field(
        default=5,
        description="How often clients send their location",
    )
    heartbeat_interval_seconds: int = Field(
        default=15,
        description="How often clients send a heartbeat",
    )

    # Map display
    map_tile_url: str = Field(
        default="https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        description="Tile URL template for the map layer",
    )
    map_attribution: str = Field(
        default="© OpenStreetMap contributors",
        description="Attribution shown on the map",
    )
    default_zoom: int = Field(default=15, description="Zoom level when centering on a location")

    # Rate limiting configuration
    rate_limit_per_minute: int = Field(
        default=100,
        description="Maximum number of HTTP requests allowed per IP address per minute",
    )

    @field_validator("offline_policy")
    @classmethod
    def validate_offline_policy(cls, v: str) -> str:
        """Validate the offline policy is a known one."""
        normalized = v.strip().lower()
        allowed = [policy.value for policy in OfflinePolicy]
        if normalized not in allowed:
            raise ValueError(f"offline_policy must be one of {allowed}")
        return normalized

    @field_validator(
        "grace_period_seconds",
        "hard_timeout_seconds",
        "sweep_interval_seconds",
        "client_update_interval_seconds",
        "heartbeat_interval_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Durations must be positive."""
        if v <= 0:
            raise ValueError("durations must be positive")
        return v

    @model_validator(mode="after")
    def validate_timeouts(self) -> "AppConfig":
        """The sweep bound must not be shorter than the grace period."""
        if self.hard_timeout_seconds < self.grace_period_seconds:
            raise ValueError("hard_timeout_seconds must be >= grace_period_seconds")
        return self

    @classmethod
    def for_testing(cls, **overrides: Any) -> "AppConfig":
        """Build a config that ignores any .env file."""
        return cls(_env_file=None, **overrides)

    def liveness_settings(self) -> LivenessSettings:
        """Convert the liveness knobs into the domain settings object."""
        return LivenessSettings(
            grace_period=timedelta(seconds=self.grace_period_seconds),
            hard_timeout=timedelta(seconds=self.hard_timeout_seconds),
            sweep_interval=timedelta(seconds=self.sweep_interval_seconds),
            offline_policy=OfflinePolicy(self.offline_policy),
        )
