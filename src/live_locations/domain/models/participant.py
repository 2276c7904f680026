"""Participant domain model."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from live_locations.domain.models.location_fix import LocationFix


class OnlineState(StrEnum):
    """Whether a participant's connection is currently live."""

    ONLINE = "online"
    OFFLINE = "offline"


def session_tag_for(session_token: str | None) -> str | None:
    """Derive a short, non-reversible tag for a session token.

    The tag is safe to broadcast: it lets a client recognise its own other
    tabs without learning the token itself.
    """
    if not session_token:
        return None
    return hashlib.sha256(session_token.encode("utf-8")).hexdigest()[:12]


def to_epoch_ms(moment: datetime) -> int:
    """Convert a datetime to epoch milliseconds for wire payloads."""
    return int(moment.timestamp() * 1000)


@dataclass
class Participant:
    """Server-side record of one live connection."""

    connection_id: str
    stable_user_id: str
    display_name: str
    color: str
    device_class: str
    connected_at: datetime
    last_activity_at: datetime
    online_state: OnlineState = OnlineState.ONLINE
    location: LocationFix | None = None
    session_token: str | None = None

    @property
    def is_online(self) -> bool:
        return self.online_state is OnlineState.ONLINE

    @property
    def session_tag(self) -> str | None:
        return session_tag_for(self.session_token)

    def touch(self, now: datetime) -> None:
        """Advance last activity, never moving it backwards."""
        if now > self.last_activity_at:
            self.last_activity_at = now

    def to_roster_entry(self) -> dict[str, Any]:
        """Cosmetic and status fields, without the location."""
        return {
            "connectionId": self.connection_id,
            "userId": self.stable_user_id,
            "displayName": self.display_name,
            "color": self.color,
            "deviceClass": self.device_class,
            "onlineState": self.online_state.value,
            "lastActivityAt": to_epoch_ms(self.last_activity_at),
            "connectedAt": to_epoch_ms(self.connected_at),
            "hasLocation": self.location is not None,
            "sessionTag": self.session_tag,
        }

    def to_payload(self) -> dict[str, Any]:
        """Full record, as broadcast on every location update."""
        payload = self.to_roster_entry()
        location = self.location
        payload.update(
            {
                "latitude": location.latitude if location else None,
                "longitude": location.longitude if location else None,
                "accuracy": location.accuracy if location else None,
                "fixTimestamp": location.fix_timestamp if location else None,
            }
        )
        return payload

    def to_status_delta(self) -> dict[str, Any]:
        """Minimal status change notice."""
        return {
            "connectionId": self.connection_id,
            "onlineState": self.online_state.value,
            "lastActivityAt": to_epoch_ms(self.last_activity_at),
        }
