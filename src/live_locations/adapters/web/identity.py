"""Cosmetic identity for new participants: name, color and device class.

Everything here is a pure lookup keyed by a seed string, so the same
connection id always maps to the same name and color.
"""

from __future__ import annotations

import hashlib
import re
import uuid

from live_locations.domain.models import ParticipantAttributes

ADJECTIVES = (
    "Amber",
    "Brisk",
    "Calm",
    "Clever",
    "Daring",
    "Eager",
    "Gentle",
    "Happy",
    "Jolly",
    "Lucky",
    "Mellow",
    "Nimble",
    "Quiet",
    "Rapid",
    "Sunny",
    "Swift",
    "Tidy",
    "Witty",
)

ANIMALS = (
    "Badger",
    "Beaver",
    "Falcon",
    "Ferret",
    "Fox",
    "Heron",
    "Koala",
    "Lynx",
    "Marten",
    "Otter",
    "Owl",
    "Panda",
    "Puffin",
    "Raven",
    "Seal",
    "Sparrow",
    "Tiger",
    "Wombat",
)

COLORS = (
    "#e6194b",
    "#3cb44b",
    "#4363d8",
    "#f58231",
    "#911eb4",
    "#42d4f4",
    "#f032e6",
    "#469990",
    "#9a6324",
    "#800000",
    "#808000",
    "#000075",
)

_TABLET_PATTERN = re.compile(r"ipad|tablet|kindle|silk|playbook|(android(?!.*mobile))", re.I)
_MOBILE_PATTERN = re.compile(r"mobi|iphone|ipod|android.*mobile|windows phone|blackberry", re.I)


def _digest(seed: str) -> int:
    return int.from_bytes(hashlib.sha256(seed.encode("utf-8")).digest()[:8], "big")


def display_name_for(seed: str) -> str:
    """Readable name such as 'Swift Otter 42'."""
    value = _digest(seed)
    adjective = ADJECTIVES[value % len(ADJECTIVES)]
    animal = ANIMALS[(value // len(ADJECTIVES)) % len(ANIMALS)]
    number = (value // (len(ADJECTIVES) * len(ANIMALS))) % 100
    return f"{adjective} {animal} {number}"


def color_for(seed: str) -> str:
    """Marker color from a fixed palette."""
    return COLORS[_digest(f"color:{seed}") % len(COLORS)]


def device_class_for(user_agent: str | None) -> str:
    """Classify a user agent as 'mobile', 'tablet', 'desktop' or 'unknown'."""
    if not user_agent or user_agent == "unknown":
        return "unknown"
    if _TABLET_PATTERN.search(user_agent):
        return "tablet"
    if _MOBILE_PATTERN.search(user_agent):
        return "mobile"
    return "desktop"


def new_participant_attributes(connection_id: str, user_agent: str | None) -> ParticipantAttributes:
    """Attributes for a participant joining on ``connection_id``."""
    return ParticipantAttributes(
        stable_user_id=f"user_{uuid.uuid4().hex[:12]}",
        display_name=display_name_for(connection_id),
        color=color_for(connection_id),
        device_class=device_class_for(user_agent),
    )
