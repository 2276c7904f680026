"""Map LiveView state dataclass."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class MapState:
    """Per-socket state for the map LiveView."""

    connection_id: str = ""
    display_name: str = ""
    color: str = "#087BC4"
    device_class: str = "unknown"
    session_tag: str | None = None
    roster: list[dict[str, Any]] = field(default_factory=list)
    online_count: int = 0
    offline_count: int = 0
