"""Outbound message domain model."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class Audience(StrEnum):
    """Who receives an outbound message."""

    ALL = "all"
    CONNECTION = "connection"


class OutboundMessage(BaseModel):
    """One server-to-client event together with its audience.

    ``target`` names the receiving connection for unicast messages. ``exclude``
    optionally names one connection that must not receive a broadcast.
    """

    model_config = ConfigDict(frozen=True)

    event: str
    payload: dict[str, Any]
    audience: Audience = Audience.ALL
    target: str | None = None
    exclude: str | None = None

    @model_validator(mode="after")
    def validate_target(self) -> "OutboundMessage":
        """Unicast messages need a target, broadcasts must not have one."""
        if self.audience is Audience.CONNECTION and not self.target:
            raise ValueError("unicast messages require a target connection")
        if self.audience is Audience.ALL and self.target is not None:
            raise ValueError("broadcast messages must not name a target")
        return self

    @classmethod
    def broadcast(
        cls, event: str, payload: dict[str, Any], exclude: str | None = None
    ) -> "OutboundMessage":
        return cls(event=event, payload=payload, audience=Audience.ALL, exclude=exclude)

    @classmethod
    def unicast(cls, target: str, event: str, payload: dict[str, Any]) -> "OutboundMessage":
        return cls(event=event, payload=payload, audience=Audience.CONNECTION, target=target)
