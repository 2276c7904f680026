from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RosterSummary(BaseModel):
    """Aggregate counts plus the cosmetic roster entries."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    total_count: int
    online_count: int
    offline_count: int
    located_count: int
    session_count: int
    participants: list[dict[str, Any]]
