"""Location fix domain model."""

from pydantic import BaseModel, ConfigDict, Field


class LocationFix(BaseModel):
    """A single geolocation fix reported by a browser.

    Validation failures (missing or non-numeric coordinates, values out of
    range) surface as ``pydantic.ValidationError`` and mean the update is
    malformed and must be rejected without touching any state.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)
    accuracy: float | None = Field(default=None, ge=0.0, allow_inf_nan=False)
    # Epoch milliseconds as reported by the client; informational only.
    fix_timestamp: int | None = Field(default=None, alias="timestamp", ge=0)
