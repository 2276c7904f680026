"""Participant attributes domain model."""

from pydantic import BaseModel, ConfigDict


class ParticipantAttributes(BaseModel):
    """Descriptive attributes assigned to a participant when it connects.

    These never change for the lifetime of the participant.
    """

    model_config = ConfigDict(frozen=True)

    stable_user_id: str
    display_name: str
    color: str
    device_class: str = "unknown"
