"""Activity (lead interaction log) domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.timezone import to_utc


class ActivityType(str, Enum):
    """Kind of interaction recorded against a lead."""

    CALL = "CALL"
    TELEGRAM = "TELEGRAM"
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"
    MEETING = "MEETING"
    VIEWING = "VIEWING"
    NOTE = "NOTE"
    STATUS_CHANGE = "STATUS_CHANGE"


# Activity types that count as reaching the lead.
CONTACT_ACTIVITY_TYPES = frozenset({
    ActivityType.CALL, ActivityType.TELEGRAM, ActivityType.WHATSAPP,
    ActivityType.EMAIL, ActivityType.MEETING, ActivityType.VIEWING,
})


class CallOutcome(str, Enum):
    """Result of a phone call."""

    ANSWERED = "ANSWERED"
    NO_ANSWER = "NO_ANSWER"
    VOICEMAIL = "VOICEMAIL"
    BUSY = "BUSY"


class ActivityCreate(BaseModel):
    """Data required to log an activity."""

    lead_id: UUID
    type: ActivityType
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    outcome: CallOutcome | None = None
    next_follow_up_at: datetime | None = None

    @field_validator("next_follow_up_at")
    @classmethod
    def follow_up_is_aware(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None

    @model_validator(mode="after")
    def outcome_only_for_calls(self) -> "ActivityCreate":
        """Only CALL activities carry an outcome."""
        if self.outcome is not None and self.type != ActivityType.CALL:
            raise ValueError("outcome is only allowed on CALL activities")
        return self


class Activity(BaseModel):
    """Full activity entity as stored. Immutable once created."""

    id: UUID
    agency_id: UUID
    lead_id: UUID
    member_id: UUID | None
    type: ActivityType
    title: str
    description: str | None
    outcome: CallOutcome | None
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}
