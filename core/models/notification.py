"""Notification domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, model_validator


class NotificationType(str, Enum):
    """Event that produced the notification."""

    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_DUE_SOON = "TASK_DUE_SOON"
    TASK_OVERDUE = "TASK_OVERDUE"
    TASK_COMPLETED = "TASK_COMPLETED"
    LEAD_ASSIGNED = "LEAD_ASSIGNED"
    LEAD_STATUS_CHANGE = "LEAD_STATUS_CHANGE"
    DEAL_STATUS_CHANGE = "DEAL_STATUS_CHANGE"


class RefKind(str, Enum):
    """What a notification deep-links to."""

    TASK = "TASK"
    LEAD = "LEAD"
    DEAL = "DEAL"
    NONE = "NONE"


class NotificationRef(BaseModel):
    """
    Deep-link target of a notification: exactly one entity, or none.

    A reference, never ownership. Deleting the entity leaves the
    notification in place.
    """

    kind: RefKind = RefKind.NONE
    id: UUID | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def id_matches_kind(self) -> "NotificationRef":
        if (self.kind == RefKind.NONE) != (self.id is None):
            raise ValueError("ref id must be given exactly when kind is not NONE")
        return self


class DeliveryStatus(str, Enum):
    """Outcome of one external-channel attempt."""

    SENT = "SENT"
    FAILED = "FAILED"  # Channel error or timeout - attempted but failed
    SKIPPED = "SKIPPED"  # Precondition failed - no handle, channel disabled


class Notification(BaseModel):
    """Full in-app notification entity as stored."""

    id: UUID
    agency_id: UUID
    recipient_id: UUID
    type: NotificationType
    title: str
    message: str
    ref_kind: RefKind
    ref_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def ref_is_consistent(self) -> "Notification":
        NotificationRef(kind=self.ref_kind, id=self.ref_id)
        return self

    @property
    def ref(self) -> NotificationRef:
        return NotificationRef(kind=self.ref_kind, id=self.ref_id)


class NotificationDelivery(BaseModel):
    """Per-channel delivery record, kept apart from the in-app notification."""

    id: UUID
    agency_id: UUID
    notification_id: UUID
    channel: str
    status: DeliveryStatus
    error: str | None
    attempted_at: datetime

    model_config = {"from_attributes": True}
