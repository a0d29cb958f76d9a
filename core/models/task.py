"""Task domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from core.models.lead import Priority
from utils.timezone import to_utc


class TaskType(str, Enum):
    """Kind of follow-up work."""

    FOLLOW_UP = "FOLLOW_UP"
    VIEWING = "VIEWING"
    CALL = "CALL"
    DOCUMENT = "DOCUMENT"
    MEETING = "MEETING"
    OTHER = "OTHER"


class TaskStatus(str, Enum):
    """Task lifecycle status. COMPLETED and CANCELLED are terminal."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


OPEN_TASK_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)


class DueClassification(str, Enum):
    """Where an open task stands against its due date."""

    NOT_DUE = "NOT_DUE"
    DUE_SOON = "DUE_SOON"
    OVERDUE = "OVERDUE"


class TaskCreate(BaseModel):
    """Data required to create a task."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    type: TaskType = TaskType.FOLLOW_UP
    priority: Priority = Priority.MEDIUM
    due_date: datetime
    assigned_to_id: UUID
    lead_id: UUID | None = None
    deal_id: UUID | None = None

    @field_validator("due_date")
    @classmethod
    def due_date_is_aware(cls, value: datetime) -> datetime:
        """Naive due dates are rejected; the scanner compares against UTC."""
        return to_utc(value)


class TaskUpdate(BaseModel):
    """Data that can be updated on a task. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    type: TaskType | None = None
    priority: Priority | None = None
    due_date: datetime | None = None

    @field_validator("due_date")
    @classmethod
    def due_date_is_aware(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class Task(BaseModel):
    """Full task entity as stored."""

    id: UUID
    agency_id: UUID
    title: str
    description: str | None
    type: TaskType
    priority: Priority
    status: TaskStatus
    due_date: datetime
    completed_at: datetime | None
    assigned_to_id: UUID
    created_by_id: UUID | None
    lead_id: UUID | None
    deal_id: UUID | None
    # Written only by the reminder scanner.
    last_notified_classification: DueClassification
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def completed_at_matches_status(self) -> "Task":
        """completed_at is set exactly when the task is COMPLETED."""
        if (self.status == TaskStatus.COMPLETED) != (self.completed_at is not None):
            raise ValueError("completed_at must be set if and only if status is COMPLETED")
        return self

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_TASK_STATUSES
