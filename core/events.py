"""
Domain events for the CRM lead/task/deal lifecycle.

Immutable event objects that represent committed state changes. Services
publish what happened; the notification handlers react without the
publisher knowing who's listening.

Event Categories:
- TaskEvent: Task lifecycle (assigned, completed)
- LeadEvent: Lead lifecycle (assigned, status changed)
- DealEvent: Deal lifecycle (status changed)

Events carry the full domain object as written, so handlers don't need to
re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class CRMEvent:
    """Base class for all CRM domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)
    actor_id: UUID | None = None


# =============================================================================
# TASK EVENTS
# =============================================================================


@dataclass(frozen=True)
class TaskEvent(CRMEvent):
    """Events related to task lifecycle."""
    pass


@dataclass(frozen=True)
class TaskAssigned(TaskEvent):
    """A task was created for, or handed over to, a member."""
    task: Any = None  # Task - using Any to avoid circular import

    @classmethod
    def create(cls, task: Any, actor_id: UUID | None = None) -> "TaskAssigned":
        return cls(task=task, actor_id=actor_id)


@dataclass(frozen=True)
class TaskCompleted(TaskEvent):
    """A task moved into COMPLETED."""
    task: Any = None

    @classmethod
    def create(cls, task: Any, actor_id: UUID | None = None) -> "TaskCompleted":
        return cls(task=task, actor_id=actor_id)


# =============================================================================
# LEAD EVENTS
# =============================================================================


@dataclass(frozen=True)
class LeadEvent(CRMEvent):
    """Events related to lead lifecycle."""
    pass


@dataclass(frozen=True)
class LeadAssigned(LeadEvent):
    """A lead was assigned to a member."""
    lead: Any = None

    @classmethod
    def create(cls, lead: Any, actor_id: UUID | None = None) -> "LeadAssigned":
        return cls(lead=lead, actor_id=actor_id)


@dataclass(frozen=True)
class LeadStatusChanged(LeadEvent):
    """A lead moved along its status graph."""
    lead: Any = None
    old_status: str | None = None

    @classmethod
    def create(cls, lead: Any, old_status: str, actor_id: UUID | None = None) -> "LeadStatusChanged":
        return cls(lead=lead, old_status=old_status, actor_id=actor_id)


# =============================================================================
# DEAL EVENTS
# =============================================================================


@dataclass(frozen=True)
class DealEvent(CRMEvent):
    """Events related to deal lifecycle."""
    pass


@dataclass(frozen=True)
class DealStatusChanged(DealEvent):
    """A deal moved along its status graph."""
    deal: Any = None
    old_status: str | None = None

    @classmethod
    def create(cls, deal: Any, old_status: str, actor_id: UUID | None = None) -> "DealStatusChanged":
        return cls(deal=deal, old_status=old_status, actor_id=actor_id)
