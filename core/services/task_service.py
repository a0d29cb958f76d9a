"""
Task service for scheduled follow-up work.

Handles the task lifecycle: create, update, reassign, start, complete,
cancel. Tasks are immutable after being closed. completed_at is stamped on
the transition into COMPLETED and nowhere else.

The due-classification marker is owned by the reminder scanner; this
service only initialises it (NOT_DUE) and exposes record_classification()
for the scanner to advance it.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from core.errors import ConcurrentModification, NotFound, ValidationError
from core.event_bus import EventBus
from core.events import TaskAssigned, TaskCompleted
from core.models import (
    DueClassification,
    OPEN_TASK_STATUSES,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
from core.services.member_service import MemberService
from core.store import EntityStore
from core.transitions import TASK_GRAPH
from utils.actor_context import get_current_agency_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {"title", "description", "type", "priority", "due_date"}


class TaskService:
    """Service for task operations."""

    def __init__(self, store: EntityStore, members: MemberService, event_bus: EventBus):
        self.store = store
        self.members = members
        self.event_bus = event_bus

    def create(self, data: TaskCreate) -> Task:
        """
        Create a task and notify its assignee.

        Args:
            data: Task creation data

        Returns:
            Created task in PENDING status

        Raises:
            NotFound: Assignee, lead or deal does not exist in this agency
            ValidationError: Assignee is inactive
        """
        agency_id = get_current_agency_id()
        self.members.require_assignable(data.assigned_to_id)
        self._require_link("leads", "lead", data.lead_id, agency_id)
        self._require_link("deals", "deal", data.deal_id, agency_id)

        actor = self.members.current_actor()
        now = now_utc()
        row = self.store.insert("tasks", {
            "id": uuid4(),
            "agency_id": agency_id,
            "title": data.title,
            "description": data.description,
            "type": data.type,
            "priority": data.priority,
            "status": TaskStatus.PENDING,
            "due_date": data.due_date,
            "completed_at": None,
            "assigned_to_id": data.assigned_to_id,
            "created_by_id": actor.id if actor is not None else None,
            "lead_id": data.lead_id,
            "deal_id": data.deal_id,
            "last_notified_classification": DueClassification.NOT_DUE,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        })
        task = Task.model_validate(row)
        logger.info(f"Created task {task.id} for member {task.assigned_to_id}")

        self.event_bus.publish(TaskAssigned.create(task, actor_id=task.created_by_id))
        return task

    def get_by_id(self, task_id: UUID) -> Task | None:
        """
        Get task by ID within the current agency.

        Returns:
            Task if found, None otherwise.
        """
        row = self.store.get("tasks", task_id)
        if row is None or row["agency_id"] != get_current_agency_id():
            return None
        return Task.model_validate(row)

    def require(self, task_id: UUID) -> Task:
        """Get task by ID or raise NotFound."""
        task = self.get_by_id(task_id)
        if task is None:
            raise NotFound("task", task_id)
        return task

    def update(self, task_id: UUID, data: TaskUpdate) -> Task:
        """
        Update task fields.

        Raises:
            NotFound: Task does not exist
            ValidationError: Task is closed
            ConcurrentModification: Task changed since it was read
        """
        current = self.require(task_id)
        if not current.is_open:
            raise ValidationError(f"Task {task_id} is closed and immutable")

        updates = data.model_dump(exclude_none=True)
        valid_updates = {k: v for k, v in updates.items() if k in _UPDATABLE_COLUMNS}
        if not valid_updates:
            return current

        return self._write(current, valid_updates)

    def assign(self, task_id: UUID, member_id: UUID) -> Task:
        """
        Hand a task over to another member and notify them.

        Re-assigning to the current assignee is a no-op.

        Raises:
            NotFound: Task or member does not exist
            ValidationError: Task closed or member inactive
            ConcurrentModification: Task changed since it was read
        """
        current = self.require(task_id)
        if not current.is_open:
            raise ValidationError(f"Task {task_id} is closed and immutable")
        self.members.require_assignable(member_id)

        if current.assigned_to_id == member_id:
            return current

        updated = self._write(current, {"assigned_to_id": member_id})
        logger.info(f"Reassigned task {task_id} to member {member_id}")

        self.event_bus.publish(TaskAssigned.create(updated, actor_id=self._actor_id()))
        return updated

    def transition(self, task_id: UUID, target: TaskStatus) -> Task:
        """
        Move a task along its status graph.

        IN_PROGRESS -> IN_PROGRESS is allowed and changes nothing.

        Args:
            task_id: Task UUID
            target: Requested status

        Returns:
            Updated task (completed_at set when target is COMPLETED)

        Raises:
            NotFound: Task does not exist
            InvalidTransition: Edge is not in the task graph
            ConcurrentModification: Task changed since it was read
        """
        current = self.require(task_id)
        actor = self.members.current_actor()
        TASK_GRAPH.check(task_id, current.status, target, actor)

        if target == current.status:
            return current

        changes: dict[str, Any] = {"status": target}
        if target == TaskStatus.COMPLETED:
            changes["completed_at"] = now_utc()

        updated = self._write(current, changes)
        logger.info(f"Task {task_id}: {current.status.value} -> {target.value}")

        if target == TaskStatus.COMPLETED:
            actor_id = actor.id if actor is not None else None
            self.event_bus.publish(TaskCompleted.create(updated, actor_id=actor_id))

        return updated

    def start(self, task_id: UUID) -> Task:
        return self.transition(task_id, TaskStatus.IN_PROGRESS)

    def complete(self, task_id: UUID) -> Task:
        return self.transition(task_id, TaskStatus.COMPLETED)

    def cancel(self, task_id: UUID) -> Task:
        return self.transition(task_id, TaskStatus.CANCELLED)

    def list_tasks(
        self,
        status: TaskStatus | None = None,
        assigned_to_id: UUID | None = None,
        lead_id: UUID | None = None,
        deal_id: UUID | None = None,
        limit: int = 100,
    ) -> list[Task]:
        """List tasks in the current agency, soonest due first."""
        where: dict[str, Any] = {"agency_id": get_current_agency_id()}
        if status is not None:
            where["status"] = status
        if assigned_to_id is not None:
            where["assigned_to_id"] = assigned_to_id
        if lead_id is not None:
            where["lead_id"] = lead_id
        if deal_id is not None:
            where["deal_id"] = deal_id

        rows = self.store.find("tasks", where, order_by="due_date", limit=limit)
        return [Task.model_validate(r) for r in rows]

    def list_open_for_scan(self) -> list[Task]:
        """
        Every open task in every agency, soonest due first.

        Used by the reminder scanner, which runs outside any actor context.
        """
        rows = self.store.find(
            "tasks", {"status": list(OPEN_TASK_STATUSES)}, order_by="due_date"
        )
        return [Task.model_validate(r) for r in rows]

    def record_classification(
        self,
        task: Task,
        classification: DueClassification,
    ) -> Task | None:
        """
        Advance the scanner's marker for one task.

        Conditioned on the marker the scanner read, not on version: user
        edits and the scanner never conflict with each other.

        Returns:
            Updated task, or None if the task vanished or another scanner
            already moved the marker.
        """
        row = self.store.update(
            "tasks",
            task.id,
            {"last_notified_classification": classification},
            expected={"last_notified_classification": task.last_notified_classification},
        )
        return Task.model_validate(row) if row is not None else None

    def stats(self, now: datetime | None = None) -> dict[str, int]:
        """Task counts: total, pending, in_progress, completed, cancelled, overdue."""
        agency_id = get_current_agency_id()
        now = now or now_utc()
        rows = self.store.find("tasks", {"agency_id": agency_id})
        tasks = [Task.model_validate(r) for r in rows]

        stats = {"total": len(tasks)}
        for status in TaskStatus:
            stats[status.value.lower()] = sum(1 for t in tasks if t.status == status)
        stats["overdue"] = sum(1 for t in tasks if t.is_open and t.due_date < now)
        return stats

    def delete(self, task_id: UUID) -> bool:
        """
        Delete a task.

        Returns:
            True if deleted, False if it did not exist in this agency.
        """
        if self.get_by_id(task_id) is None:
            return False
        return self.store.delete("tasks", task_id)

    def _require_link(self, table: str, entity_type: str, entity_id: UUID | None, agency_id: UUID):
        if entity_id is None:
            return
        row = self.store.get(table, entity_id)
        if row is None or row["agency_id"] != agency_id:
            raise NotFound(entity_type, entity_id)

    def _write(self, current: Task, changes: dict[str, Any]) -> Task:
        """Apply changes if the task still has the version that was read."""
        changes = {**changes, "version": current.version + 1, "updated_at": now_utc()}
        row = self.store.update(
            "tasks", current.id, changes, expected={"version": current.version}
        )
        if row is None:
            raise ConcurrentModification("task", current.id)
        return Task.model_validate(row)

    def _actor_id(self) -> UUID | None:
        actor = self.members.current_actor()
        return actor.id if actor is not None else None
