"""POST /api/actions: unified command endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.errors import NotFound
from core.models import (
    ActivityCreate,
    DealCreate,
    DealStatus,
    LeadCreate,
    LeadStatus,
    LeadUpdate,
    MemberCreate,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
from core.services.import_service import DuplicatePolicy


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "lead": LeadHandler(services["lead"], services["import"]),
        "task": TaskHandler(services["task"]),
        "deal": DealHandler(services["deal"]),
        "activity": ActivityHandler(services["activity"]),
        "notification": NotificationHandler(services["notification"]),
        "member": MemberHandler(services["member"]),
    }

    # Plain def: FastAPI runs it in its threadpool, so a slow Telegram send
    # does not stall the event loop.
    @router.post("/actions")
    def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data))
        return success_response(result, request).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class LeadHandler:
    ALLOWED_ACTIONS = {
        "create", "update", "delete", "assign", "transition",
        "bulk_assign", "bulk_delete", "import",
    }

    def __init__(self, service, importer):
        self.service = service
        self.importer = importer

    def _handle_create(self, data: dict):
        lead = self.service.create(LeadCreate(**data))
        return lead.model_dump(mode="json")

    def _handle_update(self, data: dict):
        lead_id = UUID(data.pop("id"))
        lead = self.service.update(lead_id, LeadUpdate(**data))
        return lead.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        lead_id = UUID(data["id"])
        if not self.service.delete(lead_id):
            raise NotFound("lead", lead_id)
        return {"deleted": True}

    def _handle_assign(self, data: dict):
        lead = self.service.assign(UUID(data["id"]), UUID(data["member_id"]))
        return lead.model_dump(mode="json")

    def _handle_transition(self, data: dict):
        lead = self.service.transition(UUID(data["id"]), LeadStatus(data["status"]))
        return lead.model_dump(mode="json")

    def _handle_bulk_assign(self, data: dict):
        lead_ids = [UUID(i) for i in data["lead_ids"]]
        result = self.service.bulk_assign(lead_ids, UUID(data["member_id"]))
        return result.model_dump(mode="json")

    def _handle_bulk_delete(self, data: dict):
        result = self.service.bulk_delete([UUID(i) for i in data["lead_ids"]])
        return result.model_dump(mode="json")

    def _handle_import(self, data: dict):
        default_assigned_to = data.get("default_assigned_to")
        result = self.importer.import_leads(
            data["csv"],
            policy=DuplicatePolicy(data.get("duplicate_policy", DuplicatePolicy.SKIP.value)),
            default_assigned_to=UUID(default_assigned_to) if default_assigned_to else None,
        )
        return result.model_dump(mode="json")


class TaskHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete", "assign", "transition", "start", "complete", "cancel"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        task = self.service.create(TaskCreate(**data))
        return task.model_dump(mode="json")

    def _handle_update(self, data: dict):
        task_id = UUID(data.pop("id"))
        task = self.service.update(task_id, TaskUpdate(**data))
        return task.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        task_id = UUID(data["id"])
        if not self.service.delete(task_id):
            raise NotFound("task", task_id)
        return {"deleted": True}

    def _handle_assign(self, data: dict):
        task = self.service.assign(UUID(data["id"]), UUID(data["member_id"]))
        return task.model_dump(mode="json")

    def _handle_transition(self, data: dict):
        task = self.service.transition(UUID(data["id"]), TaskStatus(data["status"]))
        return task.model_dump(mode="json")

    def _handle_start(self, data: dict):
        task = self.service.start(UUID(data["id"]))
        return task.model_dump(mode="json")

    def _handle_complete(self, data: dict):
        task = self.service.complete(UUID(data["id"]))
        return task.model_dump(mode="json")

    def _handle_cancel(self, data: dict):
        task = self.service.cancel(UUID(data["id"]))
        return task.model_dump(mode="json")


class DealHandler:
    ALLOWED_ACTIONS = {"create", "transition"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        deal = self.service.create(DealCreate(**data))
        return deal.model_dump(mode="json")

    def _handle_transition(self, data: dict):
        deal = self.service.transition(UUID(data["id"]), DealStatus(data["status"]))
        return deal.model_dump(mode="json")


class ActivityHandler:
    ALLOWED_ACTIONS = {"create", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        activity = self.service.create(ActivityCreate(**data))
        return activity.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        activity_id = UUID(data["id"])
        if not self.service.delete(activity_id):
            raise NotFound("activity", activity_id)
        return {"deleted": True}


class NotificationHandler:
    ALLOWED_ACTIONS = {"mark_read", "mark_all_read", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_mark_read(self, data: dict):
        notification = self.service.mark_as_read(UUID(data["id"]))
        return notification.model_dump(mode="json")

    def _handle_mark_all_read(self, data: dict):
        return {"updated": self.service.mark_all_read()}

    def _handle_delete(self, data: dict):
        notification_id = UUID(data["id"])
        if not self.service.delete(notification_id):
            raise NotFound("notification", notification_id)
        return {"deleted": True}


class MemberHandler:
    ALLOWED_ACTIONS = {"create", "deactivate"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        member = self.service.create(MemberCreate(**data))
        return member.model_dump(mode="json")

    def _handle_deactivate(self, data: dict):
        member = self.service.deactivate(UUID(data["id"]))
        return member.model_dump(mode="json")
