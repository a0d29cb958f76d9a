"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from api.base import success_response
from core.errors import NotFound
from core.models import (
    DealStatus,
    LeadFilter,
    LeadSource,
    LeadStatus,
    NotificationType,
    Priority,
    TaskStatus,
)


VALID_TYPES = {"leads", "tasks", "deals", "activities", "notifications", "members"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    lead_svc = services["lead"]
    task_svc = services["task"]
    deal_svc = services["deal"]
    activity_svc = services["activity"]
    notification_svc = services["notification"]
    member_svc = services["member"]
    export_svc = services["export"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/notifications/unread-count")
    def unread_count(request: Request):
        return success_response(
            {"count": notification_svc.unread_count()}, request
        ).model_dump(mode="json")

    @router.get("/data/leads/export")
    def export_leads(
        status: LeadStatus | None = Query(None),
        priority: Priority | None = Query(None),
        source: LeadSource | None = Query(None),
        assigned_to_id: UUID | None = Query(None),
        search: str | None = Query(None, max_length=200),
    ):
        export = export_svc.export_leads(LeadFilter(
            status=status,
            priority=priority,
            source=source,
            assigned_to_id=assigned_to_id,
            search=search,
        ))
        return Response(
            content=export.csv,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
        )

    @router.get("/data/leads/stats")
    def lead_stats(request: Request):
        return success_response(lead_svc.stats(), request).model_dump(mode="json")

    @router.get("/data/tasks/stats")
    def task_stats(request: Request):
        return success_response(task_svc.stats(), request).model_dump(mode="json")

    @router.get("/data/deals/pipeline")
    def deal_pipeline(request: Request):
        pipeline = {
            status: {"count": b["count"], "total_value": str(b["total_value"])}
            for status, b in deal_svc.pipeline().items()
        }
        return success_response(pipeline, request).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        search: str | None = Query(None),
        status: str | None = Query(None),
        priority: str | None = Query(None),
        source: str | None = Query(None),
        assigned_to_id: str | None = Query(None),
        lead_id: str | None = Query(None),
        filter: str | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "leads":
            data = _handle_leads(
                lead_svc, id, search, status, priority, source, assigned_to_id, limit, offset
            )
        elif type == "tasks":
            data = _handle_tasks(task_svc, id, status, assigned_to_id, lead_id, limit)
        elif type == "deals":
            data = _handle_deals(deal_svc, id, status, lead_id, limit)
        elif type == "activities":
            data = _handle_activities(activity_svc, lead_id, limit)
        elif type == "notifications":
            data = _handle_notifications(notification_svc, filter, limit)
        else:
            data = _handle_members(member_svc, id, filter)

        return success_response(data, request).model_dump(mode="json")

    return router


def _optional_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


def _handle_leads(lead_svc, id, search, status, priority, source, assigned_to_id, limit, offset):
    if id:
        return lead_svc.require(UUID(id)).model_dump(mode="json")

    lead_filter = LeadFilter(
        status=LeadStatus(status) if status else None,
        priority=Priority(priority) if priority else None,
        source=LeadSource(source) if source else None,
        assigned_to_id=_optional_uuid(assigned_to_id),
        search=search,
    )
    leads = lead_svc.find(lead_filter, limit=limit, offset=offset)
    return [lead.model_dump(mode="json") for lead in leads]


def _handle_tasks(task_svc, id, status, assigned_to_id, lead_id, limit):
    if id:
        return task_svc.require(UUID(id)).model_dump(mode="json")

    tasks = task_svc.list_tasks(
        status=TaskStatus(status) if status else None,
        assigned_to_id=_optional_uuid(assigned_to_id),
        lead_id=_optional_uuid(lead_id),
        limit=limit,
    )
    return [t.model_dump(mode="json") for t in tasks]


def _handle_deals(deal_svc, id, status, lead_id, limit):
    if id:
        return deal_svc.require(UUID(id)).model_dump(mode="json")

    deals = deal_svc.list_deals(
        status=DealStatus(status) if status else None,
        lead_id=_optional_uuid(lead_id),
        limit=limit,
    )
    return [d.model_dump(mode="json") for d in deals]


def _handle_activities(activity_svc, lead_id, limit):
    if not lead_id:
        raise ValueError("'activities' type requires 'lead_id' parameter")

    activities = activity_svc.list_for_lead(UUID(lead_id), limit=limit)
    return [a.model_dump(mode="json") for a in activities]


def _handle_notifications(notification_svc, filter, limit):
    if filter in (None, "all"):
        is_read = None
        notification_type = None
    elif filter in ("unread", "read"):
        is_read = filter == "read"
        notification_type = None
    else:
        is_read = None
        notification_type = NotificationType(filter)

    notifications = notification_svc.list_for_member(
        is_read=is_read, type=notification_type, limit=limit
    )
    return [n.model_dump(mode="json") for n in notifications]


def _handle_members(member_svc, id, filter):
    if id:
        member = member_svc.get_by_id(UUID(id))
        if member is None:
            raise NotFound("member", id)
        return member.model_dump(mode="json")

    members = member_svc.list_all(include_inactive=filter == "all")
    return [m.model_dump(mode="json") for m in members]
