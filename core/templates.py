"""
Notification content per event type.

Each template renders the in-app title and message plus the external
(Telegram HTML) text. External text greets the recipient by name, names the
entity and ends with a deep link built from entity kind and id.
"""

from dataclasses import dataclass
from html import escape
from typing import Any

from core.models import NotificationType, RefKind

_LINK_SEGMENTS = {
    RefKind.TASK: "tasks",
    RefKind.LEAD: "leads",
    RefKind.DEAL: "deals",
}

_LINK_LABELS = {
    RefKind.TASK: "Open task",
    RefKind.LEAD: "Open lead",
    RefKind.DEAL: "Open deal",
}


@dataclass(frozen=True)
class RenderedNotification:
    title: str
    message: str
    external_text: str


def deep_link(frontend_url: str, kind: RefKind, entity_id: Any) -> str | None:
    """URL of the entity page, or None for notifications without a target."""
    segment = _LINK_SEGMENTS.get(kind)
    if segment is None or entity_id is None:
        return None
    return f"{frontend_url.rstrip('/')}/crm/{segment}/{entity_id}"


def _format_due(due_date) -> str:
    return due_date.strftime("%d %b %Y %H:%M UTC")


def _labels(value: str | None) -> str:
    return (value or "").replace("_", " ").title()


def _status_change(ctx: dict[str, Any]) -> str:
    if ctx.get("old_status") and ctx.get("new_status"):
        return f' {_labels(ctx["old_status"])} -> {_labels(ctx["new_status"])}'
    return " status updated"


def _in_app(event_type: NotificationType, ctx: dict[str, Any]) -> tuple[str, str, str]:
    """
    Title, message and external headline for one event.

    Events may arrive without their entity; the text then falls back to
    generic wording so the in-app record is still written.
    """
    title = ctx.get("task_title")
    task = f'Task "{title}"' if title else "A task"
    due = f' Due {ctx["due"]}.' if ctx.get("due") else ""
    lead = f'Lead {ctx["lead_name"]}' if ctx.get("lead_name") else "A lead"
    phone = f' ({ctx["lead_phone"]})' if ctx.get("lead_phone") else ""
    deal = f'Deal {ctx["deal_value"]} {ctx["currency"]}' if ctx.get("deal_value") else "A deal"

    if event_type == NotificationType.TASK_ASSIGNED:
        assigned = f'"{title}"' if title else "a new task"
        return "New task assigned", f"You were assigned {assigned}.{due}", "New task assigned"
    if event_type == NotificationType.TASK_DUE_SOON:
        return "Task due soon", f"{task} is due soon.{due}", "Task due soon"
    if event_type == NotificationType.TASK_OVERDUE:
        return "Overdue task", f"{task} is overdue.{due}", "Task overdue!"
    if event_type == NotificationType.TASK_COMPLETED:
        return "Task completed", f"{task} was completed.", "Task completed"
    if event_type == NotificationType.LEAD_ASSIGNED:
        return "New lead assigned", f"{lead}{phone} was assigned to you.", "New lead assigned!"
    if event_type == NotificationType.LEAD_STATUS_CHANGE:
        return "Lead status changed", f"{lead}:{_status_change(ctx)}.", "Lead status changed"
    if event_type == NotificationType.DEAL_STATUS_CHANGE:
        return "Deal status changed", f"{deal}:{_status_change(ctx)}.", "Deal status changed"
    raise ValueError(f"No template for notification type {event_type}")


def render(
    event_type: NotificationType,
    recipient_name: str,
    ref_kind: RefKind,
    ref_id: Any,
    frontend_url: str,
    task: Any = None,
    lead: Any = None,
    deal: Any = None,
    old_status: str | None = None,
) -> RenderedNotification:
    """
    Render notification content for one event.

    Args:
        event_type: Notification type
        recipient_name: Greeting name of the recipient
        ref_kind / ref_id: Deep-link target
        frontend_url: Base URL of the web app
        task / lead / deal: Entities involved (whichever apply)
        old_status: Previous status for *_STATUS_CHANGE events

    Returns:
        RenderedNotification with in-app and external text
    """
    ctx: dict[str, Any] = {"old_status": old_status}
    if task is not None:
        ctx["task_title"] = task.title
        ctx["due"] = _format_due(task.due_date)
    if lead is not None:
        ctx["lead_name"] = lead.full_name
        ctx["lead_phone"] = lead.phone
        ctx["new_status"] = lead.status.value
    if deal is not None:
        ctx["deal_value"] = f"{deal.deal_value:,}"
        ctx["currency"] = deal.currency
        ctx["new_status"] = deal.status.value

    title, message, headline = _in_app(event_type, ctx)

    lines = [f"<b>{escape(headline)}</b>", "", f"Hello, {escape(recipient_name)}!", "", escape(message)]
    link = deep_link(frontend_url, ref_kind, ref_id)
    if link is not None:
        lines += ["", f'<a href="{escape(link, quote=True)}">{_LINK_LABELS[ref_kind]}</a>']

    return RenderedNotification(title=title, message=message, external_text="\n".join(lines))
