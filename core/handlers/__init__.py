"""Event handlers that turn domain events into notifications."""

from core.event_bus import EventBus
from core.handlers.deal_status_handler import handle_deal_status_changed
from core.handlers.lead_handlers import handle_lead_assigned, handle_lead_status_changed
from core.handlers.task_assigned_handler import handle_task_assigned
from core.handlers.task_completed_handler import handle_task_completed


def register_notification_handlers(event_bus: EventBus, notification_service) -> None:
    """Subscribe every notification handler to its event."""
    event_bus.subscribe("TaskAssigned", handle_task_assigned(notification_service))
    event_bus.subscribe("TaskCompleted", handle_task_completed(notification_service))
    event_bus.subscribe("LeadAssigned", handle_lead_assigned(notification_service))
    event_bus.subscribe("LeadStatusChanged", handle_lead_status_changed(notification_service))
    event_bus.subscribe("DealStatusChanged", handle_deal_status_changed(notification_service))


__all__ = [
    "register_notification_handlers",
    "handle_task_assigned",
    "handle_task_completed",
    "handle_lead_assigned",
    "handle_lead_status_changed",
    "handle_deal_status_changed",
]
