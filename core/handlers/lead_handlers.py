"""
Handlers for lead events.

LeadAssigned notifies the new assignee. LeadStatusChanged notifies the
lead's current assignee; unassigned leads have nobody to tell.
"""

import logging
from typing import Callable

from core.events import LeadAssigned, LeadStatusChanged
from core.models import NotificationType
from core.services.notification_service import NotificationEvent

logger = logging.getLogger(__name__)


def handle_lead_assigned(notification_service) -> Callable:
    """Factory that returns a LeadAssigned handler."""

    def handler(event: LeadAssigned):
        lead = event.lead
        notification_service.notify(NotificationEvent(
            type=NotificationType.LEAD_ASSIGNED,
            recipient_id=lead.assigned_to_id,
            lead=lead,
        ))

    return handler


def handle_lead_status_changed(notification_service) -> Callable:
    """Factory that returns a LeadStatusChanged handler."""

    def handler(event: LeadStatusChanged):
        lead = event.lead
        if lead.assigned_to_id is None:
            logger.debug(f"Lead {lead.id} is unassigned; no status notification")
            return

        notification_service.notify(NotificationEvent(
            type=NotificationType.LEAD_STATUS_CHANGE,
            recipient_id=lead.assigned_to_id,
            lead=lead,
            old_status=event.old_status,
        ))

    return handler
