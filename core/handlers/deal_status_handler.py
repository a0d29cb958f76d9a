"""
Handler for DealStatusChanged events.

Notifies the member who owns the deal.
"""

import logging
from typing import Callable

from core.events import DealStatusChanged
from core.models import NotificationType
from core.services.notification_service import NotificationEvent

logger = logging.getLogger(__name__)


def handle_deal_status_changed(notification_service) -> Callable:
    """
    Factory that returns a DealStatusChanged handler.

    Args:
        notification_service: NotificationService instance

    Returns:
        Handler callable that notifies the deal's owner
    """

    def handler(event: DealStatusChanged):
        deal = event.deal
        if deal.assigned_to_id is None:
            logger.debug(f"Deal {deal.id} has no owner; no status notification")
            return

        notification_service.notify(NotificationEvent(
            type=NotificationType.DEAL_STATUS_CHANGE,
            recipient_id=deal.assigned_to_id,
            deal=deal,
            old_status=event.old_status,
        ))

    return handler
