"""
Handler for TaskAssigned events.

Tells the assignee about a task created for them or handed over to them.
"""

import logging
from typing import Callable

from core.events import TaskAssigned
from core.models import NotificationType
from core.services.notification_service import NotificationEvent

logger = logging.getLogger(__name__)


def handle_task_assigned(notification_service) -> Callable:
    """
    Factory that returns a TaskAssigned handler.

    Args:
        notification_service: NotificationService instance

    Returns:
        Handler callable that notifies the task's assignee
    """

    def handler(event: TaskAssigned):
        task = event.task
        notification_service.notify(NotificationEvent(
            type=NotificationType.TASK_ASSIGNED,
            recipient_id=task.assigned_to_id,
            task=task,
        ))

    return handler
