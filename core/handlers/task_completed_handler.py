"""
Handler for TaskCompleted events.

Tells the task's creator that the work is done, unless the creator
completed their own task.
"""

import logging
from typing import Callable

from core.events import TaskCompleted
from core.models import NotificationType
from core.services.notification_service import NotificationEvent

logger = logging.getLogger(__name__)


def handle_task_completed(notification_service) -> Callable:
    """
    Factory that returns a TaskCompleted handler.

    Args:
        notification_service: NotificationService instance

    Returns:
        Handler callable that notifies the task's creator
    """

    def handler(event: TaskCompleted):
        task = event.task
        if task.created_by_id is None or task.created_by_id == task.assigned_to_id:
            logger.debug(f"Task {task.id} completed by its creator; no notification")
            return

        notification_service.notify(NotificationEvent(
            type=NotificationType.TASK_COMPLETED,
            recipient_id=task.created_by_id,
            task=task,
        ))

    return handler
