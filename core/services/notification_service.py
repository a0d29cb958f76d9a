"""
Notification service: in-app notifications and external fan-out.

notify() writes the in-app notification first, then makes one best-effort
attempt on the external channel. The in-app record is the source of truth
for "was the member notified"; the external attempt is recorded separately
as a NotificationDelivery and never fails the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID, uuid4

from core.config import CRMConfig
from core.errors import ExternalDispatchFailure, NotFound, Unauthorized
from core.models import (
    DeliveryStatus,
    Member,
    Notification,
    NotificationDelivery,
    NotificationType,
    RefKind,
)
from core.store import EntityStore
from core.templates import render
from utils.actor_context import get_current_agency_id, get_current_member_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_DEFAULT_LIST_LIMIT = 50

_TASK_TYPES = {
    NotificationType.TASK_ASSIGNED,
    NotificationType.TASK_DUE_SOON,
    NotificationType.TASK_OVERDUE,
    NotificationType.TASK_COMPLETED,
}
_LEAD_TYPES = {NotificationType.LEAD_ASSIGNED, NotificationType.LEAD_STATUS_CHANGE}
_DEAL_TYPES = {NotificationType.DEAL_STATUS_CHANGE}


class NotificationChannel(Protocol):
    """External messaging collaborator (e.g. TelegramClient)."""

    name: str

    @property
    def enabled(self) -> bool: ...

    def send(self, recipient_handle: str, text: str, format: str) -> bool: ...


@dataclass(frozen=True)
class NotificationEvent:
    """One logical event to deliver to one recipient."""

    type: NotificationType
    recipient_id: UUID
    task: Any = None
    lead: Any = None
    deal: Any = None
    old_status: str | None = None


def _ref_for(event: NotificationEvent) -> tuple[RefKind, UUID | None]:
    if event.type in _TASK_TYPES and event.task is not None:
        return RefKind.TASK, event.task.id
    if event.type in _LEAD_TYPES and event.lead is not None:
        return RefKind.LEAD, event.lead.id
    if event.type in _DEAL_TYPES and event.deal is not None:
        return RefKind.DEAL, event.deal.id
    return RefKind.NONE, None


class NotificationService:
    """Service for notification fan-out and the member's inbox."""

    def __init__(
        self,
        store: EntityStore,
        config: CRMConfig,
        channel: NotificationChannel | None = None,
    ):
        self.store = store
        self.config = config
        self.channel = channel

    def notify(self, event: NotificationEvent) -> UUID:
        """
        Deliver one event: in-app record, then external attempt.

        Works outside an actor context (the scanner calls it); the
        notification belongs to the recipient's agency.

        Args:
            event: What happened and who to tell

        Returns:
            ID of the in-app notification

        Raises:
            NotFound: Recipient does not exist
        """
        recipient_row = self.store.get("members", event.recipient_id)
        if recipient_row is None:
            raise NotFound("member", event.recipient_id)
        recipient = Member.model_validate(recipient_row)

        ref_kind, ref_id = _ref_for(event)
        rendered = render(
            event.type,
            recipient_name=recipient.first_name,
            ref_kind=ref_kind,
            ref_id=ref_id,
            frontend_url=self.config.frontend_url,
            task=event.task,
            lead=event.lead,
            deal=event.deal,
            old_status=event.old_status,
        )

        row = self.store.insert("notifications", {
            "id": uuid4(),
            "agency_id": recipient.agency_id,
            "recipient_id": recipient.id,
            "type": event.type,
            "title": rendered.title,
            "message": rendered.message,
            "ref_kind": ref_kind,
            "ref_id": ref_id,
            "is_read": False,
            "read_at": None,
            "created_at": now_utc(),
        })
        notification = Notification.model_validate(row)
        logger.info(
            f"Created {notification.type.value} notification {notification.id} "
            f"for member {recipient.id}"
        )

        self._dispatch_external(notification, recipient, rendered.external_text)
        return notification.id

    def _dispatch_external(self, notification: Notification, recipient: Member, text: str) -> None:
        """
        One best-effort external send. Never raises.

        Outcome goes to notification_deliveries: SKIPPED when there is no
        channel or handle, FAILED on any channel error (timeouts included),
        SENT otherwise. No retry.
        """
        channel_name = getattr(self.channel, "name", "external")
        status = DeliveryStatus.SENT
        error = None

        if self.channel is None or not self.channel.enabled:
            status, error = DeliveryStatus.SKIPPED, "channel disabled"
        elif not recipient.telegram_chat_id:
            status, error = DeliveryStatus.SKIPPED, "recipient has no external handle"
        else:
            try:
                accepted = self.channel.send(
                    recipient.telegram_chat_id, text, format=self.config.telegram_parse_mode
                )
                if not accepted:
                    raise ExternalDispatchFailure(f"{channel_name} did not accept the message")
            except Exception as e:
                status, error = DeliveryStatus.FAILED, str(e)
                logger.error(
                    f"External dispatch failed for notification {notification.id} "
                    f"(member {recipient.id}): {e}"
                )

        if status == DeliveryStatus.SKIPPED:
            logger.info(f"Skipped external dispatch for notification {notification.id}: {error}")

        try:
            self.store.insert("notification_deliveries", {
                "id": uuid4(),
                "agency_id": notification.agency_id,
                "notification_id": notification.id,
                "channel": channel_name,
                "status": status,
                "error": error,
                "attempted_at": now_utc(),
            })
        except Exception:
            logger.exception(f"Could not record delivery for notification {notification.id}")

    def list_for_member(
        self,
        member_id: UUID | None = None,
        is_read: bool | None = None,
        type: NotificationType | None = None,
        limit: int = _DEFAULT_LIST_LIMIT,
    ) -> list[Notification]:
        """
        Notifications of a member, newest first.

        Args:
            member_id: Recipient (defaults to the acting member)
            is_read: Only read / only unread when given
            type: Only this notification type when given
            limit: Maximum rows
        """
        where: dict[str, Any] = {
            "agency_id": get_current_agency_id(),
            "recipient_id": member_id or self._require_member(),
        }
        if is_read is not None:
            where["is_read"] = is_read
        if type is not None:
            where["type"] = type
        rows = self.store.find(
            "notifications", where, order_by="created_at", descending=True, limit=limit
        )
        return [Notification.model_validate(r) for r in rows]

    def unread_count(self, member_id: UUID | None = None) -> int:
        return self.store.count("notifications", {
            "agency_id": get_current_agency_id(),
            "recipient_id": member_id or self._require_member(),
            "is_read": False,
        })

    def mark_as_read(self, notification_id: UUID) -> Notification:
        """
        Mark one of the acting member's notifications read.

        Idempotent: an already-read notification is returned unchanged and
        keeps its original read_at.

        Raises:
            NotFound: Notification missing or addressed to someone else
        """
        current = self._require_own(notification_id)
        if current.is_read:
            return current

        row = self.store.update(
            "notifications",
            notification_id,
            {"is_read": True, "read_at": now_utc()},
            expected={"is_read": False},
        )
        if row is None:
            # Read (or deleted) concurrently
            return self._require_own(notification_id)
        return Notification.model_validate(row)

    def mark_all_read(self, member_id: UUID | None = None) -> int:
        """
        Mark every unread notification of a member read, in one step.

        Returns:
            Number of notifications flipped
        """
        recipient_id = member_id or self._require_member()
        count = self.store.update_many(
            "notifications",
            {"agency_id": get_current_agency_id(), "recipient_id": recipient_id, "is_read": False},
            {"is_read": True, "read_at": now_utc()},
        )
        logger.debug(f"Marked {count} notifications read for member {recipient_id}")
        return count

    def delete(self, notification_id: UUID) -> bool:
        """
        Delete one of the acting member's notifications.

        Returns:
            True if deleted, False if not found.
        """
        try:
            self._require_own(notification_id)
        except NotFound:
            return False
        return self.store.delete("notifications", notification_id)

    def deliveries_for(self, notification_id: UUID) -> list[NotificationDelivery]:
        """External delivery attempts recorded for a notification, oldest first."""
        row = self.store.get("notifications", notification_id)
        if row is None or row["agency_id"] != get_current_agency_id():
            raise NotFound("notification", notification_id)
        rows = self.store.find(
            "notification_deliveries", {"notification_id": notification_id}, order_by="attempted_at"
        )
        return [NotificationDelivery.model_validate(r) for r in rows]

    def _require_member(self) -> UUID:
        member_id = get_current_member_id()
        if member_id is None:
            raise Unauthorized("An acting member is required for inbox operations")
        return member_id

    def _require_own(self, notification_id: UUID) -> Notification:
        row = self.store.get("notifications", notification_id)
        if (
            row is None
            or row["agency_id"] != get_current_agency_id()
            or row["recipient_id"] != self._require_member()
        ):
            raise NotFound("notification", notification_id)
        return Notification.model_validate(row)
