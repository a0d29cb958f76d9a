"""
Activity service: the immutable interaction log of a lead.

Activities are created and deleted, never updated. Contact-type
activities stamp the lead's last_contacted_at.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from core.models import Activity, ActivityCreate, ActivityType, CONTACT_ACTIVITY_TYPES
from core.store import EntityStore
from utils.actor_context import get_current_agency_id, get_current_member_id
from utils.timezone import now_utc

if TYPE_CHECKING:
    from core.services.lead_service import LeadService

logger = logging.getLogger(__name__)


def status_change_row(
    agency_id: UUID,
    lead_id: UUID,
    old_status: str,
    new_status: str,
    member_id: UUID | None,
    at: datetime,
) -> dict[str, Any]:
    """Row for the STATUS_CHANGE activity a lead transition appends."""
    return {
        "id": uuid4(),
        "agency_id": agency_id,
        "lead_id": lead_id,
        "member_id": member_id,
        "type": ActivityType.STATUS_CHANGE,
        "title": f"Status changed from {old_status} to {new_status}",
        "description": None,
        "outcome": None,
        "created_at": at,
    }


class ActivityService:
    """Service for lead activity log operations."""

    def __init__(self, store: EntityStore, leads: "LeadService"):
        self.store = store
        self.leads = leads

    def create(self, data: ActivityCreate) -> Activity:
        """
        Log an interaction with a lead.

        Args:
            data: Activity data (outcome only on CALL, checked by the model)

        Returns:
            Created activity

        Raises:
            NotFound: Lead does not exist in this agency
        """
        lead = self.leads.require(data.lead_id)
        now = now_utc()

        row = self.store.insert("activities", {
            "id": uuid4(),
            "agency_id": get_current_agency_id(),
            "lead_id": lead.id,
            "member_id": get_current_member_id(),
            "type": data.type,
            "title": data.title,
            "description": data.description,
            "outcome": data.outcome,
            "created_at": now,
        })
        activity = Activity.model_validate(row)

        contacted_at = now if data.type in CONTACT_ACTIVITY_TYPES else None
        if contacted_at is not None or data.next_follow_up_at is not None:
            self.leads.record_contact(
                lead.id,
                contacted_at=contacted_at,
                next_follow_up_at=data.next_follow_up_at,
            )

        logger.debug(f"Logged {activity.type.value} activity {activity.id} on lead {lead.id}")
        return activity

    def list_for_lead(self, lead_id: UUID, limit: int | None = None) -> list[Activity]:
        """Activities of a lead, newest first."""
        self.leads.require(lead_id)
        rows = self.store.find(
            "activities",
            {"agency_id": get_current_agency_id(), "lead_id": lead_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [Activity.model_validate(r) for r in rows]

    def delete(self, activity_id: UUID) -> bool:
        """
        Delete an activity.

        Returns:
            True if deleted, False if it did not exist in this agency.
        """
        row = self.store.get("activities", activity_id)
        if row is None or row["agency_id"] != get_current_agency_id():
            return False
        return self.store.delete("activities", activity_id)
