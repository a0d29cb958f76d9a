"""
Lead service for the sales funnel.

Handles the lead lifecycle: create, update, assign, status transitions and
bulk operations. Status changes go through LEAD_GRAPH; every write is
conditioned on the version that was read, so two concurrent changes can
never both apply from the same stale status.
"""

import logging
import re
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from core.errors import ConcurrentModification, CRMError, NotFound, ValidationError
from core.event_bus import EventBus
from core.events import LeadAssigned, LeadStatusChanged
from core.models import Lead, LeadCreate, LeadFilter, LeadStatus, LeadUpdate
from core.services.activity_service import status_change_row
from core.services.member_service import MemberService
from core.store import EntityStore
from core.transitions import LEAD_GRAPH
from utils.actor_context import get_current_agency_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {
    "first_name", "last_name", "phone", "email", "telegram", "whatsapp",
    "property_type", "listing_type", "budget", "bedrooms", "districts",
    "requirements", "source", "priority", "next_follow_up_at", "notes",
}

_MIN_PHONE_DIGITS = 7
_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str) -> str:
    """
    Canonical digits of a phone number, the dedup key for leads.

    '+1 (555) 010-2030' and '15550102030' normalise to the same key.

    Raises:
        ValidationError: Fewer than 7 digits remain
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) < _MIN_PHONE_DIGITS:
        raise ValidationError(f"Invalid phone number: '{phone}'")
    return digits


class BulkOperationError(BaseModel):
    lead_id: UUID
    error: str


class BulkOperationResult(BaseModel):
    """Per-id outcome of a bulk lead operation."""

    success: int = 0
    failed: int = 0
    errors: list[BulkOperationError] = Field(default_factory=list)


class LeadService:
    """Service for lead operations."""

    def __init__(self, store: EntityStore, members: MemberService, event_bus: EventBus):
        self.store = store
        self.members = members
        self.event_bus = event_bus

    def create(self, data: LeadCreate) -> Lead:
        """
        Create a new lead.

        Args:
            data: Lead creation data

        Returns:
            Created lead

        Raises:
            ValidationError: Phone invalid or already used by another lead,
                or assignee not assignable
        """
        phone_normalized = normalize_phone(data.phone)
        if self.find_by_phone(phone_normalized) is not None:
            raise ValidationError(f"Lead with phone {data.phone} already exists")

        if data.assigned_to_id is not None:
            self.members.require_assignable(data.assigned_to_id)

        now = now_utc()
        row = self.store.insert("leads", {
            "id": uuid4(),
            "agency_id": get_current_agency_id(),
            "first_name": data.first_name,
            "last_name": data.last_name,
            "phone": data.phone,
            "phone_normalized": phone_normalized,
            "email": data.email,
            "telegram": data.telegram,
            "whatsapp": data.whatsapp,
            "property_type": data.property_type,
            "listing_type": data.listing_type,
            "budget": data.budget,
            "bedrooms": data.bedrooms,
            "districts": list(data.districts),
            "requirements": data.requirements,
            "source": data.source,
            "status": data.status,
            "priority": data.priority,
            "assigned_to_id": data.assigned_to_id,
            "assigned_at": now if data.assigned_to_id else None,
            "last_contacted_at": None,
            "next_follow_up_at": data.next_follow_up_at,
            "converted_at": now if data.status == LeadStatus.CONVERTED else None,
            "notes": data.notes,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        })
        lead = Lead.model_validate(row)
        logger.info(f"Created lead {lead.id} ({lead.source.value})")

        if lead.assigned_to_id is not None:
            self.event_bus.publish(LeadAssigned.create(lead, actor_id=self._actor_id()))

        return lead

    def get_by_id(self, lead_id: UUID) -> Lead | None:
        """
        Get lead by ID within the current agency.

        Returns:
            Lead if found, None otherwise.
        """
        row = self.store.get("leads", lead_id)
        if row is None or row["agency_id"] != get_current_agency_id():
            return None
        return Lead.model_validate(row)

    def require(self, lead_id: UUID) -> Lead:
        """Get lead by ID or raise NotFound."""
        lead = self.get_by_id(lead_id)
        if lead is None:
            raise NotFound("lead", lead_id)
        return lead

    def find_by_phone(self, phone_normalized: str) -> Lead | None:
        """Lead with this normalised phone in the current agency, if any."""
        row = self.store.find_one("leads", {
            "agency_id": get_current_agency_id(),
            "phone_normalized": phone_normalized,
        })
        return Lead.model_validate(row) if row is not None else None

    def update(self, lead_id: UUID, data: LeadUpdate) -> Lead:
        """
        Update lead fields.

        Args:
            lead_id: Lead UUID
            data: Fields to update (None means unchanged)

        Returns:
            Updated lead

        Raises:
            NotFound: Lead does not exist
            ValidationError: New phone invalid or taken
            ConcurrentModification: Lead changed since it was read
        """
        current = self.require(lead_id)

        updates = data.model_dump(exclude_none=True)
        for field in updates:
            if field not in _UPDATABLE_COLUMNS:
                logger.warning(f"Attempted to update unknown field '{field}' on lead {lead_id}")

        valid_updates = {k: v for k, v in updates.items() if k in _UPDATABLE_COLUMNS}
        if not valid_updates:
            return current

        if "phone" in valid_updates:
            phone_normalized = normalize_phone(valid_updates["phone"])
            other = self.find_by_phone(phone_normalized)
            if other is not None and other.id != current.id:
                raise ValidationError(f"Lead with phone {valid_updates['phone']} already exists")
            valid_updates["phone_normalized"] = phone_normalized

        return self._write(current, valid_updates)

    def assign(self, lead_id: UUID, member_id: UUID) -> Lead:
        """
        Assign a lead to a member and notify them.

        Re-assigning to the current assignee is a no-op.

        Raises:
            NotFound: Lead or member does not exist
            ValidationError: Member is inactive
            ConcurrentModification: Lead changed since it was read
        """
        current = self.require(lead_id)
        self.members.require_assignable(member_id)

        if current.assigned_to_id == member_id:
            return current

        updated = self._write(current, {"assigned_to_id": member_id, "assigned_at": now_utc()})
        logger.info(f"Assigned lead {lead_id} to member {member_id}")

        self.event_bus.publish(LeadAssigned.create(updated, actor_id=self._actor_id()))
        return updated

    def transition(self, lead_id: UUID, target: LeadStatus) -> Lead:
        """
        Move a lead along its status graph.

        Appends a STATUS_CHANGE activity and notifies the assignee.
        Stamps converted_at on entering CONVERTED.

        Args:
            lead_id: Lead UUID
            target: Requested status

        Returns:
            Updated lead

        Raises:
            NotFound: Lead does not exist
            InvalidTransition: Edge is not in the lead graph
            Unauthorized: Override edge taken by a non-privileged actor
            ConcurrentModification: Lead changed since it was read
        """
        current = self.require(lead_id)
        actor = self.members.current_actor()
        LEAD_GRAPH.check(lead_id, current.status, target, actor)

        now = now_utc()
        changes: dict[str, Any] = {"status": target}
        if target == LeadStatus.CONVERTED:
            changes["converted_at"] = now

        # Activity first: a failed insert leaves the lead untouched, and a
        # lost status write takes the activity back out.
        actor_id = actor.id if actor is not None else None
        activity = self.store.insert("activities", status_change_row(
            agency_id=current.agency_id,
            lead_id=current.id,
            old_status=current.status.value,
            new_status=target.value,
            member_id=actor_id,
            at=now,
        ))
        try:
            updated = self._write(current, changes)
        except Exception:
            self.store.delete("activities", activity["id"])
            raise
        logger.info(f"Lead {lead_id}: {current.status.value} -> {target.value}")

        self.event_bus.publish(
            LeadStatusChanged.create(updated, old_status=current.status.value, actor_id=actor_id)
        )
        return updated

    def record_contact(
        self,
        lead_id: UUID,
        contacted_at: datetime | None = None,
        next_follow_up_at: datetime | None = None,
    ) -> Lead:
        """Stamp last_contacted_at and/or next_follow_up_at from a logged activity."""
        current = self.require(lead_id)
        changes = {}
        if contacted_at is not None:
            changes["last_contacted_at"] = contacted_at
        if next_follow_up_at is not None:
            changes["next_follow_up_at"] = next_follow_up_at
        if not changes:
            return current
        return self._write(current, changes)

    def find(
        self,
        lead_filter: LeadFilter | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Lead]:
        """
        List leads matching a filter, newest first.

        Filter criteria are ANDed. `search` matches name, phone and email,
        case-insensitively.
        """
        lead_filter = lead_filter or LeadFilter()
        where: dict[str, Any] = {"agency_id": get_current_agency_id()}
        for name in ("status", "priority", "source", "assigned_to_id"):
            value = getattr(lead_filter, name)
            if value is not None:
                where[name] = value

        rows = self.store.find("leads", where, order_by="created_at", descending=True)
        leads = [Lead.model_validate(r) for r in rows]

        if lead_filter.search:
            leads = [lead for lead in leads if _matches_search(lead, lead_filter.search)]

        if limit is not None:
            return leads[offset:offset + limit]
        return leads[offset:]

    def delete(self, lead_id: UUID) -> bool:
        """
        Delete a lead.

        Returns:
            True if deleted, False if it did not exist in this agency.
        """
        if self.get_by_id(lead_id) is None:
            return False
        deleted = self.store.delete("leads", lead_id)
        if deleted:
            logger.info(f"Deleted lead {lead_id}")
        return deleted

    def bulk_assign(self, lead_ids: list[UUID], member_id: UUID) -> BulkOperationResult:
        """
        Assign many leads to one member. Each lead succeeds or fails alone.

        Raises:
            NotFound / ValidationError: Member missing or inactive (nothing applied)
        """
        self.members.require_assignable(member_id)
        result = BulkOperationResult()
        for lead_id in lead_ids:
            try:
                self.assign(lead_id, member_id)
                result.success += 1
            except CRMError as e:
                result.failed += 1
                result.errors.append(BulkOperationError(lead_id=lead_id, error=str(e)))
        logger.info(f"Bulk assign to {member_id}: {result.success} ok, {result.failed} failed")
        return result

    def bulk_delete(self, lead_ids: list[UUID]) -> BulkOperationResult:
        """Delete many leads. Missing ids are reported per id."""
        result = BulkOperationResult()
        for lead_id in lead_ids:
            if self.delete(lead_id):
                result.success += 1
            else:
                result.failed += 1
                result.errors.append(
                    BulkOperationError(lead_id=lead_id, error=str(NotFound("lead", lead_id)))
                )
        return result

    def stats(self) -> dict[str, int]:
        """Lead counts: total, per status (lowercase keys) and unassigned."""
        agency_id = get_current_agency_id()
        stats = {"total": self.store.count("leads", {"agency_id": agency_id})}
        for status in LeadStatus:
            stats[status.value.lower()] = self.store.count(
                "leads", {"agency_id": agency_id, "status": status}
            )
        stats["unassigned"] = self.store.count(
            "leads", {"agency_id": agency_id, "assigned_to_id": None}
        )
        return stats

    def _write(self, current: Lead, changes: dict[str, Any]) -> Lead:
        """Apply changes if the lead still has the version that was read."""
        changes = {**changes, "version": current.version + 1, "updated_at": now_utc()}
        row = self.store.update(
            "leads", current.id, changes, expected={"version": current.version}
        )
        if row is None:
            raise ConcurrentModification("lead", current.id)
        return Lead.model_validate(row)

    def _actor_id(self) -> UUID | None:
        actor = self.members.current_actor()
        return actor.id if actor is not None else None


def _matches_search(lead: Lead, search: str) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    haystack = " ".join(filter(None, [lead.full_name, lead.phone, lead.email])).lower()
    if needle in haystack:
        return True
    digits = _NON_DIGITS.sub("", needle)
    return bool(digits) and digits in lead.phone_normalized
