"""
Deal service for the transaction pipeline.

A deal is opened from a lead, which converts the lead. Deals move strictly
forward through DEAL_GRAPH and can be cancelled from any open status.
"""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from core.errors import ConcurrentModification, CRMError, NotFound
from core.event_bus import EventBus
from core.events import DealStatusChanged
from core.models import Deal, DealCreate, DealStatus, LeadStatus
from core.services.lead_service import LeadService
from core.services.member_service import MemberService
from core.store import EntityStore
from core.transitions import DEAL_GRAPH, LEAD_GRAPH
from utils.actor_context import get_current_agency_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class DealService:
    """Service for deal operations."""

    def __init__(
        self,
        store: EntityStore,
        members: MemberService,
        leads: LeadService,
        event_bus: EventBus,
    ):
        self.store = store
        self.members = members
        self.leads = leads
        self.event_bus = event_bus

    def create(self, data: DealCreate) -> Deal:
        """
        Open a deal for a lead and convert the lead.

        The lead's move to CONVERTED is checked before the deal is written,
        so an illegal conversion leaves nothing behind.

        Args:
            data: Deal creation data. Assignee defaults to the lead's
                assignee, then to the acting member.

        Returns:
            Created deal in NEGOTIATION status

        Raises:
            NotFound: Lead or assignee does not exist
            InvalidTransition / Unauthorized: Lead cannot be converted
        """
        lead = self.leads.require(data.lead_id)
        actor = self.members.current_actor()
        if lead.status != LeadStatus.CONVERTED:
            LEAD_GRAPH.check(lead.id, lead.status, LeadStatus.CONVERTED, actor)

        assigned_to_id = data.assigned_to_id or lead.assigned_to_id
        if assigned_to_id is None and actor is not None:
            assigned_to_id = actor.id
        if data.assigned_to_id is not None:
            self.members.require_assignable(data.assigned_to_id)

        now = now_utc()
        row = self.store.insert("deals", {
            "id": uuid4(),
            "agency_id": get_current_agency_id(),
            "lead_id": lead.id,
            "assigned_to_id": assigned_to_id,
            "status": DealStatus.NEGOTIATION,
            "deal_value": data.deal_value,
            "currency": data.currency.upper(),
            "notes": data.notes,
            "closed_at": None,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        })
        deal = Deal.model_validate(row)

        if lead.status != LeadStatus.CONVERTED:
            try:
                self.leads.transition(lead.id, LeadStatus.CONVERTED)
            except CRMError:
                # Lead moved under us; take the deal back out
                self.store.delete("deals", deal.id)
                raise

        logger.info(f"Created deal {deal.id} for lead {lead.id}")
        return deal

    def get_by_id(self, deal_id: UUID) -> Deal | None:
        """
        Get deal by ID within the current agency.

        Returns:
            Deal if found, None otherwise.
        """
        row = self.store.get("deals", deal_id)
        if row is None or row["agency_id"] != get_current_agency_id():
            return None
        return Deal.model_validate(row)

    def require(self, deal_id: UUID) -> Deal:
        """Get deal by ID or raise NotFound."""
        deal = self.get_by_id(deal_id)
        if deal is None:
            raise NotFound("deal", deal_id)
        return deal

    def transition(self, deal_id: UUID, target: DealStatus) -> Deal:
        """
        Move a deal forward, or cancel it.

        Stamps closed_at on COMPLETED and CANCELLED and notifies the owner.

        Raises:
            NotFound: Deal does not exist
            InvalidTransition: Backward move or move out of a terminal status
            ConcurrentModification: Deal changed since it was read
        """
        current = self.require(deal_id)
        actor = self.members.current_actor()
        DEAL_GRAPH.check(deal_id, current.status, target, actor)

        changes: dict[str, Any] = {"status": target}
        if DEAL_GRAPH.is_terminal(target):
            changes["closed_at"] = now_utc()

        updated = self._write(current, changes)
        logger.info(f"Deal {deal_id}: {current.status.value} -> {target.value}")

        self.event_bus.publish(DealStatusChanged.create(
            updated,
            old_status=current.status.value,
            actor_id=actor.id if actor is not None else None,
        ))
        return updated

    def list_deals(
        self,
        status: DealStatus | None = None,
        lead_id: UUID | None = None,
        limit: int = 100,
    ) -> list[Deal]:
        """List deals in the current agency, newest first."""
        where: dict[str, Any] = {"agency_id": get_current_agency_id()}
        if status is not None:
            where["status"] = status
        if lead_id is not None:
            where["lead_id"] = lead_id
        rows = self.store.find("deals", where, order_by="created_at", descending=True, limit=limit)
        return [Deal.model_validate(r) for r in rows]

    def pipeline(self) -> dict[str, dict[str, Any]]:
        """
        Count and total value per deal status.

        Values are summed as-is; mixed currencies are not converted.
        """
        rows = self.store.find("deals", {"agency_id": get_current_agency_id()})
        summary = {s.value: {"count": 0, "total_value": Decimal("0")} for s in DealStatus}
        for row in rows:
            deal = Deal.model_validate(row)
            bucket = summary[deal.status.value]
            bucket["count"] += 1
            bucket["total_value"] += deal.deal_value
        return summary

    def _write(self, current: Deal, changes: dict[str, Any]) -> Deal:
        """Apply changes if the deal still has the version that was read."""
        changes = {**changes, "version": current.version + 1, "updated_at": now_utc()}
        row = self.store.update(
            "deals", current.id, changes, expected={"version": current.version}
        )
        if row is None:
            raise ConcurrentModification("deal", current.id)
        return Deal.model_validate(row)
