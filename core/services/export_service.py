"""CSV export of leads. Read-only: nothing is mutated."""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from core.models import Lead, LeadFilter
from core.services.lead_service import LeadService
from core.services.member_service import MemberService
from utils.timezone import date_stamp

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "FirstName", "LastName", "Phone", "Email", "Telegram", "WhatsApp",
    "PropertyType", "ListingType", "Budget", "Bedrooms", "Districts",
    "Requirements", "Source", "Status", "Priority", "AssignedTo", "Notes",
    "CreatedAt",
]


@dataclass(frozen=True)
class LeadExport:
    csv: str
    filename: str


def export_filename(lead_filter: LeadFilter, at: datetime | None = None) -> str:
    """'leads-export-2026-10-18.csv', with the filter summary appended when filtered."""
    summary = lead_filter.summary()
    suffix = f"-{summary}" if summary else ""
    return f"leads-export-{date_stamp(at)}{suffix}.csv"


class ExportService:
    """CSV lead exporter."""

    def __init__(self, leads: LeadService, members: MemberService):
        self.leads = leads
        self.members = members

    def export_leads(self, lead_filter: LeadFilter | None = None) -> LeadExport:
        """
        Serialise every lead matching the filter.

        Args:
            lead_filter: Criteria, ANDed (all leads when None)

        Returns:
            LeadExport with CSV text (header plus one row per lead) and a
            download filename
        """
        lead_filter = lead_filter or LeadFilter()
        leads = self.leads.find(lead_filter)

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        names: dict[UUID, str] = {}
        for lead in leads:
            writer.writerow(self._row(lead, names))

        logger.info(f"Exported {len(leads)} leads")
        return LeadExport(csv=buffer.getvalue(), filename=export_filename(lead_filter))

    def _row(self, lead: Lead, names: dict[UUID, str]) -> dict[str, str]:
        return {
            "FirstName": lead.first_name,
            "LastName": lead.last_name,
            "Phone": lead.phone,
            "Email": lead.email or "",
            "Telegram": lead.telegram or "",
            "WhatsApp": lead.whatsapp or "",
            "PropertyType": lead.property_type.value if lead.property_type else "",
            "ListingType": lead.listing_type.value if lead.listing_type else "",
            "Budget": str(lead.budget) if lead.budget is not None else "",
            "Bedrooms": str(lead.bedrooms) if lead.bedrooms is not None else "",
            "Districts": ", ".join(lead.districts),
            "Requirements": lead.requirements or "",
            "Source": lead.source.value,
            "Status": lead.status.value,
            "Priority": lead.priority.value,
            "AssignedTo": self._assignee_name(lead.assigned_to_id, names),
            "Notes": lead.notes or "",
            "CreatedAt": lead.created_at.isoformat(),
        }

    def _assignee_name(self, member_id: UUID | None, names: dict[UUID, str]) -> str:
        if member_id is None:
            return ""
        if member_id not in names:
            member = self.members.get_by_id(member_id)
            names[member_id] = member.full_name if member is not None else ""
        return names[member_id]
