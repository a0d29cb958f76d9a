"""
CSV bulk import of leads.

Rows are processed in file order, each as an independent unit: a bad row is
reported and the batch carries on. Duplicates are matched on the normalised
phone number and resolved by a DuplicatePolicy.

Expected header (case and spacing insensitive):
    FirstName,LastName,Phone,Email,Telegram,WhatsApp,PropertyType,ListingType,
    Budget,Bedrooms,Districts,Requirements,Source,Status,Priority,Notes
"""

import csv
import io
import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

import pydantic
from pydantic import BaseModel, Field

from core.errors import CRMError, ValidationError
from core.models import (
    Lead,
    LeadCreate,
    LeadSource,
    LeadStatus,
    LeadUpdate,
    ListingType,
    Priority,
    PropertyType,
)
from core.services.lead_service import LeadService, normalize_phone
from core.services.member_service import MemberService

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("firstname", "lastname", "phone")

# Normalised header -> (LeadCreate field, display name)
_COLUMNS = {
    "firstname": ("first_name", "FirstName"),
    "lastname": ("last_name", "LastName"),
    "phone": ("phone", "Phone"),
    "email": ("email", "Email"),
    "telegram": ("telegram", "Telegram"),
    "whatsapp": ("whatsapp", "WhatsApp"),
    "propertytype": ("property_type", "PropertyType"),
    "listingtype": ("listing_type", "ListingType"),
    "budget": ("budget", "Budget"),
    "bedrooms": ("bedrooms", "Bedrooms"),
    "districts": ("districts", "Districts"),
    "requirements": ("requirements", "Requirements"),
    "source": ("source", "Source"),
    "status": ("status", "Status"),
    "priority": ("priority", "Priority"),
    "notes": ("notes", "Notes"),
}

_ENUM_COLUMNS = {
    "propertytype": PropertyType,
    "listingtype": ListingType,
    "source": LeadSource,
    "status": LeadStatus,
    "priority": Priority,
}

_DISPLAY_NAMES = {field: display for field, display in _COLUMNS.values()}


class DuplicatePolicy(str, Enum):
    """What to do with a row whose phone matches an existing lead."""

    SKIP = "skip"  # Leave the existing lead untouched
    UPDATE = "update"  # Overwrite its mutable fields with the row's non-empty values
    ERROR = "error"  # Report the row as failed


class ImportRowError(BaseModel):
    row: int
    data: dict[str, str]
    error: str


class ImportResult(BaseModel):
    """Outcome of one import call."""

    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[ImportRowError] = Field(default_factory=list)
    imported: list[Lead] = Field(default_factory=list)


def _normalize_header(header: str | None) -> str:
    return "".join((header or "").lstrip("\ufeff").split()).lower()


def _parse_enum(enum_cls: type[Enum], raw: str, column: str) -> Enum:
    key = raw.strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return enum_cls(key)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {column} '{raw}'. Allowed: {allowed}") from None


def _parse_budget(raw: str) -> Decimal:
    try:
        value = Decimal(raw.replace(",", "").replace(" ", ""))
    except InvalidOperation:
        raise ValidationError(f"Invalid Budget '{raw}': not a number") from None
    if not value.is_finite() or value < 0:
        raise ValidationError(f"Invalid Budget '{raw}': must be a non-negative number")
    return value


def _parse_bedrooms(raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValidationError(f"Invalid Bedrooms '{raw}': not a whole number") from None
    if value < 0:
        raise ValidationError(f"Invalid Bedrooms '{raw}': must not be negative")
    return value


def _parse_row(row: dict[str, str]) -> dict[str, Any]:
    """
    Convert one normalised CSV row into LeadCreate field values.

    Empty cells are omitted so defaults (and, on update, existing values)
    apply.

    Raises:
        ValidationError: Missing required value or unparseable cell
    """
    missing = [_COLUMNS[c][1] for c in REQUIRED_COLUMNS if not row.get(c)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    values: dict[str, Any] = {}
    for column, raw in row.items():
        if column not in _COLUMNS or not raw:
            continue
        field, display = _COLUMNS[column]
        if column in _ENUM_COLUMNS:
            values[field] = _parse_enum(_ENUM_COLUMNS[column], raw, display)
        elif column == "budget":
            values[field] = _parse_budget(raw)
        elif column == "bedrooms":
            values[field] = _parse_bedrooms(raw)
        elif column == "districts":
            values[field] = [d.strip() for d in raw.split(",") if d.strip()]
        else:
            values[field] = raw
    return values


def _describe(error: pydantic.ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = item["loc"][0] if item["loc"] else ""
        parts.append(f"Invalid {_DISPLAY_NAMES.get(field, field)}: {item['msg']}")
    return "; ".join(parts)


class ImportService:
    """CSV lead importer."""

    def __init__(self, leads: LeadService, members: MemberService):
        self.leads = leads
        self.members = members

    def import_leads(
        self,
        raw_csv: str,
        policy: DuplicatePolicy = DuplicatePolicy.SKIP,
        default_assigned_to: UUID | None = None,
    ) -> ImportResult:
        """
        Import leads from CSV text.

        Args:
            raw_csv: UTF-8 CSV text with a header row
            policy: Duplicate-phone resolution
            default_assigned_to: Assignee for newly created leads

        Returns:
            ImportResult. Error rows are numbered from 1 for the first
            data row, in file order.

        Raises:
            ValidationError: Header lacks a required column, or the
                default assignee cannot take assignments (nothing imported)
        """
        policy = DuplicatePolicy(policy)
        if default_assigned_to is not None:
            self.members.require_assignable(default_assigned_to)

        reader = csv.reader(io.StringIO(raw_csv.lstrip("\ufeff")))
        try:
            header = next(reader)
        except StopIteration:
            raise ValidationError("CSV is empty: a header row is required") from None

        columns = [_normalize_header(h) for h in header]
        missing = [_COLUMNS[c][1] for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise ValidationError(f"CSV header is missing required columns: {', '.join(missing)}")

        result = ImportResult()
        row_number = 0
        for cells in reader:
            if not any(cell.strip() for cell in cells):
                continue
            row_number += 1
            row = {
                column: (cells[i].strip() if i < len(cells) else "")
                for i, column in enumerate(columns)
                if column
            }
            self._import_row(row_number, row, policy, default_assigned_to, result)

        logger.info(
            f"Lead import ({policy.value}): {result.success} imported, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    def _import_row(
        self,
        row_number: int,
        row: dict[str, str],
        policy: DuplicatePolicy,
        default_assigned_to: UUID | None,
        result: ImportResult,
    ) -> None:
        """Process one row and record its outcome. Never raises."""
        try:
            values = _parse_row(row)
            existing = self.leads.find_by_phone(normalize_phone(values["phone"]))

            if existing is None:
                if default_assigned_to is not None:
                    values["assigned_to_id"] = default_assigned_to
                lead = self.leads.create(LeadCreate(**values))
            elif policy == DuplicatePolicy.SKIP:
                result.skipped += 1
                return
            elif policy == DuplicatePolicy.ERROR:
                raise ValidationError(f"Duplicate phone number: {row.get('phone')}")
            else:
                # Status is left to the state machine; phone is the match key
                values.pop("status", None)
                values.pop("phone", None)
                lead = self.leads.update(existing.id, LeadUpdate(**values))

        except CRMError as e:
            self._fail(result, row_number, row, str(e))
            return
        except pydantic.ValidationError as e:
            self._fail(result, row_number, row, _describe(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected error importing row {row_number}")
            self._fail(result, row_number, row, f"Unexpected error: {e}")
            return

        result.success += 1
        result.imported.append(lead)

    def _fail(self, result: ImportResult, row_number: int, row: dict[str, str], error: str):
        result.failed += 1
        result.errors.append(ImportRowError(row=row_number, data=row, error=error))
