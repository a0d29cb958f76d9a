"""Deal domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class DealStatus(str, Enum):
    """Deal progression. Declaration order is the forward order."""

    NEGOTIATION = "NEGOTIATION"
    CONTRACT_SIGNED = "CONTRACT_SIGNED"
    DEPOSIT_RECEIVED = "DEPOSIT_RECEIVED"
    PAYMENT_IN_PROGRESS = "PAYMENT_IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DealCreate(BaseModel):
    """Data required to open a deal for a lead."""

    lead_id: UUID
    deal_value: Decimal = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    assigned_to_id: UUID | None = None
    notes: str | None = Field(None, max_length=5000)


class Deal(BaseModel):
    """Full deal entity as stored."""

    id: UUID
    agency_id: UUID
    lead_id: UUID
    assigned_to_id: UUID | None
    status: DealStatus
    deal_value: Decimal
    currency: str
    notes: str | None
    closed_at: datetime | None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_closed(self) -> bool:
        return self.status in (DealStatus.COMPLETED, DealStatus.CANCELLED)
