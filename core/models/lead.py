"""Lead domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from utils.timezone import to_utc


class LeadStatus(str, Enum):
    """Lead funnel status. CONVERTED and LOST are terminal."""

    NEW = "NEW"
    CONTACTED = "CONTACTED"
    QUALIFIED = "QUALIFIED"
    NEGOTIATING = "NEGOTIATING"
    CONVERTED = "CONVERTED"
    LOST = "LOST"


class Priority(str, Enum):
    """Priority shared by leads and tasks."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class PropertyType(str, Enum):
    """Kind of property the lead is looking for."""

    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    CONDO = "CONDO"
    TOWNHOUSE = "TOWNHOUSE"
    LAND = "LAND"
    COMMERCIAL = "COMMERCIAL"


class ListingType(str, Enum):
    """Sale or rental interest."""

    SALE = "SALE"
    RENT = "RENT"
    DAILY_RENT = "DAILY_RENT"


class LeadSource(str, Enum):
    """How the lead was acquired."""

    WEBSITE = "WEBSITE"
    REFERRAL = "REFERRAL"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    WALK_IN = "WALK_IN"
    PHONE_CALL = "PHONE_CALL"
    TELEGRAM = "TELEGRAM"
    OTHER = "OTHER"


class LeadCreate(BaseModel):
    """Data required to create a lead."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    phone: str = Field(..., min_length=1, max_length=50)
    email: EmailStr | None = None
    telegram: str | None = Field(None, max_length=100)
    whatsapp: str | None = Field(None, max_length=50)
    property_type: PropertyType | None = None
    listing_type: ListingType | None = None
    budget: Decimal | None = Field(None, ge=0)
    bedrooms: int | None = Field(None, ge=0)
    districts: list[str] = Field(default_factory=list)
    requirements: str | None = Field(None, max_length=5000)
    source: LeadSource = LeadSource.OTHER
    status: LeadStatus = LeadStatus.NEW
    priority: Priority = Priority.MEDIUM
    assigned_to_id: UUID | None = None
    next_follow_up_at: datetime | None = None
    notes: str | None = Field(None, max_length=10000)

    @field_validator("next_follow_up_at")
    @classmethod
    def follow_up_is_aware(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class LeadUpdate(BaseModel):
    """
    Data that can be updated on a lead. All fields optional.

    Status and assignee are absent: they change through transition()
    and assign() so that the graph check and notifications always run.
    """

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, min_length=1, max_length=50)
    email: EmailStr | None = None
    telegram: str | None = Field(None, max_length=100)
    whatsapp: str | None = Field(None, max_length=50)
    property_type: PropertyType | None = None
    listing_type: ListingType | None = None
    budget: Decimal | None = Field(None, ge=0)
    bedrooms: int | None = Field(None, ge=0)
    districts: list[str] | None = None
    requirements: str | None = Field(None, max_length=5000)
    source: LeadSource | None = None
    priority: Priority | None = None
    next_follow_up_at: datetime | None = None
    notes: str | None = Field(None, max_length=10000)

    @field_validator("next_follow_up_at")
    @classmethod
    def follow_up_is_aware(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class LeadFilter(BaseModel):
    """Lead query filter. All given criteria are ANDed."""

    status: LeadStatus | None = None
    priority: Priority | None = None
    source: LeadSource | None = None
    assigned_to_id: UUID | None = None
    search: str | None = Field(None, max_length=200)

    def summary(self) -> str:
        """Short slug of the active criteria, e.g. 'status-new_source-website'."""
        parts = []
        for name in ("status", "priority", "source"):
            value = getattr(self, name)
            if value is not None:
                parts.append(f"{name}-{value.value.lower()}")
        if self.assigned_to_id is not None:
            parts.append("assigned")
        if self.search:
            parts.append("search")
        return "_".join(parts)


class Lead(BaseModel):
    """Full lead entity as stored."""

    id: UUID
    agency_id: UUID
    first_name: str
    last_name: str
    phone: str
    phone_normalized: str
    email: str | None
    telegram: str | None
    whatsapp: str | None
    property_type: PropertyType | None
    listing_type: ListingType | None
    budget: Decimal | None
    bedrooms: int | None
    districts: list[str]
    requirements: str | None
    source: LeadSource
    status: LeadStatus
    priority: Priority
    assigned_to_id: UUID | None
    assigned_at: datetime | None
    last_contacted_at: datetime | None
    next_follow_up_at: datetime | None
    converted_at: datetime | None
    notes: str | None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_closed(self) -> bool:
        """Whether lead reached a terminal status."""
        return self.status in (LeadStatus.CONVERTED, LeadStatus.LOST)
