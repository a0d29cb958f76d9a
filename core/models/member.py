"""Team member domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class MemberRole(str, Enum):
    """Role within an agency team."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    SENIOR_AGENT = "SENIOR_AGENT"
    AGENT = "AGENT"
    COORDINATOR = "COORDINATOR"


# Roles allowed to take manual-override edges in the status graphs.
PRIVILEGED_ROLES = frozenset({MemberRole.OWNER, MemberRole.ADMIN, MemberRole.SENIOR_AGENT})


class MemberCreate(BaseModel):
    """Data required to add a member to the agency team."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    email: EmailStr | None = None
    role: MemberRole = MemberRole.AGENT
    telegram_chat_id: str | None = Field(None, max_length=100)


class Member(BaseModel):
    """Full member entity as stored."""

    id: UUID
    agency_id: UUID
    first_name: str
    last_name: str
    email: str | None
    role: MemberRole
    telegram_chat_id: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_privileged(self) -> bool:
        """Whether the member may take override edges."""
        return self.role in PRIVILEGED_ROLES
