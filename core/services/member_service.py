"""
Member service for the agency team.

Members are assignees and notification recipients. Deactivation removes a
member from assignment but keeps everything they touched.
"""

import logging
from uuid import UUID, uuid4

from core.errors import NotFound, ValidationError
from core.models import Member, MemberCreate
from core.store import EntityStore
from utils.actor_context import get_current_agency_id, get_current_member_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class MemberService:
    """Service for team member operations."""

    def __init__(self, store: EntityStore):
        self.store = store

    def create(self, data: MemberCreate) -> Member:
        """
        Add a member to the current agency.

        Args:
            data: Member creation data

        Returns:
            Created, active member
        """
        now = now_utc()
        row = self.store.insert("members", {
            "id": uuid4(),
            "agency_id": get_current_agency_id(),
            "first_name": data.first_name,
            "last_name": data.last_name,
            "email": data.email,
            "role": data.role,
            "telegram_chat_id": data.telegram_chat_id,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        })
        member = Member.model_validate(row)
        logger.info(f"Created member {member.id} ({member.role.value})")
        return member

    def get_by_id(self, member_id: UUID) -> Member | None:
        """
        Get member by ID within the current agency.

        Returns:
            Member if found, None otherwise.
        """
        row = self.store.get("members", member_id)
        if row is None or row["agency_id"] != get_current_agency_id():
            return None
        return Member.model_validate(row)

    def require(self, member_id: UUID) -> Member:
        """Get member by ID or raise NotFound."""
        member = self.get_by_id(member_id)
        if member is None:
            raise NotFound("member", member_id)
        return member

    def require_assignable(self, member_id: UUID) -> Member:
        """
        Get a member that can take new assignments.

        Raises:
            NotFound: Member does not exist in this agency
            ValidationError: Member is deactivated
        """
        member = self.require(member_id)
        if not member.is_active:
            raise ValidationError(f"Member {member_id} is inactive and cannot be assigned")
        return member

    def current_actor(self) -> Member | None:
        """Member acting in the current context; None for system actors."""
        member_id = get_current_member_id()
        if member_id is None:
            return None
        return self.require(member_id)

    def list_all(self, include_inactive: bool = False) -> list[Member]:
        """List agency members, active only unless asked otherwise."""
        where = {"agency_id": get_current_agency_id()}
        if not include_inactive:
            where["is_active"] = True
        rows = self.store.find("members", where, order_by="created_at")
        return [Member.model_validate(r) for r in rows]

    def deactivate(self, member_id: UUID) -> Member:
        """
        Deactivate a member. Idempotent.

        Existing assignments stay in place; the member just stops being
        assignable.
        """
        current = self.require(member_id)
        if not current.is_active:
            return current

        row = self.store.update(
            "members", member_id,
            {"is_active": False, "updated_at": now_utc()},
        )
        if row is None:
            raise NotFound("member", member_id)

        logger.info(f"Deactivated member {member_id}")
        return Member.model_validate(row)
