"""Propagate the acting member and their agency through the call stack."""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import UUID

_current_agency_id: ContextVar[UUID | None] = ContextVar("current_agency_id", default=None)
_current_member_id: ContextVar[UUID | None] = ContextVar("current_member_id", default=None)


def get_current_agency_id() -> UUID:
    """
    Get the agency (tenant) of the current request.

    Raises RuntimeError if no actor context is set. Agency-scoped code
    running outside a request is a bug, not an empty result.
    """
    agency_id = _current_agency_id.get()
    if agency_id is None:
        raise RuntimeError(
            "No actor context set. This usually means you're calling "
            "agency-scoped code outside of an authenticated request."
        )
    return agency_id


def get_current_member_id() -> UUID | None:
    """Get the acting member, or None when the system (scanner, import job) acts."""
    return _current_member_id.get()


def set_actor(agency_id: UUID, member_id: UUID | None = None) -> None:
    """
    Set the current agency and acting member.

    Called by the API middleware after the upstream gateway identified the caller.
    """
    _current_agency_id.set(agency_id)
    _current_member_id.set(member_id)


def clear_actor() -> None:
    """
    Clear actor context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_agency_id.set(None)
    _current_member_id.set(None)


@contextmanager
def actor_context(agency_id: UUID, member_id: UUID | None = None):
    """
    Context manager for temporarily acting as a member of an agency.

    Useful for tests, the CSV importer run from a job, and the scanner,
    which acts per agency without a member.

    Example:
        with actor_context(agency_id, member_id):
            lead_service.transition(lead_id, LeadStatus.CONTACTED)
    """
    previous = (_current_agency_id.get(), _current_member_id.get())
    set_actor(agency_id, member_id)
    try:
        yield
    finally:
        _current_agency_id.set(previous[0])
        _current_member_id.set(previous[1])
