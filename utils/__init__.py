"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, date_stamp
from utils.actor_context import (
    get_current_agency_id,
    get_current_member_id,
    set_actor,
    clear_actor,
    actor_context,
)
