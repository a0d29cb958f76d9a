"""Shared test fixtures for the CRM test suite."""

import pytest
from datetime import timedelta
from uuid import UUID

import clients.vault_client as vault_module
from app import build_services
from core.config import CRMConfig
from core.models import (
    LeadCreate,
    MemberCreate,
    MemberRole,
    TaskCreate,
)
from core.store import MemoryStore
from utils.actor_context import actor_context, clear_actor
from utils.timezone import now_utc


# =============================================================================
# TEST AGENCY CONSTANTS
# =============================================================================

# Primary test agency - use for single-tenant tests
TEST_AGENCY_ID = UUID("00000000-0000-0000-0000-0000000000a1")

# Secondary test agency - use for isolation tests
TEST_AGENCY_B_ID = UUID("00000000-0000-0000-0000-0000000000b2")

FRONTEND_URL = "https://crm.example.com"


# =============================================================================
# FAKE EXTERNAL CHANNEL
# =============================================================================


class RecordingChannel:
    """In-memory stand-in for TelegramClient."""

    name = "telegram"

    def __init__(self):
        self.enabled = True
        self.sent = []
        self.fail_with: Exception | None = None
        self.accept = True

    def send(self, recipient_handle: str, text: str, format: str = "HTML") -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"handle": recipient_handle, "text": text, "format": format})
        return self.accept


# =============================================================================
# CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure clean actor context before and after each test."""
    clear_actor()
    yield
    clear_actor()


@pytest.fixture(autouse=True)
def reset_vault():
    vault_module.reset_vault_cache()
    yield
    vault_module.reset_vault_cache()


@pytest.fixture
def agency_id() -> UUID:
    return TEST_AGENCY_ID


@pytest.fixture
def agency_b_id() -> UUID:
    return TEST_AGENCY_B_ID


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def config():
    return CRMConfig(frontend_url=FRONTEND_URL)


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def services(store, config, channel):
    return build_services(store, config, channel)


@pytest.fixture
def member_service(services):
    return services["member"]


@pytest.fixture
def lead_service(services):
    return services["lead"]


@pytest.fixture
def task_service(services):
    return services["task"]


@pytest.fixture
def deal_service(services):
    return services["deal"]


@pytest.fixture
def activity_service(services):
    return services["activity"]


@pytest.fixture
def notification_service(services):
    return services["notification"]


@pytest.fixture
def import_service(services):
    return services["import"]


@pytest.fixture
def export_service(services):
    return services["export"]


# =============================================================================
# MEMBER FIXTURES
# =============================================================================


def _create_member(member_service, agency_id, **fields):
    with actor_context(agency_id):
        return member_service.create(MemberCreate(**fields))


@pytest.fixture
def owner(member_service, agency_id):
    """Privileged member with a Telegram chat."""
    return _create_member(
        member_service, agency_id,
        first_name="Olga", last_name="Owner", role=MemberRole.OWNER, telegram_chat_id="1001",
    )


@pytest.fixture
def agent(member_service, agency_id):
    """Non-privileged member with a Telegram chat."""
    return _create_member(
        member_service, agency_id,
        first_name="Artem", last_name="Agent", role=MemberRole.AGENT, telegram_chat_id="2002",
    )


@pytest.fixture
def coordinator(member_service, agency_id):
    """Non-privileged member without any external channel."""
    return _create_member(
        member_service, agency_id,
        first_name="Cora", last_name="Coordinator", role=MemberRole.COORDINATOR,
    )


@pytest.fixture
def as_owner(agency_id, owner):
    with actor_context(agency_id, owner.id):
        yield owner


@pytest.fixture
def as_agent(agency_id, agent):
    with actor_context(agency_id, agent.id):
        yield agent


@pytest.fixture
def as_system(agency_id):
    """Agency context without an acting member (jobs, imports)."""
    with actor_context(agency_id):
        yield


# =============================================================================
# ENTITY FACTORIES
# =============================================================================


@pytest.fixture
def make_lead(lead_service):
    """Create a lead in the current context."""
    counter = iter(range(1000, 9999))

    def _make(**fields):
        fields.setdefault("first_name", "Lina")
        fields.setdefault("last_name", "Lead")
        fields.setdefault("phone", f"+1 555 010 {next(counter)}")
        return lead_service.create(LeadCreate(**fields))

    return _make


@pytest.fixture
def make_task(task_service):
    """Create a task in the current context."""

    def _make(assigned_to_id, due_in=timedelta(days=3), **fields):
        fields.setdefault("title", "Call back about the 2BR")
        return task_service.create(TaskCreate(
            assigned_to_id=assigned_to_id,
            due_date=now_utc() + due_in,
            **fields,
        ))

    return _make
