"""Tests for the lead, task and deal status graphs."""

from uuid import uuid4

import pytest

from core.errors import InvalidTransition, Unauthorized
from core.models import DealStatus, LeadStatus, Member, MemberRole, TaskStatus
from core.transitions import DEAL_GRAPH, LEAD_GRAPH, TASK_GRAPH
from utils.timezone import now_utc


def _member(role: MemberRole) -> Member:
    now = now_utc()
    return Member(
        id=uuid4(), agency_id=uuid4(), first_name="Test", last_name="Member",
        email=None, role=role, telegram_chat_id=None, is_active=True,
        created_at=now, updated_at=now,
    )


class TestLeadGraph:

    @pytest.mark.parametrize("current,target", [
        (LeadStatus.NEW, LeadStatus.CONTACTED),
        (LeadStatus.CONTACTED, LeadStatus.QUALIFIED),
        (LeadStatus.QUALIFIED, LeadStatus.NEGOTIATING),
        (LeadStatus.NEGOTIATING, LeadStatus.CONVERTED),
        (LeadStatus.NEGOTIATING, LeadStatus.LOST),
    ])
    def test_forward_edges_open_to_any_actor(self, current, target):
        LEAD_GRAPH.check(uuid4(), current, target, _member(MemberRole.AGENT))

    def test_converted_to_contacted_rejected(self):
        with pytest.raises(InvalidTransition) as exc:
            LEAD_GRAPH.check(uuid4(), LeadStatus.CONVERTED, LeadStatus.CONTACTED, None)
        assert exc.value.current == "CONVERTED"
        assert exc.value.target == "CONTACTED"

    def test_skipping_a_step_is_invalid(self):
        with pytest.raises(InvalidTransition):
            LEAD_GRAPH.check(uuid4(), LeadStatus.CONTACTED, LeadStatus.NEGOTIATING, None)

    @pytest.mark.parametrize("role", [MemberRole.OWNER, MemberRole.ADMIN, MemberRole.SENIOR_AGENT])
    def test_privileged_override_from_new(self, role):
        LEAD_GRAPH.check(uuid4(), LeadStatus.NEW, LeadStatus.CONVERTED, _member(role))

    @pytest.mark.parametrize("role", [MemberRole.AGENT, MemberRole.COORDINATOR])
    def test_override_unauthorized_for_other_roles(self, role):
        with pytest.raises(Unauthorized, match=role.value):
            LEAD_GRAPH.check(uuid4(), LeadStatus.NEW, LeadStatus.QUALIFIED, _member(role))

    def test_override_unauthorized_for_system_actor(self):
        with pytest.raises(Unauthorized, match="system"):
            LEAD_GRAPH.check(uuid4(), LeadStatus.NEW, LeadStatus.LOST, None)

    def test_override_only_from_new(self):
        """Privilege does not open edges out of other statuses."""
        with pytest.raises(InvalidTransition):
            LEAD_GRAPH.check(
                uuid4(), LeadStatus.CONTACTED, LeadStatus.CONVERTED, _member(MemberRole.OWNER)
            )

    def test_terminal_statuses(self):
        assert LEAD_GRAPH.is_terminal(LeadStatus.CONVERTED)
        assert LEAD_GRAPH.is_terminal(LeadStatus.LOST)
        assert not LEAD_GRAPH.is_terminal(LeadStatus.NEW)

    def test_allowed_includes_overrides_for_privileged(self):
        assert LEAD_GRAPH.allowed(LeadStatus.NEW) == {LeadStatus.CONTACTED}
        assert LeadStatus.CONVERTED in LEAD_GRAPH.allowed(LeadStatus.NEW, _member(MemberRole.ADMIN))

    @pytest.mark.parametrize("role", list(MemberRole))
    def test_check_agrees_with_allowed(self, role):
        actor = _member(role)
        allowed = LEAD_GRAPH.allowed(LeadStatus.NEW, actor)

        for target in LeadStatus:
            if target in allowed:
                LEAD_GRAPH.check(uuid4(), LeadStatus.NEW, target, actor)
            else:
                with pytest.raises((InvalidTransition, Unauthorized)):
                    LEAD_GRAPH.check(uuid4(), LeadStatus.NEW, target, actor)


class TestTaskGraph:

    @pytest.mark.parametrize("current", [TaskStatus.PENDING, TaskStatus.IN_PROGRESS])
    @pytest.mark.parametrize("target", [
        TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED,
    ])
    def test_open_statuses_reach_all_targets(self, current, target):
        TASK_GRAPH.check(uuid4(), current, target, None)

    @pytest.mark.parametrize("current", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    def test_closed_tasks_are_terminal(self, current):
        assert TASK_GRAPH.is_terminal(current)
        with pytest.raises(InvalidTransition):
            TASK_GRAPH.check(uuid4(), current, TaskStatus.IN_PROGRESS, None)

    def test_cannot_return_to_pending(self):
        with pytest.raises(InvalidTransition):
            TASK_GRAPH.check(uuid4(), TaskStatus.IN_PROGRESS, TaskStatus.PENDING, None)


class TestDealGraph:

    def test_forward_jumps_allowed(self):
        DEAL_GRAPH.check(uuid4(), DealStatus.NEGOTIATION, DealStatus.DEPOSIT_RECEIVED, None)
        DEAL_GRAPH.check(uuid4(), DealStatus.CONTRACT_SIGNED, DealStatus.COMPLETED, None)

    def test_backward_rejected(self):
        with pytest.raises(InvalidTransition):
            DEAL_GRAPH.check(uuid4(), DealStatus.DEPOSIT_RECEIVED, DealStatus.CONTRACT_SIGNED, None)

    @pytest.mark.parametrize("current", [
        DealStatus.NEGOTIATION, DealStatus.CONTRACT_SIGNED,
        DealStatus.DEPOSIT_RECEIVED, DealStatus.PAYMENT_IN_PROGRESS,
    ])
    def test_cancel_from_any_open_status(self, current):
        DEAL_GRAPH.check(uuid4(), current, DealStatus.CANCELLED, None)

    @pytest.mark.parametrize("current", [DealStatus.COMPLETED, DealStatus.CANCELLED])
    def test_terminal(self, current):
        assert DEAL_GRAPH.is_terminal(current)
        with pytest.raises(InvalidTransition):
            DEAL_GRAPH.check(uuid4(), current, DealStatus.CANCELLED, None)

    def test_same_status_rejected(self):
        with pytest.raises(InvalidTransition):
            DEAL_GRAPH.check(uuid4(), DealStatus.NEGOTIATION, DealStatus.NEGOTIATION, None)
