"""Tests for notification templates."""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from core.models import DealStatus, LeadStatus, NotificationType, RefKind
from core.templates import deep_link, render

FRONTEND = "https://crm.example.com/"


def _task(title="Call back"):
    return SimpleNamespace(title=title, due_date=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc))


class TestDeepLink:

    def test_builds_entity_url(self):
        task_id = uuid4()
        assert deep_link(FRONTEND, RefKind.TASK, task_id) == f"https://crm.example.com/crm/tasks/{task_id}"

    def test_none_kind_has_no_link(self):
        assert deep_link(FRONTEND, RefKind.NONE, None) is None


class TestRender:

    def test_task_overdue(self):
        task_id = uuid4()
        rendered = render(
            NotificationType.TASK_OVERDUE, "Artem", RefKind.TASK, task_id, FRONTEND, task=_task(),
        )
        assert rendered.title == "Overdue task"
        assert "01 Mar 2026 09:30 UTC" in rendered.message
        assert "<b>Task overdue!</b>" in rendered.external_text
        assert "Hello, Artem!" in rendered.external_text
        assert f"/crm/tasks/{task_id}" in rendered.external_text

    def test_external_text_escapes_html(self):
        rendered = render(
            NotificationType.TASK_ASSIGNED, "<Olga>", RefKind.TASK, uuid4(), FRONTEND,
            task=_task("Fix <b>roof</b> & windows"),
        )
        assert "&lt;Olga&gt;" in rendered.external_text
        assert "<b>roof</b>" not in rendered.external_text
        assert "&amp; windows" in rendered.external_text
        # In-app text stays raw
        assert "<b>roof</b>" in rendered.message

    def test_lead_status_change_uses_readable_labels(self):
        lead = SimpleNamespace(full_name="Lina Lead", phone="555", status=LeadStatus.NEGOTIATING)
        rendered = render(
            NotificationType.LEAD_STATUS_CHANGE, "Artem", RefKind.LEAD, uuid4(), FRONTEND,
            lead=lead, old_status="QUALIFIED",
        )
        assert "Qualified -> Negotiating" in rendered.message

    def test_deal_value_formatted(self):
        deal = SimpleNamespace(deal_value=Decimal("125000"), currency="USD", status=DealStatus.COMPLETED)
        rendered = render(
            NotificationType.DEAL_STATUS_CHANGE, "Olga", RefKind.DEAL, uuid4(), FRONTEND,
            deal=deal, old_status="PAYMENT_IN_PROGRESS",
        )
        assert "125,000 USD" in rendered.message
        assert "Open deal" in rendered.external_text

    def test_no_link_without_ref(self):
        lead = SimpleNamespace(full_name="Lina Lead", phone="555", status=LeadStatus.NEW)
        rendered = render(
            NotificationType.LEAD_ASSIGNED, "Artem", RefKind.NONE, None, FRONTEND, lead=lead,
        )
        assert "<a href" not in rendered.external_text

    def test_every_type_has_a_template(self):
        lead = SimpleNamespace(full_name="L", phone="1", status=LeadStatus.NEW)
        deal = SimpleNamespace(deal_value=Decimal("1"), currency="USD", status=DealStatus.NEGOTIATION)
        for event_type in NotificationType:
            render(
                event_type, "X", RefKind.NONE, None, FRONTEND,
                task=_task(), lead=lead, deal=deal, old_status="NEW",
            )

    @pytest.mark.parametrize("event_type", list(NotificationType))
    def test_renders_without_entities(self, event_type):
        rendered = render(event_type, "Artem", RefKind.NONE, None, FRONTEND)

        assert rendered.title
        assert rendered.message
        assert "Hello, Artem!" in rendered.external_text

    def test_fallback_wording(self):
        assigned = render(NotificationType.TASK_ASSIGNED, "X", RefKind.NONE, None, FRONTEND)
        changed = render(NotificationType.DEAL_STATUS_CHANGE, "X", RefKind.NONE, None, FRONTEND)

        assert assigned.message == "You were assigned a new task."
        assert changed.message == "A deal: status updated."

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            render("BOGUS", "X", RefKind.NONE, None, FRONTEND)
