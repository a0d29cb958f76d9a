"""Tests for CRM domain events."""

from dataclasses import FrozenInstanceError
from datetime import timezone
from uuid import uuid4

import pytest

from core.events import (
    CRMEvent,
    DealStatusChanged,
    LeadAssigned,
    LeadEvent,
    LeadStatusChanged,
    TaskAssigned,
    TaskCompleted,
    TaskEvent,
)


class TestEventCreation:

    def test_task_assigned_carries_task_and_actor(self):
        task, actor_id = object(), uuid4()
        event = TaskAssigned.create(task, actor_id=actor_id)
        assert event.task is task
        assert event.actor_id == actor_id

    def test_status_change_carries_old_status(self):
        lead = object()
        event = LeadStatusChanged.create(lead, old_status="NEW")
        assert event.lead is lead
        assert event.old_status == "NEW"
        assert event.actor_id is None

    def test_deal_status_changed(self):
        event = DealStatusChanged.create(object(), old_status="NEGOTIATION")
        assert event.old_status == "NEGOTIATION"

    def test_event_ids_are_unique(self):
        assert TaskCompleted.create(object()).event_id != TaskCompleted.create(object()).event_id

    def test_occurred_at_is_utc(self):
        assert LeadAssigned.create(object()).occurred_at.tzinfo == timezone.utc


class TestEventHierarchy:

    def test_categories(self):
        assert isinstance(TaskCompleted.create(object()), TaskEvent)
        assert isinstance(LeadAssigned.create(object()), LeadEvent)
        assert isinstance(DealStatusChanged.create(object(), "NEGOTIATION"), CRMEvent)


class TestImmutability:

    def test_events_are_frozen(self):
        event = TaskAssigned.create(object())
        with pytest.raises(FrozenInstanceError):
            event.task = None
