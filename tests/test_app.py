"""Tests for the composition root."""

import inspect

from fastapi.testclient import TestClient

from app import build_services, create_app
from core.events import DealStatusChanged, LeadAssigned, LeadStatusChanged, TaskAssigned, TaskCompleted


class TestBuildServices:

    def test_all_domains_wired(self, services):
        assert set(services) == {
            "event_bus", "member", "lead", "task", "deal",
            "activity", "notification", "import", "export",
        }

    def test_notification_handlers_subscribed(self, services):
        bus = services["event_bus"]
        for event in (TaskAssigned, TaskCompleted, LeadAssigned, LeadStatusChanged, DealStatusChanged):
            assert bus.subscriber_count(event.__name__) == 1

    def test_channel_is_optional(self, store, config):
        services = build_services(store, config)
        assert services["notification"].channel is None


class TestCreateApp:

    def test_health_needs_no_identity(self, services):
        client = TestClient(create_app(services))

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert "X-Request-ID" in response.headers

    def test_service_routes_run_in_threadpool(self, services):
        app = create_app(services)

        api_routes = [r for r in app.routes if getattr(r, "path", "").startswith("/api")]

        assert api_routes
        for route in api_routes:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path

    def test_actor_context_reaches_threadpool(self, services, agency_id, owner):
        client = TestClient(create_app(services))

        response = client.post(
            "/api/actions",
            headers={"X-Agency-ID": str(agency_id), "X-Member-ID": str(owner.id)},
            json={"domain": "lead", "action": "create", "data": {"first_name": "Ana", "phone": "5550100000"}},
        )

        assert response.status_code == 200
        assert response.json()["data"]["agency_id"] == str(agency_id)
