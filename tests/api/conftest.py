"""API test fixtures: TestClient over the full app with in-memory services."""

import pytest
from starlette.testclient import TestClient

from app import create_app


@pytest.fixture
def app(services):
    """FastAPI app with actor middleware, error handlers, and data/actions routes."""
    return create_app(services)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


def actor_headers(agency_id, member=None) -> dict:
    headers = {"X-Agency-ID": str(agency_id)}
    if member is not None:
        headers["X-Member-ID"] = str(member.id)
    return headers


@pytest.fixture
def owner_headers(agency_id, owner):
    return actor_headers(agency_id, owner)


@pytest.fixture
def agent_headers(agency_id, agent):
    return actor_headers(agency_id, agent)
