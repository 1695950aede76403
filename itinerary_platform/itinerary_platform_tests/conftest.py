"""
Shared fixtures for gateway tests.

The app runs against a throwaway SQLite file so the full startup path
(config validation, connect + ping, schema creation) is exercised.
"""
import pytest
from fastapi.testclient import TestClient

from itinerary_platform.itinerary_platform.gateway_service.config import Settings
from itinerary_platform.itinerary_platform.gateway_service.main import create_app

UPSTREAM_URL = "http://planner.test/run"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'gateway.db'}",
        DB_CONNECT_RETRY_DELAY=0,
        HEALTH_CHECK_TIMEOUT=1.0,
        ITINERARY_SERVICE_URL=UPSTREAM_URL,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
