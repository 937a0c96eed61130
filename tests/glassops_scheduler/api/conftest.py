"""Shared fixtures for API tests."""

import pytest
from datetime import datetime, timezone
from fastapi import Depends
from fastapi.testclient import TestClient
from unittest.mock import patch

from glassops_scheduler.api.main import create_app
from glassops_scheduler.api.deps import get_availability_resolver, get_slot_search_engine, get_timezone
from glassops_scheduler.availability import AvailabilityResolver
from glassops_scheduler.scheduler import SlotSearchEngine

# Slot searches are evaluated as of this instant
FROZEN_NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


# --- Test API Key Fixture ---
@pytest.fixture
def test_api_key():
    """Valid API key for testing."""
    return "test-api-key"


# --- Mock Settings Fixture ---
@pytest.fixture
def mock_settings(test_api_key):
    """Mock settings for API tests."""
    return {
        "database_url": "sqlite:///:memory:",
        "api_keys": [test_api_key],
        "timezone": "UTC",
        "default_search_days": 7,
        "collaborator_backend": "database",
        "workorder_api_base_url": "http://localhost:3001/api",
        "workorder_api_key": None,
        "log_level": "WARNING",
    }


@pytest.fixture
def headers(test_api_key):
    return {"api-key": test_api_key, "company-id": "company-a"}


# --- Test Client Fixture ---
@pytest.fixture
def client(mock_settings, technicians):
    """
    FastAPI TestClient over the in-memory database, with settings, timezone and
    the search clock pinned.
    """
    def override_slot_search_engine(resolver: AvailabilityResolver = Depends(get_availability_resolver)):
        return SlotSearchEngine(resolver, clock=lambda: FROZEN_NOW)

    with patch("glassops_scheduler.api.deps.get_settings", return_value=mock_settings), \
            patch("glassops_scheduler.api.routes.get_settings", return_value=mock_settings):
        app = create_app()
        app.dependency_overrides[get_timezone] = lambda: timezone.utc
        app.dependency_overrides[get_slot_search_engine] = override_slot_search_engine

        with TestClient(app) as test_client:
            yield test_client

        # Clean up dependency overrides after tests
        app.dependency_overrides = {}
