"""
Shared test fixtures and configuration.

Provides reusable fixtures for all test files including database instances,
wired services, a seeded roster, and the FastAPI test client.
"""

import os
import shutil
import tempfile
from datetime import date
from typing import Dict
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from medaltally.api.dependencies import reset_services
from medaltally.main import app
from medaltally.models import CategoryCreate, EventCreate, TeamCreate
from medaltally.services import Services, build_services
from medaltally.storage import get_database, reset_database


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def test_data_dir():
    """Provide a temporary directory for test data."""
    temp_dir = tempfile.mkdtemp(prefix="medaltally_test_")
    yield temp_dir

    # Cleanup
    if os.path.exists(temp_dir):
        try:
            shutil.rmtree(temp_dir)
        except PermissionError:
            pass  # Windows file locking, ignore


@pytest.fixture
def db_fixture(test_data_dir):
    """Provide a clean test database instance."""
    with patch.dict(os.environ, {'DB_TYPE': 'sqlite', 'DATA_DIR': test_data_dir}, clear=False):
        reset_database()
        db = get_database()
        yield db
        reset_database()  # Close connection before cleanup


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def services(db_fixture) -> Services:
    """Provide services wired over the test database."""
    return build_services(db_fixture)


@pytest.fixture
def roster_ids(services) -> Dict[str, int]:
    """
    Seed four teams, two categories and three events.

    Returns:
        Name -> id mapping (teams: alpha..delta, categories: athletics,
        swimming, events: sprint, relay, freestyle)
    """
    roster = services.roster
    ids = {}
    for name, color in [("Alpha", "red"), ("Bravo", "blue"), ("Charlie", "green"), ("Delta", "gold")]:
        ids[name.lower()] = roster.create_team(TeamCreate(name=name, color=color)).id

    ids["athletics"] = roster.create_category(CategoryCreate(name="Athletics")).id
    ids["swimming"] = roster.create_category(CategoryCreate(name="Swimming")).id

    ids["sprint"] = roster.create_event(EventCreate(
        name="100m Sprint", category_id=ids["athletics"], event_date=date(2025, 3, 1)
    )).id
    ids["relay"] = roster.create_event(EventCreate(
        name="4x100m Relay", category_id=ids["athletics"], event_date=date(2025, 3, 2)
    )).id
    ids["freestyle"] = roster.create_event(EventCreate(
        name="50m Freestyle", category_id=ids["swimming"]
    )).id
    return ids


# =============================================================================
# FASTAPI TEST CLIENT FIXTURES
# =============================================================================

@pytest.fixture
def client(db_fixture):
    """Provide a synchronous test client bound to the test database."""
    reset_services()
    yield TestClient(app)
    reset_services()


@pytest.fixture
def api_roster(client) -> Dict[str, int]:
    """Seed the roster through the API. Same names as roster_ids."""
    ids = {}
    for name in ("Alpha", "Bravo", "Charlie", "Delta"):
        response = client.post("/api/teams", json={"name": name})
        assert response.status_code == 201
        ids[name.lower()] = response.json()["id"]

    response = client.post("/api/categories", json={"name": "Athletics"})
    ids["athletics"] = response.json()["id"]

    response = client.post("/api/events", json={
        "name": "100m Sprint", "categoryId": ids["athletics"], "eventDate": "2025-03-01"
    })
    assert response.status_code == 201
    ids["sprint"] = response.json()["id"]
    return ids
