"""Shared fixtures for Pet Alert Notifier tests."""

from typing import Iterable

import pytest

from pet_alerts.config.environment import EnvironmentConfig
from pet_alerts.domain.models import PreferenceRecord
from pet_alerts.logging.context import clear_log_context
from pet_alerts.normalization.service import build_listing_snapshot
from pet_alerts.persistence.database import close_database, get_session, init_database
from pet_alerts.persistence.repositories import PreferenceRepository


@pytest.fixture(autouse=True)
def reset_log_context():
    """Keep log context from leaking between tests."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def database(tmp_path):
    """Initialize a file-backed SQLite database for one test."""
    init_database(f"sqlite:///{tmp_path / 'pet_alerts.db'}")
    yield
    close_database()


@pytest.fixture
def make_listing():
    """Factory for ListingSnapshots; keyword arguments override the event payload."""

    def _make(**overrides):
        event = {
            "listing_id": "pet-1",
            "name": "Biscuit",
            "species": "Dog",
            "breed": "Beagle",
            "age": {"value": 2, "unit": "years"},
            "size": "Medium",
        }
        event.update(overrides)
        return build_listing_snapshot(event)

    return _make


@pytest.fixture
def make_preference():
    """Factory for PreferenceRecords with alerts enabled and every facet a wildcard."""

    def _make(user_id: str = "user-1", **overrides):
        fields = {
            "user_id": user_id,
            "email": f"{user_id}@example.com",
            "name": f"Adopter {user_id}",
            "wants_alerts": True,
        }
        fields.update(overrides)
        return PreferenceRecord(**fields)

    return _make


@pytest.fixture
def store_preferences(database):
    """Persist preference records into the test database."""

    def _store(records: Iterable[PreferenceRecord]) -> None:
        with get_session() as session:
            repo = PreferenceRepository(session)
            for record in records:
                repo.upsert(record)

    return _store


@pytest.fixture
def env_config():
    """SMTP settings for a STARTTLS server with authentication."""
    return EnvironmentConfig(
        smtp_host="smtp.example.org",
        smtp_port=587,
        smtp_user="alerts@example.org",
        smtp_pass="secret",
        smtp_sender_name="Pet Adoption Alerts",
    )
