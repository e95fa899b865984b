"""End-to-end tests: listing event -> candidate selection -> rendered email.

Uses a real SQLite store seeded from YAML, the real template renderer and
email sender, and a fake SMTP connection that captures sent messages.
"""

import smtplib
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pet_alerts.config.models import AppConfig
from pet_alerts.notifications import EmailNotificationSender, SMTPClient
from pet_alerts.persistence import (
    ListingAlertRepository,
    PreferenceRepository,
    get_session,
    seed_preferences,
)
from pet_alerts.pipeline import CycleStatus, ListingAlertOrchestrator

FIXTURES = Path(__file__).parent.parent / "fixtures"

LAB_EVENT = {
    "_id": "64f1c0ffee",
    "name": "Maple",
    "species": "dog",
    "breed": "labrador retriever",
    "age": {"value": 18, "unit": "months"},
    "size": "Large",
}


class CapturingSMTP:
    """smtplib.SMTP stand-in; every connection appends to one shared outbox."""

    def __init__(self, refuse=()):
        self.outbox = []
        self.refuse = set(refuse)
        self._lock = threading.Lock()

    def __call__(self, host, port, **kwargs):
        connection = MagicMock()
        connection.send_message.side_effect = self._deliver
        return connection

    def _deliver(self, message):
        if message["To"] in self.refuse:
            raise smtplib.SMTPRecipientsRefused({message["To"]: (550, b"No such user")})
        with self._lock:
            self.outbox.append(message)

    @property
    def recipients(self):
        return sorted(message["To"] for message in self.outbox)


@pytest.fixture
def seeded(database):
    with get_session() as session:
        report = seed_preferences(session, FIXTURES / "preferences.yaml")
    assert report.ok
    return report


@pytest.fixture
def smtp():
    return CapturingSMTP()


@pytest.fixture
def orchestrator(env_config, smtp):
    config = AppConfig.model_validate(
        {"email": {"listing_url_template": "https://pets.example.org/pets/{listing_id}"}}
    )
    sender = EmailNotificationSender(
        env_config,
        email_config=config.email,
        smtp_client=SMTPClient(smtp_factory=smtp),
    )
    instance = ListingAlertOrchestrator.from_config(config, sender)
    instance.start()
    yield instance
    instance.shutdown(wait=True)


def publish(orchestrator, event):
    assert orchestrator.on_listing_created(event) is True
    assert orchestrator.wait_until_idle(timeout=10)
    return orchestrator.recent_results()[-1]


def test_matching_adopter_receives_rendered_email(seeded, orchestrator, smtp):
    result = publish(orchestrator, LAB_EVENT)

    assert result.status == CycleStatus.COMPLETED
    assert result.candidate_count == 1
    assert smtp.recipients == ["ada@example.com"]

    (message,) = smtp.outbox
    assert message["Subject"] == "New Pet Available for Adoption: Maple"
    text = message.get_body(preferencelist=("plain",)).get_content()
    html = message.get_body(preferencelist=("html",)).get_content()
    assert "Hello Ada," in text
    assert "Maple - labrador retriever, 18 months" in text
    assert "View the listing: https://pets.example.org/pets/64f1c0ffee" in text
    assert "<strong>Maple</strong>" in html


def test_disabled_and_mismatched_users_not_notified(seeded, orchestrator, smtp):
    cat_event = {**LAB_EVENT, "_id": "cat-1", "species": "Cat", "breed": None, "size": "Small"}

    result = publish(orchestrator, cat_event)

    # user-grace wants any cat; user-linus wants cats but has alerts off
    assert result.candidate_count == 1
    assert smtp.recipients == ["grace@example.com"]


def test_redelivered_event_does_not_notify_twice(seeded, orchestrator, smtp):
    first = publish(orchestrator, LAB_EVENT)
    second = publish(orchestrator, LAB_EVENT)

    assert first.delivered_count == 1
    assert second.duplicate_count == 1
    assert second.delivered_count == 0
    assert len(smtp.outbox) == 1

    with get_session() as session:
        assert ListingAlertRepository(session).get_recipients("64f1c0ffee") == ["user-ada"]


def test_preference_change_applies_to_next_listing(seeded, orchestrator, smtp):
    with get_session() as session:
        PreferenceRepository(session).update_preferences("user-ada", {"size": ["Small"]})

    result = publish(orchestrator, LAB_EVENT)

    assert result.candidate_count == 0
    assert smtp.outbox == []


def test_smtp_rejection_fails_only_that_recipient(seeded, env_config, make_preference, store_preferences):
    store_preferences([make_preference("user-zed", email="zed@example.com", species=["Dog"])])
    smtp = CapturingSMTP(refuse={"zed@example.com"})
    sender = EmailNotificationSender(env_config, smtp_client=SMTPClient(smtp_factory=smtp))
    orchestrator = ListingAlertOrchestrator.from_config(AppConfig(), sender)
    orchestrator.start()
    try:
        result = publish(orchestrator, LAB_EVENT)
    finally:
        orchestrator.shutdown(wait=True)

    assert result.status == CycleStatus.COMPLETED
    assert result.delivered_count == 1
    assert result.failed_count == 1
    (failed,) = [o for o in result.outcomes if o.failed]
    assert failed.user_id == "user-zed"
    assert failed.error_kind == "smtp"
    assert smtp.recipients == ["ada@example.com"]
