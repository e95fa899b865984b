"""Unit tests for the SMTP client wrapper.

Tests the SMTPClient for:
- Connection handling (SMTP and SMTP_SSL)
- TLS/STARTTLS negotiation
- Authentication (with and without credentials)
- Socket timeouts
- Error handling and exceptions
- Recipient validation and sender address building
"""

import smtplib
from email.message import EmailMessage
from unittest.mock import MagicMock, Mock

import pytest

from pet_alerts.config.environment import EnvironmentConfig
from pet_alerts.notifications.models import (
    DispatchTimeout,
    InvalidRecipientError,
    SMTPDeliveryError,
)
from pet_alerts.notifications.smtp_client import (
    SMTPClient,
    build_sender_address,
    validate_recipient,
)


@pytest.fixture
def env_config_without_auth():
    """Environment config without SMTP authentication."""
    return EnvironmentConfig(smtp_host="localhost", smtp_port=25)


@pytest.fixture
def env_config_implicit_tls():
    """Environment config for implicit TLS (port 465)."""
    return EnvironmentConfig(
        smtp_host="smtp.example.org",
        smtp_port=465,
        smtp_user="alerts@example.org",
        smtp_pass="apppassword",
    )


@pytest.fixture
def sample_message():
    msg = EmailMessage()
    msg["Subject"] = "New Pet Available for Adoption: Biscuit"
    msg["From"] = "alerts@example.org"
    msg["To"] = "adopter@example.com"
    msg.set_content("Hello")
    return msg


def test_send_with_starttls_and_auth(env_config, sample_message):
    mock_smtp = MagicMock()
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory)
    client.send(sample_message, env_config, use_tls=True)

    mock_factory.assert_called_once_with("smtp.example.org", 587)
    mock_smtp.starttls.assert_called_once()
    mock_smtp.login.assert_called_once_with("alerts@example.org", "secret")
    mock_smtp.send_message.assert_called_once_with(sample_message)
    mock_smtp.quit.assert_called_once()


def test_send_with_implicit_tls(env_config_implicit_tls, sample_message):
    mock_smtp_ssl = MagicMock()
    mock_ssl_factory = Mock(return_value=mock_smtp_ssl)
    mock_factory = Mock()

    client = SMTPClient(smtp_factory=mock_factory, smtp_ssl_factory=mock_ssl_factory)
    client.send(sample_message, env_config_implicit_tls)

    mock_ssl_factory.assert_called_once()
    mock_factory.assert_not_called()
    mock_smtp_ssl.starttls.assert_not_called()
    mock_smtp_ssl.send_message.assert_called_once_with(sample_message)


def test_send_without_tls_or_auth(env_config_without_auth, sample_message):
    mock_smtp = MagicMock()

    client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp))
    client.send(sample_message, env_config_without_auth, use_tls=False)

    mock_smtp.starttls.assert_not_called()
    mock_smtp.login.assert_not_called()
    mock_smtp.send_message.assert_called_once()


def test_timeout_passed_to_factory(env_config, sample_message):
    mock_factory = Mock(return_value=MagicMock())

    client = SMTPClient(smtp_factory=mock_factory, timeout=7.5)
    client.send(sample_message, env_config)

    mock_factory.assert_called_once_with("smtp.example.org", 587, timeout=7.5)


def test_smtp_exception_raises_delivery_error(env_config, sample_message):
    mock_smtp = MagicMock()
    mock_smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused(
        {"adopter@example.com": (550, b"No such user")}
    )

    client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp))

    with pytest.raises(SMTPDeliveryError) as exc_info:
        client.send(sample_message, env_config)

    assert exc_info.value.kind == "smtp"
    mock_smtp.quit.assert_called_once()


def test_connection_refused_raises_delivery_error(env_config, sample_message):
    client = SMTPClient(smtp_factory=Mock(side_effect=ConnectionRefusedError("refused")))

    with pytest.raises(SMTPDeliveryError, match="Network error"):
        client.send(sample_message, env_config)


def test_socket_timeout_raises_dispatch_timeout(env_config, sample_message):
    mock_smtp = MagicMock()
    mock_smtp.send_message.side_effect = TimeoutError("timed out")

    client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp), timeout=1)

    with pytest.raises(DispatchTimeout) as exc_info:
        client.send(sample_message, env_config)

    assert exc_info.value.kind == "timeout"


def test_quit_failure_is_logged_not_raised(env_config, sample_message):
    mock_smtp = MagicMock()
    mock_smtp.quit.side_effect = smtplib.SMTPServerDisconnected("gone")

    client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp))
    client.send(sample_message, env_config)

    mock_smtp.send_message.assert_called_once()


class TestValidateRecipient:
    def test_valid_address_normalized(self):
        assert validate_recipient("  adopter@Example.COM ") == "adopter@example.com"

    @pytest.mark.parametrize("address", [None, "", "   "])
    def test_missing_address(self, address):
        with pytest.raises(InvalidRecipientError, match="no email address"):
            validate_recipient(address)

    def test_invalid_address(self):
        with pytest.raises(InvalidRecipientError) as exc_info:
            validate_recipient("not-an-email")

        assert exc_info.value.kind == "invalid_recipient"


class TestBuildSenderAddress:
    def test_prefers_smtp_from(self):
        config = EnvironmentConfig(
            smtp_host="smtp.example.org",
            smtp_port=587,
            smtp_user="login@example.org",
            smtp_pass="x",
            smtp_from="alerts@pets.example.org",
        )

        assert build_sender_address(config) == "Pet Adoption Alerts <alerts@pets.example.org>"

    def test_falls_back_to_smtp_user(self, env_config):
        assert build_sender_address(env_config) == "Pet Adoption Alerts <alerts@example.org>"

    def test_falls_back_to_noreply(self, env_config_without_auth):
        config = env_config_without_auth
        config.smtp_sender_name = "Shelter Bot"

        assert build_sender_address(config) == "Shelter Bot <noreply@localhost>"
