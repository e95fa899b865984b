"""Integration tests for configuration module."""

import warnings

import pytest

from pet_alerts.config import (
    AppConfig,
    ConfigurationError,
    DispatchConfig,
    EmailConfig,
    EmptyFacetPolicy,
    load_config,
    load_environment_config,
    parse_app_config,
)
from pet_alerts.config.environment import DEFAULT_DATABASE_URL
from pet_alerts.config.validators import check_for_warnings

FULL_CONFIG = """
matching:
  empty_facet: none
dispatch:
  max_workers: 8
  cycle_workers: 3
  timeout_seconds: 20
  deduplicate: false
email:
  use_tls: false
  listing_url_template: "https://pets.example.org/pets/{listing_id}"
logging:
  level: DEBUG
  format: json
"""


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set the required SMTP environment variables."""
    monkeypatch.setenv("SMTP_HOST", "smtp.test.com")
    monkeypatch.setenv("SMTP_PORT", "587")
    for name in ("SMTP_USER", "SMTP_PASS", "SMTP_FROM", "SMTP_SENDER_NAME", "LOG_LEVEL", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(text, name="config.yaml"):
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_full_config(self, mock_env_vars, write_config):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            app_config, env_config = load_config(write_config(FULL_CONFIG))

        assert app_config.matching.empty_facet == EmptyFacetPolicy.NONE
        assert app_config.dispatch.max_workers == 8
        assert app_config.dispatch.cycle_workers == 3
        assert app_config.dispatch.timeout_seconds == 20
        assert app_config.dispatch.deduplicate is False
        assert app_config.email.use_tls is False
        assert app_config.email.listing_url_template == "https://pets.example.org/pets/{listing_id}"
        assert app_config.logging.level == "DEBUG"
        assert app_config.logging.format == "json"
        assert env_config.smtp_host == "smtp.test.com"

    def test_empty_file_uses_defaults(self, mock_env_vars, write_config):
        app_config, _ = load_config(write_config(""))

        assert app_config.matching.empty_facet == EmptyFacetPolicy.ANY
        assert app_config.dispatch.max_workers == 4
        assert app_config.dispatch.cycle_workers == 2
        assert app_config.dispatch.timeout_seconds == 30.0
        assert app_config.dispatch.deduplicate is True
        assert app_config.email.use_tls is True
        assert app_config.email.listing_url_template == ""
        assert app_config.logging.level == "INFO"
        assert app_config.logging.format == "key-value"

    def test_missing_explicit_file(self, mock_env_vars, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_no_config_found(self, mock_env_vars, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config()

        assert "Tried: config.yaml" in str(exc_info.value)

    def test_default_lookup_finds_config_dir(self, mock_env_vars, tmp_path, monkeypatch):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("dispatch:\n  max_workers: 6\n")
        monkeypatch.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config.dispatch.max_workers == 6

    def test_invalid_yaml(self, mock_env_vars, write_config):
        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            load_config(write_config("dispatch: [unclosed"))

    def test_top_level_must_be_mapping(self, mock_env_vars, write_config):
        with pytest.raises(ConfigurationError, match="mapping at the top level"):
            load_config(write_config("- just\n- a list\n"))


class TestConfigurationValidation:
    """Test schema validation errors."""

    def test_invalid_empty_facet_policy(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_app_config({"matching": {"empty_facet": "sometimes"}})

        assert "matching -> empty_facet" in str(exc_info.value)

    @pytest.mark.parametrize(
        "dispatch",
        [
            {"max_workers": 0},
            {"cycle_workers": 0},
            {"timeout_seconds": 0},
            {"timeout_seconds": -5},
        ],
    )
    def test_dispatch_bounds(self, dispatch):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_app_config({"dispatch": dispatch})

        assert "dispatch" in str(exc_info.value)

    def test_worker_product_limit(self):
        with pytest.raises(ConfigurationError, match="256"):
            parse_app_config({"dispatch": {"max_workers": 64, "cycle_workers": 8}})

    def test_worker_product_at_limit(self):
        config = DispatchConfig(max_workers=64, cycle_workers=4)

        assert config.max_workers * config.cycle_workers == 256

    def test_invalid_log_format(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_app_config({"logging": {"format": "xml"}})

        assert "logging -> format" in str(exc_info.value)

    def test_listing_url_template_unknown_placeholder(self):
        with pytest.raises(ConfigurationError, match="listing_url_template"):
            parse_app_config({"email": {"listing_url_template": "https://x.org/{pet_id}"}})

    def test_listing_url_template_is_stripped(self):
        config = EmailConfig(listing_url_template="  https://x.org/{listing_id}  ")

        assert config.listing_url_template == "https://x.org/{listing_id}"

    def test_app_config_defaults(self):
        config = AppConfig()

        assert config.matching.empty_facet == EmptyFacetPolicy.ANY


class TestConfigurationWarnings:
    def test_none_policy_warns(self):
        messages = check_for_warnings({"matching": {"empty_facet": "none"}})

        assert any("never receive alerts" in m for m in messages)

    def test_large_worker_count_warns(self):
        messages = check_for_warnings({"dispatch": {"max_workers": 32}})

        assert any("max_workers" in m for m in messages)

    def test_short_timeout_warns(self):
        messages = check_for_warnings({"dispatch": {"timeout_seconds": 2}})

        assert any("timeout_seconds" in m for m in messages)

    def test_defaults_do_not_warn(self):
        assert check_for_warnings({}) == []

    def test_load_config_emits_warnings(self, mock_env_vars, write_config):
        with pytest.warns(UserWarning, match="never receive alerts"):
            load_config(write_config("matching:\n  empty_facet: none\n"))


class TestEnvironmentVariables:
    """Test environment variable loading and validation."""

    def test_load_valid_environment_config(self, mock_env_vars):
        env_config = load_environment_config()

        assert env_config.smtp_host == "smtp.test.com"
        assert env_config.smtp_port == 587
        assert env_config.smtp_sender_name == "Pet Adoption Alerts"
        assert env_config.database_url == DEFAULT_DATABASE_URL

    def test_missing_required_env_var(self, monkeypatch):
        monkeypatch.delenv("SMTP_HOST", raising=False)
        monkeypatch.delenv("SMTP_PORT", raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        error_msg = str(exc_info.value)
        assert "SMTP_HOST" in error_msg
        assert "SMTP_PORT" in error_msg

    @pytest.mark.parametrize("port", ["invalid", "0", "70000"])
    def test_invalid_smtp_port(self, mock_env_vars, monkeypatch, port):
        monkeypatch.setenv("SMTP_PORT", port)

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "SMTP_PORT" in str(exc_info.value)

    def test_invalid_sender_address(self, mock_env_vars, monkeypatch):
        monkeypatch.setenv("SMTP_FROM", "not-an-email")

        with pytest.raises(ConfigurationError, match="SMTP_FROM"):
            load_environment_config()

    def test_invalid_log_level(self, mock_env_vars, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
            load_environment_config()

    def test_user_without_password(self, mock_env_vars, monkeypatch):
        monkeypatch.setenv("SMTP_USER", "alerts@example.org")

        with pytest.raises(ConfigurationError, match="SMTP_PASS is not"):
            load_environment_config()

    def test_optional_env_vars(self, mock_env_vars, monkeypatch):
        monkeypatch.setenv("SMTP_USER", "user@test.com")
        monkeypatch.setenv("SMTP_PASS", "password123")
        monkeypatch.setenv("SMTP_FROM", "alerts@pets.example.org")
        monkeypatch.setenv("SMTP_SENDER_NAME", "Shelter Bot")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/alerts.db")

        env_config = load_environment_config()

        assert env_config.smtp_user == "user@test.com"
        assert env_config.smtp_pass == "password123"
        assert env_config.smtp_from == "alerts@pets.example.org"
        assert env_config.smtp_sender_name == "Shelter Bot"
        assert env_config.log_level == "DEBUG"
        assert env_config.database_url == "sqlite:///tmp/alerts.db"
