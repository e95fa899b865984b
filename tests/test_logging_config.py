"""Tests for logging configuration, formatters and component loggers."""

import json
import logging
import sys
from datetime import datetime, timezone

import pytest

from pet_alerts.logging import ComponentLoggerAdapter, get_logger
from pet_alerts.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from pet_alerts.logging.context import log_context


def make_record(message="Cycle completed", **extra):
    logger = logging.getLogger("pet_alerts.test")
    return logger.makeRecord(
        "pet_alerts.test", logging.INFO, "test.py", 1, message, (), None, extra=extra or None
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    def test_mandatory_fields(self):
        log_obj = json.loads(JSONFormatter().format(make_record()))

        assert log_obj["level"] == "INFO"
        assert log_obj["logger"] == "pet_alerts.test"
        assert log_obj["message"] == "Cycle completed"
        assert "name" not in log_obj
        assert "lineno" not in log_obj

    def test_timestamp_is_utc_millis(self):
        timestamp = json.loads(JSONFormatter().format(make_record()))["timestamp"]

        # 2026-10-19T10:30:00.123Z
        assert timestamp.endswith("Z")
        assert len(timestamp) == 24

    def test_extra_fields_keep_types(self):
        record = make_record(
            event="notification.batch.completed",
            delivered_count=3,
            deduplicate=True,
            user_ids=["u1", "u2"],
        )

        log_obj = json.loads(JSONFormatter().format(record))

        assert log_obj["event"] == "notification.batch.completed"
        assert log_obj["delivered_count"] == 3
        assert log_obj["deduplicate"] is True
        assert log_obj["user_ids"] == ["u1", "u2"]

    def test_datetime_and_objects_are_stringified(self):
        created = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)
        record = make_record(created_at=created, policy=object())

        log_obj = json.loads(JSONFormatter().format(record))

        assert log_obj["created_at"] == "2026-10-19T08:30:00+00:00"
        assert isinstance(log_obj["policy"], str)

    def test_exception_info_rendered(self):
        logger = logging.getLogger("pet_alerts.test")
        try:
            raise RuntimeError("smtp exploded")
        except RuntimeError:
            record = logger.makeRecord(
                "pet_alerts.test", logging.ERROR, "test.py", 1, "failed", (), sys.exc_info()
            )

        log_obj = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: smtp exploded" in log_obj["exc_info"]


class TestKeyValueFormatter:
    @pytest.fixture
    def formatter(self):
        return KeyValueFormatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def test_base_line(self, formatter):
        output = formatter.format(make_record())

        assert "[INFO] pet_alerts.test: Cycle completed" in output

    def test_extras_sorted_and_quoted(self, formatter):
        record = make_record(
            listing_id="pet-7",
            error="550 mailbox unavailable",
            delivered=False,
            error_kind=None,
        )

        output = formatter.format(record)

        assert output.endswith(
            'delivered=false error="550 mailbox unavailable" error_kind=null listing_id=pet-7'
        )

    def test_service_labels_are_hidden(self, formatter):
        record = make_record(event="cycle.completed")
        ContextualFilter(service="pet-alert-notifier", environment="test").filter(record)

        output = formatter.format(record)

        assert "event=cycle.completed" in output
        assert "service=" not in output
        assert "environment=" not in output


class TestContextualFilter:
    def test_adds_service_and_environment(self):
        record = make_record()

        assert ContextualFilter(service="svc", environment="test").filter(record) is True
        assert record.service == "svc"
        assert record.environment == "test"

    def test_adds_context_fields(self):
        record = make_record()

        with log_context(cycle_id="c-1", listing_id="pet-7"):
            ContextualFilter().filter(record)

        assert record.cycle_id == "c-1"
        assert record.listing_id == "pet-7"

    def test_explicit_extra_wins_over_context(self):
        record = make_record(listing_id="pet-explicit")

        with log_context(listing_id="pet-context"):
            ContextualFilter().filter(record)

        assert record.listing_id == "pet-explicit"


class TestComponentLogger:
    def test_plain_logger_without_component(self):
        assert isinstance(get_logger("pet_alerts.test"), logging.Logger)

    def test_component_stamped_on_records(self, caplog):
        logger = get_logger("pet_alerts.test", component="dispatcher")

        with caplog.at_level(logging.INFO, logger="pet_alerts.test"):
            logger.info("Batch started", extra={"event": "notification.batch.started"})

        (record,) = caplog.records
        assert isinstance(logger, ComponentLoggerAdapter)
        assert record.component == "dispatcher"
        assert record.event == "notification.batch.started"

    def test_call_extra_overrides_component(self, caplog):
        logger = get_logger("pet_alerts.test", component="dispatcher")

        with caplog.at_level(logging.INFO, logger="pet_alerts.test"):
            logger.info("Overridden", extra={"component": "selector"})

        assert caplog.records[0].component == "selector"


class TestConfigureLogging:
    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            configure_logging(format_type="xml")

    @pytest.mark.parametrize(
        "format_type, formatter_cls",
        [("json", JSONFormatter), ("key-value", KeyValueFormatter)],
    )
    def test_installs_single_handler(self, restore_root_logger, format_type, formatter_cls):
        configure_logging(level="debug", format_type=format_type, environment="test")

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, formatter_cls)
        assert any(isinstance(f, ContextualFilter) for f in root.handlers[0].filters)

    def test_apscheduler_kept_quiet(self, restore_root_logger):
        configure_logging(level="DEBUG")

        assert logging.getLogger("apscheduler").level == logging.WARNING
