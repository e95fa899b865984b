"""Command-line entry point for the pet alert notifier."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import os
import sys
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from pet_alerts.config.environment import EnvironmentConfig
from pet_alerts.config.exceptions import ConfigurationError
from pet_alerts.config.loader import load_config
from pet_alerts.config.models import AppConfig
from pet_alerts.logging import get_logger
from pet_alerts.logging.config import configure_logging
from pet_alerts.notifications.sender import EmailNotificationSender
from pet_alerts.persistence.database import close_database, init_database
from pet_alerts.pipeline import ListingAlertOrchestrator

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > environment > config file > INFO.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        env_config.log_level = env_config.log_level.upper()
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def read_events(source: str) -> List[Any]:
    """
    Read listing-created events from a JSON file, or stdin for "-".

    The document may be a single event object or a list of them.

    Raises:
        ConfigurationError: If the file cannot be read or is not valid JSON
    """
    try:
        if source == "-":
            payload = json.load(sys.stdin)
        else:
            with open(source, "r", encoding="utf-8") as f:
                payload = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Failed to read event file {source}: {e}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Event file {source} is not valid JSON: {e}",
            suggestions=["Provide a JSON object or a JSON list of listing events"],
        )

    return payload if isinstance(payload, list) else [payload]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pet-alerts",
        description="Pet Alert Notifier - email adopters when a matching pet is listed",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--event",
        required=True,
        metavar="FILE",
        help="JSON file with one listing-created event or a list of them ('-' for stdin)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run listing events through the alert pipeline and wait for the cycles.

    Returns:
        0 if every scheduled cycle completed, 1 on configuration errors or
        when any cycle was abandoned.
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    orchestrator = None
    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Pet Alert Notifier starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "empty_facet": app_config.matching.empty_facet.value,
                "max_workers": app_config.dispatch.max_workers,
            },
        )

        events = read_events(args.event)

        init_database(env_config.database_url)

        sender = EmailNotificationSender(
            env_config,
            email_config=app_config.email,
            timeout=app_config.dispatch.timeout_seconds,
        )
        orchestrator = ListingAlertOrchestrator.from_config(app_config, sender)
        orchestrator.start()

        scheduled = sum(1 for event in events if orchestrator.on_listing_created(event))
        rejected = len(events) - scheduled

        orchestrator.wait_until_idle()
        results = orchestrator.recent_results()
        abandoned = [r for r in results if r.abandoned]

        logger.info(
            f"Processed {len(events)} events: {scheduled} scheduled, {rejected} rejected, "
            f"{len(abandoned)} abandoned",
            extra={
                "event": "service.events.completed",
                "event_count": len(events),
                "scheduled": scheduled,
                "rejected": rejected,
                "abandoned": len(abandoned),
                "delivered": sum(r.delivered_count for r in results),
                "failed": sum(r.failed_count for r in results),
            },
        )

        return 1 if abandoned else 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1
    finally:
        if orchestrator is not None:
            orchestrator.shutdown(wait=True)
        close_database()
        logger.info(
            "Pet Alert Notifier stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )


if __name__ == "__main__":
    sys.exit(main())
