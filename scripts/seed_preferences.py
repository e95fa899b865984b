#!/usr/bin/env python3
"""Load adoption preferences into the preference store.

Reads a YAML or JSON file holding a list of preference records (or a
mapping with a "preferences" list) and upserts each one.

Usage:
    python scripts/seed_preferences.py preferences.yaml
    python scripts/seed_preferences.py preferences.json --database sqlite:////tmp/pets.db
"""

import argparse
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from pet_alerts.config.environment import DEFAULT_DATABASE_URL
from pet_alerts.logging.config import configure_logging
from pet_alerts.persistence.database import close_database, get_session, init_database
from pet_alerts.persistence.seeding import seed_preferences


def main():
    """Main entry point for preference seeding."""
    parser = argparse.ArgumentParser(
        description="Seed the preference store from a YAML or JSON file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("file", type=Path, help="Preference file (YAML or JSON)")
    parser.add_argument(
        "--database",
        default=None,
        help="Database URL (default: DATABASE_URL or sqlite:///./data/pet_alerts.db)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    load_dotenv()
    configure_logging(level=args.log_level)

    if not args.file.exists():
        print(f"Error: Preference file not found: {args.file}")
        return 1

    database_url = args.database or os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL

    try:
        init_database(database_url)
        with get_session() as session:
            report = seed_preferences(session, args.file)
    except Exception as e:
        print(f"Fatal error: {e}")
        return 1
    finally:
        close_database()

    print(f"Loaded {report.loaded} preference records from {args.file}")
    for error in report.invalid:
        print(f"  skipped {error}")

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
