"""Bulk loading of preference records from YAML or JSON files."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Tuple

import yaml
from pydantic import ValidationError
from sqlalchemy.orm import Session

from pet_alerts.domain.models import PreferenceRecord

from .repositories import PreferenceRepository

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    """Counts from one seeding run."""

    loaded: int = 0
    invalid: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.invalid


def read_preference_file(path: Path) -> Tuple[List[PreferenceRecord], List[str]]:
    """
    Parse a preference file into records.

    The document is either a list of records or a mapping with a
    "preferences" list. JSON is read through the YAML parser.

    Returns:
        (valid records, one error message per invalid entry)

    Raises:
        ValueError: If the file cannot be parsed or has the wrong shape
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            document: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e

    if isinstance(document, dict):
        document = document.get("preferences")
    if not isinstance(document, list):
        raise ValueError(f"{path} must contain a list of preferences or a 'preferences' list")

    records: List[PreferenceRecord] = []
    errors: List[str] = []
    for index, entry in enumerate(document):
        try:
            records.append(PreferenceRecord.model_validate(entry))
        except ValidationError as e:
            errors.append(f"entry {index}: {e.error_count()} validation errors ({e.errors()[0]['msg']})")

    return records, errors


def seed_preferences(session: Session, path: Path) -> SeedReport:
    """Upsert every valid record in path. Invalid entries are reported, not stored."""
    records, errors = read_preference_file(path)
    repo = PreferenceRepository(session)

    for record in records:
        repo.upsert(record)

    for error in errors:
        logger.warning(f"Skipped invalid preference in {path}: {error}")

    logger.info(f"Seeded {len(records)} preference records from {path}")
    return SeedReport(loaded=len(records), invalid=errors)
