"""Preference matching for new pet listings.

This module provides:
- matches: the pure predicate deciding whether a preference wants a listing
- PreferenceMatcher: predicate wrapper that reports failed facets and logs
- CandidateSelector: coarse storage query narrowed by the predicate
- MatchResult / Facet: evaluation results
"""

from .engine import PreferenceMatcher, failed_facets, matches
from .models import Facet, MatchResult
from .selector import CandidateSelector

__all__ = [
    "CandidateSelector",
    "Facet",
    "MatchResult",
    "PreferenceMatcher",
    "failed_facets",
    "matches",
]
