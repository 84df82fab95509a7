"""Matching between vehicle listings and buyer requirements.

This module provides:
- MatchFilter and the builders for both matching directions
- MatchingEngine: runs filters with exact -> make-only fallback
- MatchOutcome / MatchingError: per-query result carrying failures
"""

from .engine import DataStore, MatchingEngine
from .models import MatchingError, MatchOutcome
from .query import (
    FieldCondition,
    FilterOp,
    MatchFilter,
    build_requirement_to_vehicle_filter,
    build_vehicle_to_requirement_filter,
    build_vehicle_to_requirement_partial_filter,
)

__all__ = [
    "MatchingEngine",
    "DataStore",
    "MatchOutcome",
    "MatchingError",
    "MatchFilter",
    "FieldCondition",
    "FilterOp",
    "build_vehicle_to_requirement_filter",
    "build_vehicle_to_requirement_partial_filter",
    "build_requirement_to_vehicle_filter",
]
