"""Matching engine for pairing posted vehicles with open requirements.

This module implements the matching logic that:
1. Runs exact vehicle-to-requirement queries
2. Runs substring requirement-to-vehicle queries
3. Falls back from exact (make + model) to make-only matching for vehicles

Query failures never escape the public methods: they are logged and turned
into an empty result.
"""

import logging
from typing import Any, List, Optional, Protocol

from app.domain.models import Requirement, RequirementCriteria, VehicleCriteria, VehicleListing
from app.logging import get_logger

from .models import MatchingError, MatchOutcome
from .query import (
    MatchFilter,
    build_requirement_to_vehicle_filter,
    build_vehicle_to_requirement_filter,
    build_vehicle_to_requirement_partial_filter,
)

logger = get_logger(__name__, component="matching")

STAGE_EXACT = "exact"
STAGE_PARTIAL = "partial"
STAGE_REQUIREMENT = "requirement"


class DataStore(Protocol):
    """Query interface consumed by the engine."""

    def find(self, match_filter: MatchFilter) -> List[Any]:
        ...


class MatchingEngine:
    """Finds counterpart records for a posted vehicle or requirement.

    One engine is created per page context. ``matches`` holds the result of
    the last call (replaced, never merged) and ``is_loading`` is True only
    while a query is in flight.
    """

    def __init__(self, data_store: DataStore, logger_instance: Optional[logging.Logger] = None):
        """Initialize MatchingEngine.

        Args:
            data_store: Store exposing ``find(MatchFilter) -> list``
            logger_instance: Optional logger (defaults to module logger)
        """
        self.data_store = data_store
        self.logger = logger_instance or logger
        self.matches: List[Any] = []
        self.last_outcome: Optional[MatchOutcome] = None
        self._in_flight = 0

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    def check_vehicle_matches(self, vehicle: VehicleCriteria) -> List[Requirement]:
        """Find open requirements whose make and model equal the vehicle's.

        Args:
            vehicle: Criteria of the posted vehicle

        Returns:
            Matching requirements, newest first (empty on failure)
        """
        outcome = self._run(STAGE_EXACT, build_vehicle_to_requirement_filter(vehicle))
        return self._publish(outcome)

    def check_requirement_matches(self, requirement: RequirementCriteria) -> List[VehicleListing]:
        """Find active listings plausibly matching a posted requirement.

        Args:
            requirement: Criteria of the posted requirement

        Returns:
            Matching listings, newest first (empty on failure)
        """
        outcome = self._run(STAGE_REQUIREMENT, build_requirement_to_vehicle_filter(requirement))
        return self._publish(outcome)

    def check_partial_matches(self, vehicle: VehicleCriteria) -> List[Requirement]:
        """Find requirements for a vehicle, relaxing to make-only if needed.

        The exact stage always wins: the make-only stage runs only when the
        exact stage returned nothing.

        Args:
            vehicle: Criteria of the posted vehicle

        Returns:
            Exact matches if any, otherwise make-only matches (possibly empty)
        """
        self._in_flight += 1
        try:
            exact = self.check_vehicle_matches(vehicle)
            if exact:
                return exact

            outcome = self._run(
                STAGE_PARTIAL, build_vehicle_to_requirement_partial_filter(vehicle)
            )
            return self._publish(outcome)
        finally:
            self._in_flight -= 1

    def _run(self, stage: str, match_filter: MatchFilter) -> MatchOutcome:
        """Execute one filter and capture the result or the failure."""
        self._in_flight += 1
        try:
            records = self.data_store.find(match_filter)
            outcome = MatchOutcome(stage=stage, records=list(records or []))
            self.logger.debug(
                f"Match query ({stage}) returned {len(outcome.records)} records",
                extra={
                    "event": "matching.query.completed",
                    "stage": stage,
                    "collection": match_filter.collection,
                    "result_count": len(outcome.records),
                },
            )
        except Exception as e:
            outcome = MatchOutcome(
                stage=stage,
                error=MatchingError(f"Match query ({stage}) failed: {e}", stage=stage, cause=e),
            )
            self.logger.warning(
                f"Error checking {stage} matches: {e}",
                extra={
                    "event": "matching.query.failed",
                    "stage": stage,
                    "collection": match_filter.collection,
                    "error_type": type(e).__name__,
                },
            )
        finally:
            self._in_flight -= 1

        return outcome

    def _publish(self, outcome: MatchOutcome) -> List[Any]:
        self.last_outcome = outcome
        self.matches = outcome.unwrap_or_empty()
        return list(self.matches)
