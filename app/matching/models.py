"""Data models for the matching engine.

This module defines the outcome of a single match query and the error type
used to carry a failed query to the engine boundary.
"""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class MatchingError(Exception):
    """Raised (and captured) when a match query cannot be completed.

    Attributes:
        stage: Which query failed (exact, partial, requirement)
        cause: Underlying exception from the data store
    """

    def __init__(self, message: str, stage: str, cause: Optional[BaseException] = None):
        self.stage = stage
        self.cause = cause
        super().__init__(message)


@dataclass
class MatchOutcome(Generic[T]):
    """Result of running one match query.

    Either ``records`` holds the matched records, or ``error`` describes why
    the query failed. Callers at the public engine boundary collapse a failed
    outcome into an empty list.

    Attributes:
        stage: Query stage that produced this outcome
        records: Matched records (empty on failure)
        error: MatchingError when the query failed
    """

    stage: str
    records: List[T] = field(default_factory=list)
    error: Optional[MatchingError] = None

    @property
    def ok(self) -> bool:
        """True if the query completed (possibly with zero records)."""
        return self.error is None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def unwrap_or_empty(self) -> List[T]:
        """Return records, or an empty list when the query failed."""
        if self.error is not None:
            return []
        return list(self.records)
