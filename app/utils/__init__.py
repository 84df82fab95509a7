"""Utility functions for time handling and identifiers."""

from .ids import new_record_id
from .timestamps import ensure_utc, utc_now

__all__ = [
    "utc_now",
    "ensure_utc",
    "new_record_id",
]
