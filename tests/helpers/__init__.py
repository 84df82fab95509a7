"""Test helper utilities for vehicle match service tests."""

from .manual_scheduler import ManualScheduler
from .memory_store import MemoryDataStore
from .records import make_listing, make_poster, make_requirement

__all__ = [
    "ManualScheduler",
    "MemoryDataStore",
    "make_listing",
    "make_requirement",
    "make_poster",
]
