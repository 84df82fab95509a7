"""Profile-scoped state for match notifications.

Public API:
    - PendingMatchStore: pending-match slot and dismissal flags
    - KeyValueStore: storage interface (get_item / set_item / remove_item)
    - InMemoryKeyValueStore, SqlKeyValueStore: implementations
    - StateStoreError: storage failure
"""

from .exceptions import StateStoreError
from .keys import (
    PENDING_VEHICLE_MATCH_KEY,
    build_state_key,
    requirement_dismissed_key,
    vehicle_dismissed_key,
)
from .kv_store import InMemoryKeyValueStore, KeyValueStore, SqlKeyValueStore
from .pending import PendingMatchStore

__all__ = [
    "PendingMatchStore",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqlKeyValueStore",
    "StateStoreError",
    "PENDING_VEHICLE_MATCH_KEY",
    "build_state_key",
    "vehicle_dismissed_key",
    "requirement_dismissed_key",
]
