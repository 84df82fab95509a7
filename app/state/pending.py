"""Pending-match slot and dismissal flags for one browser profile.

The store keeps two kinds of entries:
- a single ``pending-vehicle-match`` slot holding the criteria of a vehicle
  match the user has not resolved yet
- permanent "don't show again" flags keyed by user and match signature

This state only decides whether a notification is shown. It never changes
what a match query returns, so every failure here degrades to "absent".
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError

from app.domain.models import RequirementCriteria, VehicleCriteria
from app.logging import get_logger

from .exceptions import StateStoreError
from .keys import PENDING_VEHICLE_MATCH_KEY, requirement_dismissed_key, vehicle_dismissed_key
from .kv_store import KeyValueStore

logger = get_logger(__name__, component="state")

DISMISSED_MARKER = "1"
PENDING_FIELDS = ("make", "model", "year", "vehicle_type")


class PendingMatchStore:
    """Reads and writes match notification state through a KeyValueStore."""

    def __init__(self, kv_store: KeyValueStore, logger_instance: Optional[logging.Logger] = None):
        """Initialize store.

        Args:
            kv_store: Profile-scoped key-value storage
            logger_instance: Optional logger (defaults to module logger)
        """
        self.kv_store = kv_store
        self.logger = logger_instance or logger

    def set_pending_vehicle_match(self, criteria: VehicleCriteria) -> None:
        """Overwrite the pending slot with the given vehicle criteria.

        Only one pending match is tracked; a later post replaces an earlier one.
        """
        payload = json.dumps(
            {
                "make": criteria.make,
                "model": criteria.model,
                "year": criteria.year,
                "vehicle_type": criteria.vehicle_type.value,
            }
        )
        try:
            self.kv_store.set_item(PENDING_VEHICLE_MATCH_KEY, payload)
        except StateStoreError as e:
            self._log_store_error("set_pending", e)
            return

        self.logger.info(
            "Pending vehicle match saved",
            extra={
                "event": "state.pending.saved",
                "vehicle_type": criteria.vehicle_type.value,
                "make": criteria.make,
                "model": criteria.model,
                "year": criteria.year,
            },
        )

    def get_pending_vehicle_match(self) -> Optional[VehicleCriteria]:
        """Return the pending vehicle criteria, or None.

        A slot that cannot be parsed, is not an object, or lacks any of
        make/model/year/vehicle_type is deleted and reported as absent.
        """
        try:
            raw = self.kv_store.get_item(PENDING_VEHICLE_MATCH_KEY)
        except StateStoreError as e:
            self._log_store_error("get_pending", e)
            return None

        if not raw:
            return None

        try:
            parsed = json.loads(raw)
            if not isinstance(parsed, dict):
                raise ValueError("pending match is not an object")
            missing = [name for name in PENDING_FIELDS if not parsed.get(name)]
            if missing:
                raise ValueError(f"pending match missing fields: {', '.join(missing)}")
            return VehicleCriteria.model_validate(
                {name: parsed[name] for name in PENDING_FIELDS}
            )
        except (ValueError, TypeError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            self.logger.warning(
                f"Discarding malformed pending vehicle match: {e}",
                extra={"event": "state.pending.malformed", "error_type": type(e).__name__},
            )
            self.clear_pending_vehicle_match()
            return None

    def clear_pending_vehicle_match(self) -> None:
        """Delete the pending slot."""
        try:
            self.kv_store.remove_item(PENDING_VEHICLE_MATCH_KEY)
        except StateStoreError as e:
            self._log_store_error("clear_pending", e)

    def is_dismissed(self, user_id: Optional[str], criteria: VehicleCriteria) -> bool:
        """True if the user chose "don't show again" for this vehicle signature."""
        return self._flag_present(vehicle_dismissed_key(user_id, criteria))

    def set_dismissed(self, user_id: Optional[str], criteria: VehicleCriteria) -> None:
        """Permanently suppress notifications for this vehicle signature."""
        self._set_flag(vehicle_dismissed_key(user_id, criteria))

    def is_requirement_dismissed(
        self, user_id: Optional[str], criteria: RequirementCriteria
    ) -> bool:
        """True if the user chose "don't show again" for this requirement signature."""
        return self._flag_present(requirement_dismissed_key(user_id, criteria))

    def set_requirement_dismissed(
        self, user_id: Optional[str], criteria: RequirementCriteria
    ) -> None:
        """Permanently suppress notifications for this requirement signature."""
        self._set_flag(requirement_dismissed_key(user_id, criteria))

    def _flag_present(self, key: str) -> bool:
        try:
            return self.kv_store.get_item(key) is not None
        except StateStoreError as e:
            self._log_store_error("read_flag", e)
            return False

    def _set_flag(self, key: str) -> None:
        try:
            self.kv_store.set_item(key, DISMISSED_MARKER)
        except StateStoreError as e:
            self._log_store_error("set_flag", e)
            return

        self.logger.info(
            "Match dismissed permanently",
            extra={"event": "state.dismissed.saved", "state_key": key},
        )

    def _log_store_error(self, operation: str, error: Exception) -> None:
        self.logger.warning(
            f"Profile state {operation} failed: {error}",
            extra={
                "event": "state.store.failed",
                "operation": operation,
                "error_type": type(error).__name__,
            },
        )
