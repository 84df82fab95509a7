"""Deterministic composite keys for profile state entries.

Keys are built from a prefix and a tuple of parts joined with ``:``. Each
part is escaped (``%`` -> ``%25``, ``:`` -> ``%3A``) so a delimiter inside a
make or model can never make two different signatures collide. Parts
without those characters serialize unchanged, e.g.
``vehicle-match-dismissed:user-1:car:Toyota:Innova:2021``.
"""

from enum import Enum
from typing import Any, Optional, Tuple

from app.domain.models import RequirementCriteria, VehicleCriteria

PENDING_VEHICLE_MATCH_KEY = "pending-vehicle-match"
VEHICLE_DISMISSED_PREFIX = "vehicle-match-dismissed"
REQUIREMENT_DISMISSED_PREFIX = "requirement-match-dismissed"
GUEST_USER_ID = "guest"

KEY_SEPARATOR = ":"


def escape_key_part(part: Any) -> str:
    """Serialize one key component; None becomes the empty string."""
    if part is None:
        return ""
    if isinstance(part, Enum):
        part = part.value
    text = str(part)
    return text.replace("%", "%25").replace(KEY_SEPARATOR, "%3A")


def build_state_key(prefix: str, parts: Tuple[Any, ...]) -> str:
    """Join a prefix and escaped parts into a storage key."""
    return KEY_SEPARATOR.join([prefix, *(escape_key_part(p) for p in parts)])


def vehicle_signature(user_id: Optional[str], criteria: VehicleCriteria) -> Tuple[Any, ...]:
    """Structured signature of a vehicle match for one user."""
    return (
        user_id or GUEST_USER_ID,
        criteria.vehicle_type,
        criteria.make,
        criteria.model,
        criteria.year,
    )


def requirement_signature(
    user_id: Optional[str], criteria: RequirementCriteria
) -> Tuple[Any, ...]:
    """Structured signature of a requirement match for one user."""
    return (
        user_id or GUEST_USER_ID,
        criteria.vehicle_type,
        criteria.make,
        criteria.model,
        criteria.year_range_min,
        criteria.year_range_max,
    )


def vehicle_dismissed_key(user_id: Optional[str], criteria: VehicleCriteria) -> str:
    return build_state_key(VEHICLE_DISMISSED_PREFIX, vehicle_signature(user_id, criteria))


def requirement_dismissed_key(user_id: Optional[str], criteria: RequirementCriteria) -> str:
    return build_state_key(
        REQUIREMENT_DISMISSED_PREFIX, requirement_signature(user_id, criteria)
    )
