"""Filter construction for matching listings against requirements.

Filters are plain value objects so that the same predicate can be translated
to SQL by the data store or evaluated in memory. The two matching directions
compare make and model differently:

- vehicle -> requirement: exact (case-insensitive) make and model equality
- requirement -> vehicle: case-insensitive substring match on make and model
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Tuple, Union

from app.domain.models import (
    ListingStatus,
    RequirementCriteria,
    RequirementStatus,
    VehicleCriteria,
)

REQUIREMENTS = "requirements"
VEHICLE_LISTINGS = "vehicle_listings"


class FilterOp(str, Enum):
    """Comparison operators supported by match filters."""

    EQ = "eq"
    IEQ = "ieq"
    ICONTAINS = "icontains"


@dataclass(frozen=True)
class FieldCondition:
    """A single ``field <op> value`` predicate."""

    field: str
    op: FilterOp
    value: Any

    def matches(self, record: Mapping[str, Any]) -> bool:
        """Evaluate this condition against a record mapping."""
        actual = record.get(self.field)
        if actual is None:
            return False

        expected = _plain(self.value)
        actual = _plain(actual)

        if self.op is FilterOp.EQ:
            return actual == expected
        if self.op is FilterOp.IEQ:
            return str(actual).casefold() == str(expected).casefold()
        if self.op is FilterOp.ICONTAINS:
            return str(expected).casefold() in str(actual).casefold()
        raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True)
class MatchFilter:
    """Predicate over a counterpart collection plus its ordering.

    Attributes:
        collection: Name of the collection to search (requirements or vehicle_listings)
        conditions: Conditions combined with AND
        order_by: Field used for ordering
        descending: Newest first when True
    """

    collection: str
    conditions: Tuple[FieldCondition, ...] = field(default_factory=tuple)
    order_by: str = "created_at"
    descending: bool = True

    def matches(self, record: Mapping[str, Any]) -> bool:
        """Return True if the record satisfies every condition."""
        return all(condition.matches(record) for condition in self.conditions)

    def condition_for(self, field_name: str) -> Union[FieldCondition, None]:
        """Return the first condition on ``field_name``, if any."""
        for condition in self.conditions:
            if condition.field == field_name:
                return condition
        return None


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def build_vehicle_to_requirement_filter(vehicle: VehicleCriteria) -> MatchFilter:
    """Build the exact filter for requirements matching a just-posted vehicle.

    Selects open requirements of the same vehicle type whose make and model
    equal the vehicle's, ignoring case. Newest first, no limit.

    Args:
        vehicle: Criteria derived from the posted vehicle

    Returns:
        MatchFilter over the requirements collection
    """
    return MatchFilter(
        collection=REQUIREMENTS,
        conditions=(
            FieldCondition("status", FilterOp.EQ, RequirementStatus.OPEN.value),
            FieldCondition("vehicle_type", FilterOp.EQ, _plain(vehicle.vehicle_type)),
            FieldCondition("make", FilterOp.IEQ, vehicle.make),
            FieldCondition("model", FilterOp.IEQ, vehicle.model),
        ),
    )


def build_vehicle_to_requirement_partial_filter(vehicle: VehicleCriteria) -> MatchFilter:
    """Build the make-only fallback filter for a just-posted vehicle.

    Same as :func:`build_vehicle_to_requirement_filter` without the model
    constraint.
    """
    exact = build_vehicle_to_requirement_filter(vehicle)
    return MatchFilter(
        collection=exact.collection,
        conditions=tuple(c for c in exact.conditions if c.field != "model"),
        order_by=exact.order_by,
        descending=exact.descending,
    )


def build_requirement_to_vehicle_filter(requirement: RequirementCriteria) -> MatchFilter:
    """Build the filter for listings matching a just-posted requirement.

    Selects active listings of the same vehicle type. Make and model, when
    given, are matched as case-insensitive substrings so that a buyer asking
    for "Hon" sees every Honda.

    Args:
        requirement: Criteria derived from the posted requirement

    Returns:
        MatchFilter over the vehicle_listings collection
    """
    conditions = [
        FieldCondition("status", FilterOp.EQ, ListingStatus.ACTIVE.value),
        FieldCondition("vehicle_type", FilterOp.EQ, _plain(requirement.vehicle_type)),
    ]
    if requirement.make:
        conditions.append(FieldCondition("make", FilterOp.ICONTAINS, requirement.make))
    if requirement.model:
        conditions.append(FieldCondition("model", FilterOp.ICONTAINS, requirement.model))

    return MatchFilter(collection=VEHICLE_LISTINGS, conditions=tuple(conditions))
