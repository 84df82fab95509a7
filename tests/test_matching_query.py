"""Unit tests for match filter construction and in-memory evaluation."""

import pytest

from app.domain.models import RequirementCriteria, VehicleCriteria, VehicleType
from app.matching.query import (
    REQUIREMENTS,
    VEHICLE_LISTINGS,
    FieldCondition,
    FilterOp,
    MatchFilter,
    build_requirement_to_vehicle_filter,
    build_vehicle_to_requirement_filter,
    build_vehicle_to_requirement_partial_filter,
)


@pytest.fixture
def innova():
    return VehicleCriteria(vehicle_type=VehicleType.CAR, make="Toyota", model="Innova", year=2021)


class TestVehicleToRequirementFilter:
    """Tests for the exact vehicle -> requirement filter."""

    def test_targets_open_requirements_newest_first(self, innova):
        """Filter selects open requirements ordered by created_at descending."""
        match_filter = build_vehicle_to_requirement_filter(innova)

        assert match_filter.collection == REQUIREMENTS
        assert match_filter.order_by == "created_at"
        assert match_filter.descending is True
        assert match_filter.condition_for("status") == FieldCondition("status", FilterOp.EQ, "open")

    def test_make_and_model_are_case_insensitive_equality(self, innova):
        """Make and model use ieq, never substring."""
        match_filter = build_vehicle_to_requirement_filter(innova)

        assert match_filter.condition_for("make").op is FilterOp.IEQ
        assert match_filter.condition_for("model").op is FilterOp.IEQ
        assert match_filter.condition_for("vehicle_type").value == "car"

    def test_matches_other_case(self, innova):
        """'toyota'/'INNOVA' requirement matches a Toyota Innova."""
        match_filter = build_vehicle_to_requirement_filter(innova)
        record = {"status": "open", "vehicle_type": "car", "make": "toyota", "model": "INNOVA"}

        assert match_filter.matches(record)

    def test_prefix_does_not_match(self):
        """A vehicle make 'Hon' does not match a 'Honda' requirement."""
        vehicle = VehicleCriteria(vehicle_type="car", make="Hon", model="City", year=2020)
        record = {"status": "open", "vehicle_type": "car", "make": "Honda", "model": "City"}

        assert not build_vehicle_to_requirement_filter(vehicle).matches(record)

    def test_requirement_without_model_is_not_an_exact_match(self, innova):
        """A requirement with no model only matches in the make-only stage."""
        record = {"status": "open", "vehicle_type": "car", "make": "Toyota", "model": None}

        assert not build_vehicle_to_requirement_filter(innova).matches(record)
        assert build_vehicle_to_requirement_partial_filter(innova).matches(record)

    @pytest.mark.parametrize("status", ["matched", "closed"])
    def test_non_open_requirements_excluded(self, innova, status):
        """Only open requirements match."""
        record = {"status": status, "vehicle_type": "car", "make": "Toyota", "model": "Innova"}

        assert not build_vehicle_to_requirement_filter(innova).matches(record)


class TestPartialFilter:
    """Tests for the make-only fallback filter."""

    def test_drops_only_the_model_condition(self, innova):
        """Partial filter equals the exact one minus the model condition."""
        exact = build_vehicle_to_requirement_filter(innova)
        partial = build_vehicle_to_requirement_partial_filter(innova)

        assert partial.condition_for("model") is None
        assert len(partial.conditions) == len(exact.conditions) - 1
        assert partial.collection == exact.collection
        assert partial.order_by == exact.order_by

    def test_matches_other_model_of_same_make(self, innova):
        """A Toyota Fortuner requirement matches a Toyota Innova make-only."""
        record = {"status": "open", "vehicle_type": "car", "make": "Toyota", "model": "Fortuner"}

        assert build_vehicle_to_requirement_partial_filter(innova).matches(record)

    def test_vehicle_type_still_applies(self, innova):
        """A bike requirement never matches a car."""
        record = {"status": "open", "vehicle_type": "bike", "make": "Toyota", "model": "Innova"}

        assert not build_vehicle_to_requirement_partial_filter(innova).matches(record)


class TestRequirementToVehicleFilter:
    """Tests for the requirement -> vehicle filter."""

    def test_targets_active_listings(self):
        """Filter selects active listings of the requirement's vehicle type."""
        criteria = RequirementCriteria(vehicle_type="bike")
        match_filter = build_requirement_to_vehicle_filter(criteria)

        assert match_filter.collection == VEHICLE_LISTINGS
        assert match_filter.condition_for("status").value == "active"
        assert match_filter.condition_for("vehicle_type").value == "bike"

    def test_absent_make_and_model_add_no_conditions(self):
        """Missing make/model means any make/model."""
        match_filter = build_requirement_to_vehicle_filter(RequirementCriteria(vehicle_type="car"))

        assert match_filter.condition_for("make") is None
        assert match_filter.condition_for("model") is None
        assert len(match_filter.conditions) == 2

    def test_substring_match(self):
        """'Hon' matches a Honda listing, case-insensitively."""
        criteria = RequirementCriteria(vehicle_type="car", make="hon")
        match_filter = build_requirement_to_vehicle_filter(criteria)
        record = {"status": "active", "vehicle_type": "car", "make": "Honda", "model": "City"}

        assert match_filter.condition_for("make").op is FilterOp.ICONTAINS
        assert match_filter.matches(record)

    @pytest.mark.parametrize("status", ["pending", "hidden", "sold"])
    def test_non_active_listings_excluded(self, status):
        """Pending, hidden and sold listings never match."""
        criteria = RequirementCriteria(vehicle_type="car", make="Honda")
        record = {"status": status, "vehicle_type": "car", "make": "Honda", "model": "City"}

        assert not build_requirement_to_vehicle_filter(criteria).matches(record)


class TestFieldCondition:
    """Tests for in-memory condition evaluation."""

    def test_missing_field_never_matches(self):
        """A None field value fails every operator."""
        for op in FilterOp:
            assert not FieldCondition("make", op, "x").matches({"make": None})

    def test_enum_values_compare_by_value(self):
        """Enum record values compare equal to their plain value."""
        assert FieldCondition("vehicle_type", FilterOp.EQ, "car").matches(
            {"vehicle_type": VehicleType.CAR}
        )

    def test_filter_with_no_conditions_matches_everything(self):
        """An empty filter matches any record."""
        assert MatchFilter(collection=REQUIREMENTS).matches({"anything": 1})
