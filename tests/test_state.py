"""Unit tests for pending-match and dismissal state."""

import json
import logging
from unittest.mock import Mock

import pytest

from app.domain.models import RequirementCriteria, VehicleCriteria, VehicleType
from app.state import (
    PENDING_VEHICLE_MATCH_KEY,
    InMemoryKeyValueStore,
    PendingMatchStore,
    SqlKeyValueStore,
    StateStoreError,
    requirement_dismissed_key,
    vehicle_dismissed_key,
)
from app.state.keys import build_state_key, escape_key_part


@pytest.fixture
def innova():
    return VehicleCriteria(vehicle_type=VehicleType.CAR, make="Toyota", model="Innova", year=2021)


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return PendingMatchStore(kv)


class TestStateKeys:
    """Tests for composite key construction."""

    def test_vehicle_key_format(self, innova):
        """Vehicle dismissal keys list user, type, make, model and year."""
        assert (
            vehicle_dismissed_key("user-1", innova)
            == "vehicle-match-dismissed:user-1:car:Toyota:Innova:2021"
        )

    def test_anonymous_user_is_guest(self, innova):
        """A missing user id is recorded as 'guest'."""
        assert vehicle_dismissed_key(None, innova).startswith("vehicle-match-dismissed:guest:")

    def test_requirement_key_with_missing_parts(self):
        """Absent requirement fields serialize as empty parts."""
        criteria = RequirementCriteria(vehicle_type="bike", make="Bajaj", year_range_min=2018)

        assert (
            requirement_dismissed_key("u", criteria)
            == "requirement-match-dismissed:u:bike:Bajaj::2018:"
        )

    def test_separator_inside_part_is_escaped(self):
        """A ':' or '%' inside a part cannot shift the other parts."""
        assert escape_key_part("a:b%c") == "a%3Ab%25c"
        assert build_state_key("p", ("a:b", "c")) != build_state_key("p", ("a", "b:c"))


class TestPendingVehicleMatch:
    """Tests for the single pending slot."""

    def test_round_trip(self, store, innova):
        """set then get returns equal criteria."""
        store.set_pending_vehicle_match(innova)

        assert store.get_pending_vehicle_match() == innova

    def test_stored_as_json_object(self, store, kv, innova):
        """The slot holds a JSON object with the four fields."""
        store.set_pending_vehicle_match(innova)

        assert json.loads(kv.get_item(PENDING_VEHICLE_MATCH_KEY)) == {
            "make": "Toyota",
            "model": "Innova",
            "year": 2021,
            "vehicle_type": "car",
        }

    def test_later_post_overwrites(self, store, innova):
        """Only the most recent pending match is kept."""
        fortuner = VehicleCriteria(vehicle_type="car", make="Toyota", model="Fortuner", year=2020)
        store.set_pending_vehicle_match(innova)
        store.set_pending_vehicle_match(fortuner)

        assert store.get_pending_vehicle_match() == fortuner

    def test_absent_slot(self, store):
        """An empty store has no pending match."""
        assert store.get_pending_vehicle_match() is None

    def test_clear(self, store, innova):
        """clear removes the slot."""
        store.set_pending_vehicle_match(innova)
        store.clear_pending_vehicle_match()

        assert store.get_pending_vehicle_match() is None

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            "[1, 2, 3]",
            '"a string"',
            '{"make": "Toyota", "model": "Innova", "year": 2021}',
            '{"make": "", "model": "Innova", "year": 2021, "vehicle_type": "car"}',
            '{"make": "Toyota", "model": "Innova", "year": 0, "vehicle_type": "car"}',
            '{"make": "Toyota", "model": "Innova", "year": 2021, "vehicle_type": "boat"}',
        ],
    )
    def test_corrupted_slot_is_deleted(self, raw, kv, store, caplog):
        """Malformed or incomplete entries read as absent and are removed."""
        kv.set_item(PENDING_VEHICLE_MATCH_KEY, raw)

        with caplog.at_level(logging.WARNING):
            assert store.get_pending_vehicle_match() is None

        assert kv.get_item(PENDING_VEHICLE_MATCH_KEY) is None
        assert any(getattr(r, "event", None) == "state.pending.malformed" for r in caplog.records)


class TestDismissals:
    """Tests for permanent dismissal flags."""

    def test_set_dismissed_is_idempotent(self, store, kv, innova):
        """Dismissing twice leaves one flag and is_dismissed stays True."""
        store.set_dismissed("user-1", innova)
        store.set_dismissed("user-1", innova)

        assert store.is_dismissed("user-1", innova)
        assert kv.get_item(vehicle_dismissed_key("user-1", innova)) is not None

    def test_dismissal_is_per_user_and_signature(self, store, innova):
        """Other users and other years are unaffected."""
        store.set_dismissed("user-1", innova)

        assert not store.is_dismissed("user-2", innova)
        assert not store.is_dismissed("user-1", innova.model_copy(update={"year": 2022}))

    def test_requirement_dismissal(self, store):
        """Requirement signatures are dismissed independently of vehicles."""
        criteria = RequirementCriteria(vehicle_type="car", make="Honda")
        store.set_requirement_dismissed(None, criteria)

        assert store.is_requirement_dismissed(None, criteria)
        assert not store.is_requirement_dismissed(None, criteria.model_copy(update={"model": "City"}))


class TestStoreFailures:
    """Tests for storage errors degrading to 'absent'."""

    def test_read_failure_is_absent(self, innova, caplog):
        """A failing get_item reads as no pending match and not dismissed."""
        kv = Mock()
        kv.get_item.side_effect = StateStoreError("disk full")
        store = PendingMatchStore(kv)

        with caplog.at_level(logging.WARNING):
            assert store.get_pending_vehicle_match() is None
            assert store.is_dismissed("user-1", innova) is False

        assert any(getattr(r, "event", None) == "state.store.failed" for r in caplog.records)

    def test_write_failure_does_not_raise(self, innova):
        """Failing writes are logged, not raised."""
        kv = Mock()
        kv.set_item.side_effect = StateStoreError("read-only")
        kv.remove_item.side_effect = StateStoreError("read-only")
        store = PendingMatchStore(kv)

        store.set_pending_vehicle_match(innova)
        store.set_dismissed("user-1", innova)
        store.clear_pending_vehicle_match()


class TestSqlKeyValueStore:
    """Tests for the database-backed store."""

    def test_round_trip_through_database(self, database, innova):
        """PendingMatchStore works the same on top of SqlKeyValueStore."""
        store = PendingMatchStore(SqlKeyValueStore("profile-1"))

        store.set_pending_vehicle_match(innova)
        store.set_dismissed("user-1", innova)

        assert store.get_pending_vehicle_match() == innova
        assert store.is_dismissed("user-1", innova)

        store.clear_pending_vehicle_match()
        assert store.get_pending_vehicle_match() is None

    def test_profiles_do_not_share_state(self, database, innova):
        """Two profiles keep separate pending slots."""
        PendingMatchStore(SqlKeyValueStore("profile-1")).set_pending_vehicle_match(innova)

        assert PendingMatchStore(SqlKeyValueStore("profile-2")).get_pending_vehicle_match() is None

    def test_uninitialized_database_raises_state_store_error(self):
        """Persistence failures surface as StateStoreError."""
        from app.persistence import close_database

        close_database()
        with pytest.raises(StateStoreError):
            SqlKeyValueStore("profile-1").get_item("k")

    def test_empty_profile_id_rejected(self):
        """A profile id is required."""
        with pytest.raises(ValueError):
            SqlKeyValueStore("")
