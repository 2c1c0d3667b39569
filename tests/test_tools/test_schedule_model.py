"""
Tests for the Schedule Model
Tests slot keys, food constraints, next-dose lookup and medication records
"""

import pytest
from datetime import date, datetime

from models import DoseStatus, FoodConstraint
from tools.schedule_model import (
    Medication,
    Schedule,
    normalize_time,
    parse_food,
    parse_slot_key,
    slot_instant,
    slot_key,
)


# =============================================================================
# Slot Keys
# =============================================================================

class TestSlotKeys:
    """Tests for slot key helpers"""

    @pytest.mark.unit
    def test_slot_key_pads_time(self):
        """Test single-digit hours are zero padded"""
        assert slot_key("2024-01-05", "8:00") == "2024-01-05T08:00"

    @pytest.mark.unit
    def test_slot_key_accepts_date(self):
        assert slot_key(date(2024, 1, 5), "20:30") == "2024-01-05T20:30"

    @pytest.mark.unit
    def test_parse_slot_key(self):
        assert parse_slot_key("2024-01-05T08:00") == ("2024-01-05", "08:00")

    @pytest.mark.unit
    def test_slot_instant(self):
        assert slot_instant("2024-01-05", "08:15") == datetime(2024, 1, 5, 8, 15)

    @pytest.mark.unit
    def test_invalid_time_rejected(self):
        """Test malformed clock times raise ValueError"""
        with pytest.raises(ValueError):
            normalize_time("25:00")


class TestParseFood:
    """Tests for food constraint parsing"""

    @pytest.mark.unit
    def test_aliases(self):
        assert parse_food("With food") == FoodConstraint.WITH_FOOD
        assert parse_food("without-food") == FoodConstraint.WITHOUT_FOOD
        assert parse_food(None) == FoodConstraint.NONE

    @pytest.mark.unit
    def test_unknown_value(self):
        with pytest.raises(ValueError):
            parse_food("after dinner")


# =============================================================================
# Schedule
# =============================================================================

class TestSchedule:
    """Tests for the schedule entity"""

    @pytest.fixture
    def schedule(self):
        return Schedule(
            medication_id="m1",
            medication_name="Metformin",
            times=("20:00", "08:00"),
            frequency="twice daily",
        )

    @pytest.mark.unit
    def test_slots_for_date_sorted(self, schedule):
        """Test slots come back in clock order"""
        assert schedule.slots_for_date("2024-01-05") == ["2024-01-05T08:00", "2024-01-05T20:00"]

    @pytest.mark.unit
    def test_next_slot_same_day(self, schedule):
        assert schedule.next_slot_after(datetime(2024, 1, 5, 8, 0)) == datetime(2024, 1, 5, 20, 0)

    @pytest.mark.unit
    def test_next_slot_rolls_to_next_day(self, schedule):
        """Test the next dose after the last slot is tomorrow's first"""
        assert schedule.next_slot_after(datetime(2024, 1, 5, 20, 0)) == datetime(2024, 1, 6, 8, 0)

    @pytest.mark.unit
    def test_no_times(self):
        empty = Schedule(medication_id="m2", medication_name="Ibuprofen", times=())
        assert empty.next_slot_after(datetime(2024, 1, 5, 8, 0)) is None


# =============================================================================
# Medication
# =============================================================================

class TestMedication:
    """Tests for the medication record"""

    @pytest.mark.unit
    def test_normalizes_on_create(self):
        """Test times, food and ledger values are normalized"""
        med = Medication(
            name="Lisinopril",
            times=["8:00"],
            food="with food",
            dose_status={"2024-01-05T08:00": "taken"},
        )
        assert med.times == ["08:00"]
        assert med.food == FoodConstraint.WITH_FOOD
        assert med.dose_status["2024-01-05T08:00"] == DoseStatus.TAKEN

    @pytest.mark.unit
    def test_needs_refill(self):
        assert Medication(name="A", quantity=5, refill_threshold=5).needs_refill is True
        assert Medication(name="A", quantity=6, refill_threshold=5).needs_refill is False
        assert Medication(name="A", quantity=5).needs_refill is False

    @pytest.mark.unit
    def test_from_dict_restores_ledger(self):
        """Test a stored record comes back with typed ledger entries"""
        med = Medication(name="Lisinopril", times=["08:00"], quantity=10)
        med.dose_status["2024-01-05T08:00"] = DoseStatus.SKIPPED

        restored = Medication.from_dict(med.to_dict())

        assert restored.id == med.id
        assert restored.dose_status == {"2024-01-05T08:00": DoseStatus.SKIPPED}
        assert restored.quantity == 10
