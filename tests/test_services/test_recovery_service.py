"""
Tests for the Missed Dose Recovery Service
Tests the lateness/frequency decision table and the critical override
"""

import pytest
from datetime import datetime

from models import DoseStatus, RecoveryAction, RecoverySeverity
from services.recovery_service import find_missed_doses, get_missed_dose_recovery
from tools.schedule_model import Medication, Schedule


def make_schedule(name="Metformin", times=("09:00",), frequency="once daily"):
    return Schedule(medication_id="m1", medication_name=name, times=tuple(times), frequency=frequency)


class TestDecisionTable:
    """Tests for recovery guidance by lateness and frequency"""

    @pytest.mark.unit
    def test_daily_three_hours_late_next_dose_far(self):
        """Test a daily dose 3h late with tomorrow's dose far away can be taken"""
        guidance = get_missed_dose_recovery(
            make_schedule(), {}, "2024-01-05", "09:00", datetime(2024, 1, 5, 12, 0)
        )

        assert guidance.action == RecoveryAction.TAKE_NOW
        assert guidance.severity == RecoverySeverity.MEDIUM
        assert guidance.hours_late == pytest.approx(3.0)

    @pytest.mark.unit
    def test_critical_override(self):
        """Test warfarin is always consult/high with the safety addendum"""
        guidance = get_missed_dose_recovery(
            make_schedule(name="Warfarin 5mg"), {}, "2024-01-05", "09:00", datetime(2024, 1, 5, 12, 0)
        )

        assert guidance.action == RecoveryAction.CONSULT
        assert guidance.severity == RecoverySeverity.HIGH
        assert guidance.is_critical is True
        assert "critical medication" in guidance.guidance

    @pytest.mark.unit
    def test_slightly_late(self):
        guidance = get_missed_dose_recovery(
            make_schedule(), {}, "2024-01-05", "09:00", datetime(2024, 1, 5, 10, 0)
        )

        assert guidance.action == RecoveryAction.TAKE_NOW
        assert guidance.severity == RecoverySeverity.LOW

    @pytest.mark.unit
    def test_slightly_late_multiple_daily(self):
        """Test frequent dosing waits for the next dose instead"""
        schedule = make_schedule(times=("08:00", "14:00", "20:00"), frequency="three times daily")

        guidance = get_missed_dose_recovery(schedule, {}, "2024-01-05", "08:00", datetime(2024, 1, 5, 9, 0))

        assert guidance.action == RecoveryAction.TAKE_NEXT
        assert guidance.severity == RecoverySeverity.LOW

    @pytest.mark.unit
    def test_twice_daily_next_dose_close(self):
        """Test skipping when the next dose is within four hours"""
        schedule = make_schedule(times=("08:00", "14:00"), frequency="twice daily")

        guidance = get_missed_dose_recovery(schedule, {}, "2024-01-05", "08:00", datetime(2024, 1, 5, 11, 0))

        assert guidance.action == RecoveryAction.SKIP
        assert guidance.severity == RecoverySeverity.MEDIUM

    @pytest.mark.unit
    def test_multiple_daily_moderately_late(self):
        schedule = make_schedule(times=("06:00", "12:00", "18:00", "23:00"), frequency="four times daily")

        guidance = get_missed_dose_recovery(schedule, {}, "2024-01-05", "06:00", datetime(2024, 1, 5, 9, 0))

        assert guidance.action == RecoveryAction.SKIP
        assert guidance.severity == RecoverySeverity.MEDIUM

    @pytest.mark.unit
    def test_daily_very_late(self):
        guidance = get_missed_dose_recovery(
            make_schedule(), {}, "2024-01-05", "09:00", datetime(2024, 1, 5, 15, 0)
        )

        assert guidance.action == RecoveryAction.SKIP
        assert guidance.severity == RecoverySeverity.HIGH

    @pytest.mark.unit
    def test_twice_daily_very_late(self):
        schedule = make_schedule(times=("08:00", "20:00"), frequency="twice daily")

        guidance = get_missed_dose_recovery(schedule, {}, "2024-01-05", "08:00", datetime(2024, 1, 5, 13, 0))

        assert guidance.action == RecoveryAction.CONSULT
        assert guidance.severity == RecoverySeverity.HIGH


class TestNoGuidance:
    """Tests for slots that need no guidance"""

    @pytest.mark.unit
    def test_recorded_slot(self):
        ledger = {"2024-01-05T09:00": DoseStatus.SKIPPED}

        assert get_missed_dose_recovery(
            make_schedule(), ledger, "2024-01-05", "09:00", datetime(2024, 1, 5, 12, 0)
        ) is None

    @pytest.mark.unit
    def test_not_yet_due(self):
        assert get_missed_dose_recovery(
            make_schedule(), {}, "2024-01-05", "09:00", datetime(2024, 1, 5, 8, 0)
        ) is None


class TestFindMissedDoses:
    """Tests for the missed-dose sweep"""

    @pytest.mark.unit
    def test_today_and_yesterday_newest_first(self):
        med = Medication(name="Metformin", frequency="twice daily", times=["08:00", "20:00"])
        med.dose_status["2024-01-04T08:00"] = DoseStatus.TAKEN

        missed = find_missed_doses([med], datetime(2024, 1, 5, 9, 0))

        assert [(m["date"], m["time"]) for m in missed] == [
            ("2024-01-05", "08:00"),
            ("2024-01-04", "20:00"),
        ]

    @pytest.mark.unit
    def test_prn_skipped(self):
        med = Medication(name="Ibuprofen", frequency="as needed", times=["08:00"])

        assert find_missed_doses([med], datetime(2024, 1, 5, 9, 0)) == []
