"""
Tests for Adherence Service
Tests streaks, milestones, badges, weekly summaries and motivational messages
"""

import random
import pytest
from datetime import date, datetime, timedelta

from models import DoseStatus, MilestoneType
from services.adherence_service import AdherenceService, AdherenceStreak, get_week_start
from tools.schedule_model import Medication


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def adherence_service():
    """Create adherence service instance"""
    return AdherenceService()


def medication_with(taken_days, times=("08:00",), skipped_days=()):
    med = Medication(name="Metformin", times=list(times))
    for day in taken_days:
        for t in times:
            med.dose_status[f"{day}T{t}"] = DoseStatus.TAKEN
    for day in skipped_days:
        med.dose_status[f"{day}T{times[0]}"] = DoseStatus.SKIPPED
    return med


def consecutive_days(end: date, count: int):
    return [(end - timedelta(days=i)).isoformat() for i in range(count)]


# =============================================================================
# Streak Tests
# =============================================================================

class TestAdherenceStreak:
    """Tests for streak calculation"""

    @pytest.mark.unit
    def test_gap_breaks_current_streak(self, adherence_service):
        """Test taken on Jan 1-3 and Jan 5 gives current 1, longest 3"""
        med = medication_with(["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-05"])

        streak = adherence_service.calculate_adherence_streak([med], date(2024, 1, 5))

        assert streak.current_streak == 1
        assert streak.longest_streak == 3
        assert streak.total_doses_taken == 4
        assert streak.last_streak_date == "2024-01-05"

    @pytest.mark.unit
    def test_no_dose_today(self, adherence_service):
        """Test the current streak is zero without a dose today"""
        med = medication_with(["2024-01-03", "2024-01-04"])

        streak = adherence_service.calculate_adherence_streak([med], date(2024, 1, 5))

        assert streak.current_streak == 0
        assert streak.longest_streak == 2

    @pytest.mark.unit
    def test_skipped_days_do_not_count(self, adherence_service):
        med = medication_with(["2024-01-05"], skipped_days=["2024-01-04"])

        streak = adherence_service.calculate_adherence_streak([med], date(2024, 1, 5))

        assert streak.current_streak == 1

    @pytest.mark.unit
    def test_streak_spans_medications(self, adherence_service):
        """Test any medication's dose keeps the day in the streak"""
        first = medication_with(["2024-01-04"])
        second = medication_with(["2024-01-05"])

        streak = adherence_service.calculate_adherence_streak([first, second], date(2024, 1, 5))

        assert streak.current_streak == 2

    @pytest.mark.unit
    def test_empty_ledger(self, adherence_service):
        streak = adherence_service.calculate_adherence_streak([], date(2024, 1, 5))

        assert streak.current_streak == 0
        assert streak.longest_streak == 0
        assert streak.total_doses_taken == 0


# =============================================================================
# Milestone & Badge Tests
# =============================================================================

class TestMilestones:
    """Tests for milestone evaluation"""

    @pytest.mark.unit
    def test_week_milestone(self, adherence_service):
        today = date(2024, 1, 7)
        med = medication_with(consecutive_days(today, 7))

        streak = adherence_service.calculate_adherence_streak([med], today)
        milestones = {m.id: m for m in streak.milestones}

        assert milestones["week1"].achieved is True
        assert milestones["week1"].achieved_date == "2024-01-07"
        assert milestones["month1"].achieved is False
        assert milestones["doses50"].type == MilestoneType.DOSES

    @pytest.mark.unit
    def test_day_milestones_use_longest_streak(self, adherence_service):
        """Test a broken streak still keeps its day milestone"""
        med = medication_with(consecutive_days(date(2024, 1, 10), 7))

        streak = adherence_service.calculate_adherence_streak([med], date(2024, 1, 20))

        assert streak.current_streak == 0
        assert next(m for m in streak.milestones if m.id == "week1").achieved is True


class TestBadges:
    """Tests for badge derivation"""

    @pytest.mark.unit
    def test_multiple_badges(self, adherence_service):
        """Test several thresholds can be met at once"""
        today = date(2024, 3, 1)
        med = medication_with(consecutive_days(today, 30), times=("08:00", "20:00"))

        streak = adherence_service.calculate_adherence_streak([med], today)
        badges = {b.id for b in adherence_service.get_earned_badges(streak, today)}

        assert badges == {"streak_week", "streak_month", "doses_50"}

    @pytest.mark.unit
    def test_no_badges(self, adherence_service):
        streak = AdherenceStreak(current_streak=2, longest_streak=2, last_streak_date="2024-01-05",
                                 total_doses_taken=2)

        assert adherence_service.get_earned_badges(streak, date(2024, 1, 5)) == []


# =============================================================================
# Weekly Summary Tests
# =============================================================================

WEEK = [f"2024-01-0{day}" for day in range(1, 8)]  # Monday to Sunday


class TestWeeklySummary:
    """Tests for the weekly coaching summary"""

    @pytest.mark.unit
    @pytest.mark.parametrize("day", [date(2024, 1, 1), date(2024, 1, 5), date(2024, 1, 7)])
    def test_week_starts_on_monday(self, day):
        assert get_week_start(day) == date(2024, 1, 1)

    @pytest.mark.unit
    def test_perfect_week(self, adherence_service):
        med = medication_with(WEEK, times=("08:00", "20:00"))

        summary = adherence_service.get_weekly_summary([med], date(2024, 1, 4))

        assert summary.week_start == "2024-01-01"
        assert (summary.total_doses, summary.taken_doses, summary.missed_doses) == (14, 14, 0)
        assert summary.adherence_percentage == 100
        assert summary.best_time_window == "morning"
        assert summary.worst_time_window == "N/A"
        assert summary.achievements == [
            "Excellent adherence this week! 🌟",
            "Nearly perfect adherence! Keep it up! 🎯",
        ]
        assert summary.suggestions == ["Keep up the great work!"]

    @pytest.mark.unit
    def test_weak_evening_window(self, adherence_service):
        """Test skipped slots count toward the total but not as missed"""
        med = medication_with(WEEK, times=("08:00",))
        med.times = ["08:00", "20:00"]
        for day in WEEK[:3]:
            med.dose_status[f"{day}T20:00"] = DoseStatus.TAKEN
        med.dose_status[f"{WEEK[3]}T20:00"] = DoseStatus.SKIPPED

        summary = adherence_service.get_weekly_summary([med], date(2024, 1, 1))

        assert (summary.total_doses, summary.taken_doses, summary.missed_doses) == (14, 10, 3)
        assert summary.adherence_percentage == 71
        assert summary.best_time_window == "morning"
        assert summary.worst_time_window == "evening"
        assert summary.suggestions == [
            "Try to improve your consistency this week.",
            "Consider moving your evening medication reminder 15-30 minutes earlier for better consistency.",
        ]
        assert summary.achievements == []

    @pytest.mark.unit
    def test_no_scheduled_doses(self, adherence_service):
        prn = Medication(name="Ibuprofen", frequency="as needed")

        summary = adherence_service.get_weekly_summary([prn], date(2024, 1, 1))

        assert summary.total_doses == 0
        assert summary.adherence_percentage == 0
        assert summary.best_time_window == "N/A"
        assert summary.worst_time_window == "N/A"

    @pytest.mark.unit
    def test_future_slots_not_counted(self, adherence_service):
        med = medication_with([], times=("08:00", "20:00"))

        summary = adherence_service.get_weekly_summary(
            [med], date(2024, 1, 1), now=datetime(2024, 1, 3, 9, 0)
        )

        assert summary.total_doses == 5
        assert summary.missed_doses == 5


class TestMotivationalMessage:
    """Tests for motivational messages"""

    @pytest.mark.unit
    def test_zero_streak(self, adherence_service):
        streak = AdherenceStreak(current_streak=0, longest_streak=4, last_streak_date="2024-01-05",
                                 total_doses_taken=10)

        assert "off day" in adherence_service.get_motivational_message(streak)

    @pytest.mark.unit
    def test_short_streak(self, adherence_service):
        streak = AdherenceStreak(current_streak=3, longest_streak=3, last_streak_date="2024-01-05",
                                 total_doses_taken=3)

        assert adherence_service.get_motivational_message(streak) == "You're on a 3-day streak! Keep it up! 🔥"

    @pytest.mark.unit
    def test_long_streak_picks_from_candidates(self, adherence_service):
        streak = AdherenceStreak(current_streak=30, longest_streak=30, last_streak_date="2024-01-05",
                                 total_doses_taken=120)

        message = adherence_service.get_motivational_message(streak, rng=random.Random(1))

        assert message in {
            "Nice work staying consistent this week 👏",
            "Amazing! You've maintained your streak for a full month! 🌟",
            "You've taken 120 doses! That's dedication! 🎉",
        }
