"""
Tests for the Behavior Engine
Tests weekday miss patterns and time-of-day windows
"""

import pytest
from datetime import date, datetime, timedelta

from models import DoseStatus, PatternType
from actions.behavior_engine import analyze_behavioral_patterns, get_time_window
from tools.schedule_model import Medication


def january_history(skip_days):
    """Daily 08:00 doses taken Jan 2-28 2024 except on the given days"""
    med = Medication(id="m1", name="Metformin", frequency="once daily", times=["08:00"])
    day = date(2024, 1, 2)
    while day <= date(2024, 1, 28):
        if day.day not in skip_days:
            med.dose_status[f"{day.isoformat()}T08:00"] = DoseStatus.TAKEN
        day += timedelta(days=1)
    return med


class TestBehavioralPatterns:
    """Tests for analyze_behavioral_patterns"""

    @pytest.mark.unit
    def test_missed_mondays(self):
        """Test three missed Mondays and a busy morning window"""
        med = january_history(skip_days={8, 15, 22})

        patterns = analyze_behavioral_patterns([med], datetime(2024, 1, 28, 23, 0))

        missed, late = patterns
        assert missed.pattern_type == PatternType.MISSED_DAY
        assert missed.day_of_week == 0
        assert missed.frequency == 3
        assert "Monday" in missed.suggestion
        assert late.pattern_type == PatternType.LATE_TIME
        assert late.time_window == "morning"
        assert late.frequency == 24

    @pytest.mark.unit
    def test_below_threshold(self):
        med = january_history(skip_days={8, 15})

        patterns = analyze_behavioral_patterns([med], datetime(2024, 1, 28, 23, 0))

        assert [p.pattern_type for p in patterns] == [PatternType.LATE_TIME]

    @pytest.mark.unit
    def test_empty_history(self):
        med = Medication(id="m1", name="Metformin", times=["08:00"])

        assert analyze_behavioral_patterns([med], datetime(2024, 1, 28, 23, 0)) == []

    @pytest.mark.unit
    def test_to_dict_names_day(self):
        med = january_history(skip_days={8, 15, 22})

        data = analyze_behavioral_patterns([med], datetime(2024, 1, 28, 23, 0))[0].to_dict()

        assert data["pattern_type"] == "missed_day"
        assert data["day_name"] == "Monday"


class TestTimeWindows:
    """Tests for time-of-day windows"""

    @pytest.mark.unit
    @pytest.mark.parametrize("clock_time,window", [
        ("05:00", "morning"),
        ("11:59", "morning"),
        ("12:00", "afternoon"),
        ("17:00", "evening"),
        ("21:00", "bedtime"),
        ("04:59", "bedtime"),
    ])
    def test_windows(self, clock_time, window):
        assert get_time_window(clock_time) == window
