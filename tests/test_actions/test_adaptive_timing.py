"""
Tests for Adaptive Timing
"""

import pytest

from actions.adaptive_timing import (
    NotificationBehavior,
    calculate_adaptive_reminder_time,
    update_notification_behavior,
)


class TestAdaptiveReminderTime:
    """Tests for the earlier first reminder"""

    @pytest.mark.unit
    def test_no_history(self):
        assert calculate_adaptive_reminder_time("08:00", None) == "08:00"

    @pytest.mark.unit
    def test_wraps_past_midnight(self):
        behavior = NotificationBehavior(medication_id="m1", average_response_time=30)

        assert calculate_adaptive_reminder_time("00:10", behavior) == "23:40"

    @pytest.mark.unit
    def test_shift_capped_at_thirty_minutes(self):
        behavior = NotificationBehavior(medication_id="m1", average_response_time=90)

        assert calculate_adaptive_reminder_time("09:00", behavior) == "08:30"


class TestUpdateNotificationBehavior:
    """Tests for folding recorded doses into the lateness average"""

    @pytest.mark.unit
    def test_first_then_weighted_average(self):
        behaviors = update_notification_behavior("m1", "08:00", "08:20", {})
        assert behaviors["m1"].average_response_time == pytest.approx(20.0)
        assert behaviors["m1"].adjusted_times == ("07:40",)

        behaviors = update_notification_behavior("m1", "08:00", "08:30", behaviors)

        assert behaviors["m1"].average_response_time == pytest.approx(23.0)
        assert behaviors["m1"].late_dose_count == 2
        assert behaviors["m1"].adjusted_times == ("07:40", "07:37")

    @pytest.mark.unit
    def test_on_time_dose_leaves_average(self):
        start = {"m1": NotificationBehavior(medication_id="m1", average_response_time=10, late_dose_count=1)}

        behaviors = update_notification_behavior("m1", "08:00", "07:55", start)

        assert behaviors["m1"].average_response_time == 10
        assert behaviors["m1"].late_dose_count == 1

    @pytest.mark.unit
    def test_input_not_mutated(self):
        start = {}

        behaviors = update_notification_behavior("m1", "08:00", None, start)

        assert start == {}
        assert behaviors["m1"].adjusted_times == ("08:00",)
