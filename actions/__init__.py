"""
Actions Module
Engines for reminders, adaptive timing and behavior patterns
"""

from .adaptive_timing import (
    NotificationBehavior,
    calculate_adaptive_reminder_time,
    update_notification_behavior
)

from .reminder_engine import (
    ReminderStage,
    DueReminder,
    ReminderEngine,
    reminder_engine,
    calculate_reminder_stages,
    should_send_reminder,
    get_snooze_options,
    calculate_snooze_time,
    update_reminder_stage,
    reset_reminder_stage
)

from .behavior_engine import (
    BehavioralPattern,
    analyze_behavioral_patterns,
    get_time_window
)


__all__ = [
    # Adaptive Timing
    "NotificationBehavior",
    "calculate_adaptive_reminder_time",
    "update_notification_behavior",

    # Reminder Engine
    "ReminderStage",
    "DueReminder",
    "ReminderEngine",
    "reminder_engine",
    "calculate_reminder_stages",
    "should_send_reminder",
    "get_snooze_options",
    "calculate_snooze_time",
    "update_reminder_stage",
    "reset_reminder_stage",

    # Behavior Engine
    "BehavioralPattern",
    "analyze_behavioral_patterns",
    "get_time_window",
]
