"""
Tools Package
Leaf utilities for MedMinder: clock, frequency rules, schedule model, notifications
"""

from .clock import (
    Clock,
    SystemClock,
    FrozenClock,
    system_clock
)

from .frequency import (
    is_prn_frequency,
    get_recommended_spacing,
    classify_frequency,
    fallback_times_from_frequency
)

from .schedule_model import (
    Schedule,
    Medication,
    normalize_date,
    normalize_time,
    slot_key,
    parse_slot_key,
    slot_instant
)

from .notification_service import (
    NotificationService,
    NotificationType,
    NotificationRequest,
    NotificationResult,
    notification_service
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "FrozenClock",
    "system_clock",

    # Frequency
    "is_prn_frequency",
    "get_recommended_spacing",
    "classify_frequency",
    "fallback_times_from_frequency",

    # Schedule Model
    "Schedule",
    "Medication",
    "normalize_date",
    "normalize_time",
    "slot_key",
    "parse_slot_key",
    "slot_instant",

    # Notification Service
    "NotificationService",
    "NotificationType",
    "NotificationRequest",
    "NotificationResult",
    "notification_service",
]
