"""
Adaptive Timing
Learns how late doses are taken and moves the first reminder earlier
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from config import tracker_config
from tools.schedule_model import normalize_time


logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class NotificationBehavior:
    """Reminder state and learned lateness of one medication"""
    medication_id: str
    snooze_count: int = 0
    late_dose_count: int = 0
    average_response_time: Optional[float] = None  # minutes late, EWMA
    adjusted_times: Tuple[str, ...] = field(default_factory=tuple)
    reminder_stage: int = 0
    last_reminder_time: Optional[datetime] = None
    snoozed_until: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "snooze_count": self.snooze_count,
            "late_dose_count": self.late_dose_count,
            "average_response_time": self.average_response_time,
            "adjusted_times": list(self.adjusted_times),
            "reminder_stage": self.reminder_stage,
            "last_reminder_time": self.last_reminder_time.isoformat() if self.last_reminder_time else None,
            "snoozed_until": self.snoozed_until.isoformat() if self.snoozed_until else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationBehavior":
        def _dt(value):
            return datetime.fromisoformat(value) if value else None

        return cls(
            medication_id=data["medication_id"],
            snooze_count=data.get("snooze_count", 0),
            late_dose_count=data.get("late_dose_count", 0),
            average_response_time=data.get("average_response_time"),
            adjusted_times=tuple(data.get("adjusted_times") or ()),
            reminder_stage=data.get("reminder_stage", 0),
            last_reminder_time=_dt(data.get("last_reminder_time")),
            snoozed_until=_dt(data.get("snoozed_until")),
        )


def _to_minutes(clock_time: str) -> int:
    hours, minutes = normalize_time(clock_time).split(":")
    return int(hours) * 60 + int(minutes)


def _from_minutes(total: float) -> str:
    total = int(round(total)) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def adaptive_shift_minutes(behavior: Optional[NotificationBehavior]) -> float:
    """How many minutes earlier the first reminder should fire"""
    if behavior is None or not behavior.average_response_time or behavior.average_response_time <= 0:
        return 0
    return min(behavior.average_response_time, tracker_config.MAX_ADAPTIVE_SHIFT_MINUTES)


def calculate_adaptive_reminder_time(
    scheduled_time: str,
    behavior: Optional[NotificationBehavior]
) -> str:
    """
    Scheduled clock time moved earlier by the learned lateness

    The shift is capped at 30 minutes and wraps past midnight.
    """
    shift = adaptive_shift_minutes(behavior)
    if not shift:
        return normalize_time(scheduled_time)
    return _from_minutes(_to_minutes(scheduled_time) - shift)


def update_notification_behavior(
    medication_id: str,
    scheduled_time: str,
    actual_time: Optional[str],
    behaviors: Mapping[str, NotificationBehavior]
) -> Dict[str, NotificationBehavior]:
    """
    Fold one recorded dose into the medication's behavior

    Args:
        medication_id: Medication ID
        scheduled_time: Scheduled clock time of the slot
        actual_time: Clock time the dose was recorded, or None
        behaviors: Current behaviors keyed by medication id

    Returns:
        A new mapping with the medication's behavior replaced
    """
    behavior = behaviors.get(medication_id) or NotificationBehavior(medication_id=medication_id)

    if actual_time:
        diff_minutes = _to_minutes(actual_time) - _to_minutes(scheduled_time)
        if diff_minutes > 0:
            if not behavior.average_response_time:
                average = float(diff_minutes)
            else:
                average = (
                    behavior.average_response_time * tracker_config.EWMA_HISTORY_WEIGHT
                    + diff_minutes * tracker_config.EWMA_SAMPLE_WEIGHT
                )
            behavior = replace(
                behavior,
                late_dose_count=behavior.late_dose_count + 1,
                average_response_time=average,
            )
            logger.debug(f"Medication {medication_id} late by {diff_minutes} min, average now {average:.1f}")

    adjusted = calculate_adaptive_reminder_time(scheduled_time, behavior)
    if adjusted not in behavior.adjusted_times:
        behavior = replace(behavior, adjusted_times=behavior.adjusted_times + (adjusted,))

    updated = dict(behaviors)
    updated[medication_id] = behavior
    return updated
