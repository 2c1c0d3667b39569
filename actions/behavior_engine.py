"""
Behavior Engine
Mines the dose ledger for recurring miss and timing patterns
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from config import tracker_config
from models import DoseStatus, PatternType
from tools.schedule_model import Medication, normalize_date, parse_slot_key, slot_instant, slot_key


logger = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
TIME_WINDOWS = ["morning", "afternoon", "evening", "bedtime"]


@dataclass
class BehavioralPattern:
    """A recurring pattern found in one medication's history"""
    medication_id: str
    pattern_type: PatternType
    frequency: int
    suggestion: str
    day_of_week: Optional[int] = None  # Monday = 0
    time_window: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "pattern_type": self.pattern_type.value,
            "frequency": self.frequency,
            "suggestion": self.suggestion,
            "day_of_week": self.day_of_week,
            "day_name": DAY_NAMES[self.day_of_week] if self.day_of_week is not None else None,
            "time_window": self.time_window,
        }


def get_time_window(clock_time: str) -> str:
    """morning 05-12, afternoon 12-17, evening 17-21, bedtime otherwise"""
    hour = int(clock_time.split(":")[0])
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "bedtime"


def get_day_name(day: int) -> str:
    return DAY_NAMES[day]


def _missed_by_weekday(
    med: Medication,
    now: datetime,
    lookback_days: int
) -> Dict[int, int]:
    """Count Missing slots per weekday, never before the first recorded date"""
    counts: Dict[int, int] = defaultdict(int)
    if not med.dose_status or not med.times:
        return counts

    earliest = min(parse_slot_key(key)[0] for key in med.dose_status)
    start = max(
        datetime.strptime(earliest, "%Y-%m-%d").date(),
        now.date() - timedelta(days=lookback_days - 1),
    )

    day = start
    while day <= now.date():
        day_str = normalize_date(day)
        for clock_time in med.times:
            if slot_instant(day_str, clock_time) <= now and slot_key(day_str, clock_time) not in med.dose_status:
                counts[day.weekday()] += 1
        day += timedelta(days=1)
    return counts


def _taken_by_window(med: Medication) -> Dict[str, int]:
    """
    Taken entries per time-of-day window

    Only the scheduled slot is recorded, never the moment the dose was
    actually taken, so this counts doses per window rather than measuring
    real lateness.
    """
    counts: Dict[str, int] = defaultdict(int)
    for key, status in med.dose_status.items():
        if status == DoseStatus.TAKEN:
            counts[get_time_window(parse_slot_key(key)[1])] += 1
    return counts


def analyze_behavioral_patterns(
    medications: Iterable[Medication],
    now: datetime,
    lookback_days: int = tracker_config.BEHAVIOR_LOOKBACK_DAYS
) -> List[BehavioralPattern]:
    """
    Find the most-missed weekday and the busiest dose window per medication

    A pattern is reported once it has occurred at least three times.
    """
    threshold = tracker_config.PATTERN_MIN_OCCURRENCES
    patterns: List[BehavioralPattern] = []

    for med in medications:
        if med.is_prn or not med.dose_status:
            continue

        missed = _missed_by_weekday(med, now, lookback_days)
        if missed:
            day, count = max(missed.items(), key=lambda item: (item[1], -item[0]))
            if count >= threshold:
                patterns.append(BehavioralPattern(
                    medication_id=med.id,
                    pattern_type=PatternType.MISSED_DAY,
                    day_of_week=day,
                    frequency=count,
                    suggestion=(
                        f"You often miss doses on {get_day_name(day)}. "
                        f"Consider setting an extra reminder for that day."
                    ),
                ))

        windows = _taken_by_window(med)
        if windows:
            window = max(TIME_WINDOWS, key=lambda w: (windows.get(w, 0), -TIME_WINDOWS.index(w)))
            count = windows.get(window, 0)
            if count >= threshold:
                patterns.append(BehavioralPattern(
                    medication_id=med.id,
                    pattern_type=PatternType.LATE_TIME,
                    time_window=window,
                    frequency=count,
                    suggestion=(
                        f"Your {window} doses are frequently late. "
                        f"Consider moving the reminder 15-30 minutes earlier."
                    ),
                ))

    logger.debug(f"Found {len(patterns)} behavioral pattern(s)")
    return patterns
