"""
Dose Safety Service
Validates a proposed dose transition before the ledger commits it
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from config import tracker_config
from models import DoseStatus, FoodConstraint
from tools.frequency import get_recommended_spacing
from tools.schedule_model import Schedule, key_instant, parse_slot_key, slot_instant, slot_key


logger = logging.getLogger(__name__)


@dataclass
class DoseSafetyCheck:
    """
    Outcome of the safety gate

    Errors block the commit. Warnings are advisory and need the user's
    confirmation before the caller proceeds.
    """
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def can_proceed(self) -> bool:
        return not self.errors

    @property
    def is_safe(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "can_proceed": self.can_proceed,
            "is_safe": self.is_safe,
        }


def _in_meal_window(hour: int) -> bool:
    return any(start <= hour <= end for start, end in tracker_config.MEAL_WINDOWS)


def check_dose_safety(
    schedule: Schedule,
    slot_date: str,
    clock_time: str,
    proposed_status: Optional[DoseStatus],
    ledger: Mapping[str, DoseStatus]
) -> DoseSafetyCheck:
    """
    Run the spacing, duplicate, daily-maximum and food-timing rules

    Args:
        schedule: Schedule of the medication
        slot_date: Date of the slot being marked
        clock_time: Scheduled clock time of the slot
        proposed_status: Status the caller wants to write
        ledger: The medication's current dose entries

    Returns:
        DoseSafetyCheck with blocking errors and advisory warnings
    """
    check = DoseSafetyCheck()
    key = slot_key(slot_date, clock_time)
    proposed = slot_instant(slot_date, clock_time)

    # Rule 1: duplicate
    if ledger.get(key) == DoseStatus.TAKEN:
        check.errors.append("This dose has already been marked as taken.")
        return check

    taken_instants = sorted(
        key_instant(k) for k, status in ledger.items() if status == DoseStatus.TAKEN
    )

    # Rule 2: spacing since the most recent earlier dose
    prior = [instant for instant in taken_instants if instant < proposed]
    if prior:
        min_spacing = get_recommended_spacing(schedule.frequency)
        hours_since = (proposed - prior[-1]).total_seconds() / 3600
        if hours_since < min_spacing:
            check.warnings.append(
                f"This dose is only {round(hours_since, 1)} hours after your last dose. "
                f"Minimum recommended spacing is {min_spacing:g} hours."
            )

    # Rule 3: marking ahead of a later recorded dose
    if taken_instants and taken_instants[-1] > proposed:
        hours_early = (taken_instants[-1] - proposed).total_seconds() / 3600
        if hours_early < tracker_config.EARLY_MARK_WINDOW_HOURS:
            check.warnings.append(
                f"You're marking this dose {round(hours_early * 60)} minutes early. "
                f"Make sure you're taking it at the correct time."
            )

    # Rule 4: daily maximum
    day = parse_slot_key(key)[0]
    taken_today = sum(
        1 for k, status in ledger.items()
        if status == DoseStatus.TAKEN and parse_slot_key(k)[0] == day
    )
    max_daily = schedule.doses_per_day
    if proposed_status == DoseStatus.TAKEN and taken_today >= max_daily:
        check.errors.append(
            f"You've already taken {taken_today} dose(s) of {schedule.medication_name} today. "
            f"The scheduled maximum is {max_daily} dose(s)."
        )

    # Rule 5: empty-stomach medication at a typical meal time
    if schedule.food == FoodConstraint.WITHOUT_FOOD and _in_meal_window(proposed.hour):
        check.warnings.append(
            "This medication should be taken on an empty stomach. "
            "It's currently a typical meal time - make sure you haven't eaten recently."
        )

    if check.errors:
        logger.debug(f"Safety gate blocked {key} for {schedule.medication_name}: {check.errors}")

    return check
