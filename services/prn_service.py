"""
PRN Service
Daily cap and minimum interval for as-needed medications
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from config import tracker_config
from tools.schedule_model import normalize_date


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PRNState:
    """Per-medication counters for as-needed dosing"""
    medication_id: str
    reset_date: str
    min_interval_hours: float = tracker_config.PRN_DEFAULT_MIN_INTERVAL_HOURS
    max_per_day: int = tracker_config.PRN_DEFAULT_MAX_PER_DAY
    taken_today: int = 0
    last_taken_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "reset_date": self.reset_date,
            "min_interval_hours": self.min_interval_hours,
            "max_per_day": self.max_per_day,
            "taken_today": self.taken_today,
            "last_taken_time": self.last_taken_time.isoformat() if self.last_taken_time else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PRNState":
        last_taken = data.get("last_taken_time")
        return cls(
            medication_id=data["medication_id"],
            reset_date=data["reset_date"],
            min_interval_hours=data.get("min_interval_hours", tracker_config.PRN_DEFAULT_MIN_INTERVAL_HOURS),
            max_per_day=data.get("max_per_day", tracker_config.PRN_DEFAULT_MAX_PER_DAY),
            taken_today=data.get("taken_today", 0),
            last_taken_time=datetime.fromisoformat(last_taken) if last_taken else None,
        )


@dataclass(frozen=True)
class PRNAvailability:
    """Answer of the PRN gate"""
    can_take: bool
    reason: Optional[str] = None
    next_available_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_take": self.can_take,
            "reason": self.reason,
            "next_available_time": (
                self.next_available_time.isoformat() if self.next_available_time else None
            ),
        }


def get_default_prn_state(medication_id: str, now: datetime) -> PRNState:
    """Default limits: 4 hours apart, at most 4 a day"""
    return PRNState(medication_id=medication_id, reset_date=normalize_date(now))


def can_take_prn(state: PRNState, now: datetime) -> PRNAvailability:
    """
    Check whether an as-needed dose may be taken now

    A state last reset on another day counts as reset, so the first dose
    of a new day is always allowed.
    """
    if state.reset_date != normalize_date(now):
        return PRNAvailability(can_take=True)

    if state.taken_today >= state.max_per_day:
        tomorrow = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
        return PRNAvailability(
            can_take=False,
            reason=f"Daily limit reached ({state.max_per_day} per day). Next dose available tomorrow.",
            next_available_time=tomorrow,
        )

    if state.last_taken_time is not None:
        hours_since = (now - state.last_taken_time).total_seconds() / 3600
        if hours_since < state.min_interval_hours:
            wait_hours = math.ceil(state.min_interval_hours - hours_since)
            return PRNAvailability(
                can_take=False,
                reason=f"Minimum interval not met. Wait {wait_hours} more hour(s).",
                next_available_time=state.last_taken_time + timedelta(hours=state.min_interval_hours),
            )

    return PRNAvailability(can_take=True)


def record_prn_dose(state: PRNState, now: datetime) -> PRNState:
    """Count one as-needed dose taken at `now`"""
    today = normalize_date(now)

    if state.reset_date != today:
        return replace(state, taken_today=1, last_taken_time=now, reset_date=today)

    return replace(state, taken_today=state.taken_today + 1, last_taken_time=now)
