"""
Check-In Service
Periodic review reminders for long-term and chronic-condition medications
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

from config import tracker_config
from models import CheckInType, DoseStatus
from tools.schedule_model import Medication, normalize_date, parse_slot_key


logger = logging.getLogger(__name__)

# check_ins[medication_id] keys
CHECKIN_KEY = "checkin"
REVIEW_KEY = "review"


@dataclass
class CheckInReminder:
    id: str
    medication_id: str
    medication_name: str
    type: CheckInType
    last_check_in: str
    next_check_in: str
    message: str
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            "type": self.type.value,
            "last_check_in": self.last_check_in,
            "next_check_in": self.next_check_in,
            "message": self.message,
            "priority": self.priority,
        }


def _first_taken_date(med: Medication) -> Optional[date]:
    taken = [parse_slot_key(k)[0] for k, s in med.dose_status.items() if s == DoseStatus.TAKEN]
    return date.fromisoformat(min(taken)) if taken else None


def is_chronic_medication(med: Medication) -> bool:
    haystack = f"{med.name} {med.drug_class or ''}".lower()
    return any(condition in haystack for condition in tracker_config.CHRONIC_CONDITIONS)


def generate_check_in_reminders(
    medications: Iterable[Medication],
    check_ins: Mapping[str, Mapping[str, str]],
    today: date
) -> List[CheckInReminder]:
    """
    Reminders to review medications that have been taken for a long time

    Args:
        medications: Medications to inspect
        check_ins: Last completion dates keyed by medication id, then kind
        today: Current calendar date
    """
    reminders = []

    for med in medications:
        first_dose = _first_taken_date(med)
        if first_dose is None:
            continue

        days_on_medication = (today - first_dose).days
        completed = check_ins.get(med.id, {})

        if days_on_medication >= tracker_config.LONG_TERM_CHECKIN_DAYS:
            last = date.fromisoformat(completed[CHECKIN_KEY]) if completed.get(CHECKIN_KEY) else first_dose
            days_since = (today - last).days
            if days_since >= tracker_config.LONG_TERM_CHECKIN_DAYS:
                reminders.append(CheckInReminder(
                    id=f"checkin-{med.id}",
                    medication_id=med.id,
                    medication_name=med.name,
                    type=CheckInType.LONG_TERM,
                    last_check_in=normalize_date(last),
                    next_check_in=normalize_date(today + timedelta(days=tracker_config.LONG_TERM_CHECKIN_DAYS)),
                    message=(
                        f"It's been {days_since // 30} months since your last check-in for {med.name}. "
                        f"Consider reviewing with your healthcare provider to ensure it's still the "
                        f"right medication and dosage for you."
                    ),
                    priority="high" if days_since >= tracker_config.LONG_TERM_HIGH_PRIORITY_DAYS else "medium",
                ))

        if is_chronic_medication(med) and days_on_medication >= tracker_config.CHRONIC_REVIEW_DAYS:
            last = date.fromisoformat(completed[REVIEW_KEY]) if completed.get(REVIEW_KEY) else first_dose
            days_since = (today - last).days
            if days_since >= tracker_config.CHRONIC_REVIEW_DAYS:
                reminders.append(CheckInReminder(
                    id=f"review-{med.id}",
                    medication_id=med.id,
                    medication_name=med.name,
                    type=CheckInType.CHRONIC,
                    last_check_in=normalize_date(last),
                    next_check_in=normalize_date(today + timedelta(days=tracker_config.CHRONIC_REVIEW_DAYS)),
                    message=(
                        f"{med.name} is a long-term medication. It's been {days_since // 30} months "
                        f"since your last review. Schedule a check-up with your doctor to review "
                        f"effectiveness and any needed adjustments."
                    ),
                    priority="high" if days_since >= tracker_config.CHRONIC_HIGH_PRIORITY_DAYS else "medium",
                ))

    return reminders
