"""
Missed Dose Recovery Service
Guidance for a missed slot based on elapsed time and dosing frequency
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from config import tracker_config
from models import DoseStatus, FrequencyClass, RecoveryAction, RecoverySeverity
from tools.frequency import classify_frequency
from tools.schedule_model import Medication, Schedule, normalize_date, slot_instant, slot_key


logger = logging.getLogger(__name__)


@dataclass
class RecoveryGuidance:
    """What to do about one missed dose"""
    medication_id: str
    medication_name: str
    missed_date: str
    missed_time: str
    hours_late: float
    guidance: str
    action: RecoveryAction
    severity: RecoverySeverity
    is_critical: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            "missed_date": self.missed_date,
            "missed_time": self.missed_time,
            "hours_late": round(self.hours_late, 2),
            "guidance": self.guidance,
            "action": self.action.value,
            "severity": self.severity.value,
            "is_critical": self.is_critical,
        }


def is_critical_medication(name: str) -> bool:
    lowered = (name or "").lower()
    return any(critical in lowered for critical in tracker_config.CRITICAL_MEDICATIONS)


def _decide(
    hours_late: float,
    frequency_class: FrequencyClass,
    next_dose: Optional[datetime],
    now: datetime
) -> Tuple[RecoveryAction, RecoverySeverity, str]:
    """Decision table over lateness and frequency class"""
    take_now_hours = tracker_config.RECOVERY_TAKE_NOW_HOURS
    late_hours = tracker_config.RECOVERY_LATE_HOURS

    if hours_late < take_now_hours:
        if frequency_class == FrequencyClass.MULTIPLE_DAILY:
            return (
                RecoveryAction.TAKE_NEXT,
                RecoverySeverity.LOW,
                "Your next dose is coming up soon. Take it at its scheduled time and do not double up.",
            )
        return (
            RecoveryAction.TAKE_NOW,
            RecoverySeverity.LOW,
            f"You're less than {take_now_hours:g} hours late. You can still take this dose now.",
        )

    if hours_late < late_hours:
        if frequency_class in (FrequencyClass.DAILY, FrequencyClass.TWICE_DAILY):
            gap = timedelta(hours=tracker_config.RECOVERY_NEXT_DOSE_GAP_HOURS)
            action = (
                RecoveryAction.TAKE_NOW
                if next_dose is not None and next_dose - now > gap
                else RecoveryAction.SKIP
            )
            return (
                action,
                RecoverySeverity.MEDIUM,
                f"You're {round(hours_late)} hours late. If your next dose is more than "
                f"{tracker_config.RECOVERY_NEXT_DOSE_GAP_HOURS:g} hours away, you can take it now. "
                f"Otherwise, skip this dose and take the next one on time.",
            )
        return (
            RecoveryAction.SKIP,
            RecoverySeverity.MEDIUM,
            f"You're {round(hours_late)} hours late. For medications taken multiple times daily, "
            f"skip this dose and continue with your next scheduled dose.",
        )

    if frequency_class == FrequencyClass.DAILY:
        return (
            RecoveryAction.SKIP,
            RecoverySeverity.HIGH,
            f"You're more than {late_hours:g} hours late. Skip this dose and take your next "
            f"scheduled dose on time. Do NOT double up.",
        )
    return (
        RecoveryAction.CONSULT,
        RecoverySeverity.HIGH,
        f"You're more than {late_hours:g} hours late. Skip this dose and continue with your "
        f"regular schedule. If you're unsure, consult your pharmacist or doctor.",
    )


def get_missed_dose_recovery(
    schedule: Schedule,
    ledger: Mapping[str, DoseStatus],
    missed_date: str,
    missed_time: str,
    now: datetime
) -> Optional[RecoveryGuidance]:
    """
    Recommend an action for a missed slot

    Args:
        schedule: Schedule of the medication
        ledger: The medication's dose entries
        missed_date: Date of the missed slot
        missed_time: Scheduled clock time of the missed slot
        now: Current time

    Returns:
        RecoveryGuidance, or None when the slot is recorded or not yet due
    """
    key = slot_key(missed_date, missed_time)
    if key in ledger:
        return None

    missed_instant = slot_instant(missed_date, missed_time)
    hours_late = (now - missed_instant).total_seconds() / 3600
    if hours_late < 0:
        return None

    frequency_class = classify_frequency(schedule.frequency)
    next_dose = schedule.next_slot_after(missed_instant)
    action, severity, guidance = _decide(hours_late, frequency_class, next_dose, now)

    critical = is_critical_medication(schedule.medication_name)
    if critical:
        guidance += tracker_config.CRITICAL_ADDENDUM
        action = RecoveryAction.CONSULT
        severity = RecoverySeverity.HIGH

    logger.debug(
        f"Recovery for {schedule.medication_name} {key}: {hours_late:.1f}h late, "
        f"{frequency_class.value} -> {action.value}/{severity.value}"
    )

    return RecoveryGuidance(
        medication_id=schedule.medication_id,
        medication_name=schedule.medication_name,
        missed_date=normalize_date(missed_date),
        missed_time=missed_time,
        hours_late=hours_late,
        guidance=guidance,
        action=action,
        severity=severity,
        is_critical=critical,
    )


def find_missed_doses(
    medications: Iterable[Medication],
    now: datetime,
    lookback_days: int = tracker_config.MISSED_DOSE_LOOKBACK_DAYS
) -> List[Dict[str, Any]]:
    """
    Missing slots of the last `lookback_days` calendar days, newest first

    As-needed medications have no fixed slots and are skipped.
    """
    missed = []
    for med in medications:
        if med.is_prn:
            continue
        for offset in range(lookback_days):
            day = normalize_date(now.date() - timedelta(days=offset))
            for clock_time in med.times:
                instant = slot_instant(day, clock_time)
                if instant < now and slot_key(day, clock_time) not in med.dose_status:
                    missed.append({
                        "medication_id": med.id,
                        "medication_name": med.name,
                        "date": day,
                        "time": clock_time,
                        "instant": instant,
                    })

    missed.sort(key=lambda item: item["instant"], reverse=True)
    return missed
