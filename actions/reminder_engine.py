"""
Reminder Engine
Escalating reminder stages per scheduled dose and the rules that halt them
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from config import tracker_config
from models import DoseStatus
from tools.schedule_model import Medication, Schedule, normalize_date, slot_instant, slot_key
from actions.adaptive_timing import NotificationBehavior, adaptive_shift_minutes


logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (DoseStatus.TAKEN, DoseStatus.SKIPPED)


@dataclass(frozen=True)
class ReminderStage:
    """One reminder instant in the escalation ladder of a slot"""
    stage: int  # 0 = first, 1 = follow-up, 2 = check-in
    scheduled_time: str
    reminder_time: datetime
    snooze_options: Tuple[int, ...] = tuple(tracker_config.SNOOZE_OPTIONS_MINUTES)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "scheduled_time": self.scheduled_time,
            "reminder_time": self.reminder_time.isoformat(),
            "snooze_options": list(self.snooze_options),
        }


@dataclass(frozen=True)
class DueReminder:
    """A reminder the ticker should dispatch now"""
    medication_id: str
    medication_name: str
    dosage: str
    date: str
    scheduled_time: str
    stage: int
    reminder_time: datetime
    snoozed: bool = False

    @property
    def slot_key(self) -> str:
        return slot_key(self.date, self.scheduled_time)


def calculate_reminder_stages(
    schedule: Schedule,
    scheduled_time: str,
    slot_date: Union[str, date],
    behavior: Optional[NotificationBehavior] = None
) -> List[ReminderStage]:
    """
    Build the three reminder stages of one slot

    Stage 0 fires at the scheduled instant, moved earlier when the
    behavior has learned lateness. Follow-ups stay anchored to the
    scheduled instant (+15 and +30 minutes).
    """
    scheduled = slot_instant(slot_date, scheduled_time)
    shift = timedelta(minutes=adaptive_shift_minutes(behavior))

    stages = []
    for index, offset in enumerate(tracker_config.STAGE_OFFSETS_MINUTES):
        reminder_time = scheduled + timedelta(minutes=offset)
        if index == 0:
            reminder_time -= shift
        stages.append(ReminderStage(
            stage=index,
            scheduled_time=scheduled_time,
            reminder_time=reminder_time,
        ))
    return stages


def should_send_reminder(
    ledger: Mapping[str, DoseStatus],
    slot_date: Union[str, date],
    clock_time: str,
    stage_index: int,
    behavior: Optional[NotificationBehavior] = None
) -> bool:
    """
    False once the slot is Taken or Skipped, whatever the stage.

    Otherwise a stage is sent when it is at or past the medication's
    current reminder stage.
    """
    status = ledger.get(slot_key(slot_date, clock_time))
    if status in TERMINAL_STATUSES:
        return False

    current_stage = behavior.reminder_stage if behavior else 0
    return stage_index >= current_stage


def get_snooze_options() -> List[Dict[str, Any]]:
    return [
        {"label": f"{minutes} min", "minutes": minutes}
        for minutes in tracker_config.SNOOZE_OPTIONS_MINUTES
    ]


def calculate_snooze_time(now: datetime, snooze_minutes: int) -> datetime:
    """Instant a snoozed reminder comes back"""
    return now + timedelta(minutes=snooze_minutes)


def update_reminder_stage(
    behavior: NotificationBehavior,
    new_stage: int,
    now: datetime
) -> NotificationBehavior:
    """Advance escalation after a snooze"""
    return replace(
        behavior,
        reminder_stage=new_stage,
        last_reminder_time=now,
        snooze_count=behavior.snooze_count + 1,
    )


def reset_reminder_stage(behavior: NotificationBehavior) -> NotificationBehavior:
    """Start the next occurrence fresh once a dose is recorded"""
    return replace(
        behavior,
        reminder_stage=0,
        last_reminder_time=None,
        snoozed_until=None,
    )


class ReminderEngine:
    """
    Decides which reminders are due at a given instant

    Escalation per slot: Pending(0) -> Pending(1) -> Pending(2) -> Resolved.
    A slot resolves the moment a Taken or Skipped entry is written, at
    whatever stage it was showing. Repeated evaluation within the same
    minute never yields the same stage twice: a stage is due only when
    its instant is later than the medication's last reminder time.
    """

    def __init__(self, follow_up_window_minutes: int = 15):
        # how long after the last stage a slot may still escalate
        self.follow_up_window = timedelta(minutes=follow_up_window_minutes)

    def _latest_stage(
        self,
        stages: List[ReminderStage],
        now: datetime
    ) -> Optional[ReminderStage]:
        reached = [s for s in stages if s.reminder_time <= now]
        if not reached:
            return None
        if now - stages[-1].reminder_time > self.follow_up_window:
            return None
        return reached[-1]

    def _active_slots(
        self,
        med: Medication,
        behavior: NotificationBehavior,
        now: datetime
    ) -> List[Tuple[str, str, List[ReminderStage], ReminderStage]]:
        """Unresolved slots whose escalation window contains `now`"""
        active = []
        # yesterday's late slots can escalate past midnight
        for day in (now.date() - timedelta(days=1), now.date()):
            day_str = normalize_date(day)
            for clock_time in sorted(med.times):
                if med.dose_status.get(slot_key(day_str, clock_time)) in TERMINAL_STATUSES:
                    continue
                stages = calculate_reminder_stages(med.schedule, clock_time, day_str, behavior)
                stage = self._latest_stage(stages, now)
                if stage is not None:
                    active.append((day_str, clock_time, stages, stage))
        return active

    def _due_for_medication(
        self,
        med: Medication,
        behavior: NotificationBehavior,
        now: datetime
    ) -> Tuple[List[DueReminder], NotificationBehavior]:
        def _reminder(day_str: str, stage: ReminderStage, snoozed: bool = False) -> DueReminder:
            return DueReminder(
                medication_id=med.id,
                medication_name=med.name,
                dosage=med.dosage,
                date=day_str,
                scheduled_time=stage.scheduled_time,
                stage=stage.stage,
                reminder_time=stage.reminder_time,
                snoozed=snoozed,
            )

        if behavior.snoozed_until is not None:
            if now < behavior.snoozed_until:
                return [], behavior

            # snooze elapsed: repeat the current stage once for each slot open
            # when the snooze was set or open now
            snoozed_at = behavior.last_reminder_time or now
            open_slots: Dict[Tuple[str, str], List[ReminderStage]] = {}
            for moment in (snoozed_at, now):
                for day_str, clock_time, stages, _ in self._active_slots(med, behavior, moment):
                    open_slots[(day_str, clock_time)] = stages

            due = []
            for (day_str, _), stages in sorted(open_slots.items()):
                stage = stages[min(behavior.reminder_stage, len(stages) - 1)]
                due.append(_reminder(day_str, replace(stage, reminder_time=now), snoozed=True))
            return due, replace(behavior, snoozed_until=None, last_reminder_time=now)

        candidates = [
            (day_str, stage)
            for day_str, clock_time, _, stage in self._active_slots(med, behavior, now)
            if should_send_reminder(med.dose_status, day_str, clock_time, stage.stage, behavior)
        ]

        due = []
        for day_str, stage in sorted(candidates, key=lambda c: c[1].reminder_time):
            last = behavior.last_reminder_time
            if last is not None and stage.reminder_time <= last:
                continue
            due.append(_reminder(day_str, stage))
            behavior = replace(behavior, last_reminder_time=stage.reminder_time)

        return due, behavior

    def collect_due(
        self,
        medications: Iterable[Medication],
        behaviors: Mapping[str, NotificationBehavior],
        now: datetime
    ) -> Tuple[List[DueReminder], Dict[str, NotificationBehavior]]:
        """
        Reminders to dispatch at `now`

        Returns:
            (due reminders, behaviors updated with last_reminder_time)
        """
        updated = dict(behaviors)
        due: List[DueReminder] = []

        for med in medications:
            if med.is_prn or not med.times:
                continue
            behavior = updated.get(med.id) or NotificationBehavior(medication_id=med.id)
            med_due, behavior = self._due_for_medication(med, behavior, now)
            if med_due or med.id in updated:
                updated[med.id] = behavior
            due.extend(med_due)

        if due:
            logger.debug(f"{len(due)} reminder(s) due at {now:%Y-%m-%d %H:%M}")
        return due, updated


# Singleton instance
reminder_engine = ReminderEngine()
