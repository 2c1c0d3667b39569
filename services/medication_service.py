"""
Medication Service
Command/query facade over the dose ledger, gates, reminders and analytics
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from config import StoreKeys, tracker_config
from exceptions import (
    ConfigFallbackError,
    DoseValidationError,
    PRNLimitError,
    TransientDependencyError,
)
from models import DoseStatus, SlotStatus
from tools.clock import Clock, system_clock
from tools.frequency import fallback_times_from_frequency
from tools.notification_service import NotificationService, notification_service
from tools.schedule_model import (
    Medication,
    normalize_date,
    normalize_time,
    parse_food,
    slot_key,
)
from services.adherence_service import AdherenceStreak, Badge, WeeklySummary, adherence_service
from services.checkin_service import (
    CHECKIN_KEY,
    REVIEW_KEY,
    CheckInReminder,
    generate_check_in_reminders,
)
from services.dose_ledger import DoseLedger
from services.llm_service import LLMService
from services.prn_service import (
    PRNAvailability,
    PRNState,
    can_take_prn,
    get_default_prn_state,
    record_prn_dose,
)
from services.recovery_service import (
    RecoveryGuidance,
    find_missed_doses,
    get_missed_dose_recovery,
)
from services.safety_service import DoseSafetyCheck, check_dose_safety
from services.store import InMemoryStore, MedicationStore
from actions.adaptive_timing import NotificationBehavior, update_notification_behavior
from actions.behavior_engine import BehavioralPattern, analyze_behavioral_patterns
from actions.reminder_engine import (
    DueReminder,
    ReminderStage,
    calculate_reminder_stages,
    calculate_snooze_time,
    reminder_engine,
    reset_reminder_stage,
    update_reminder_stage,
)


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name", "dosage", "frequency", "times", "food",
    "quantity", "refill_threshold", "drug_class",
)


@dataclass
class DoseTransitionResult:
    """Outcome of a record/skip/unmark command"""
    medication_id: str
    date: str
    time: str
    committed: bool
    status: Optional[DoseStatus] = None
    previous_status: Optional[DoseStatus] = None
    quantity: Optional[int] = None
    safety: DoseSafetyCheck = field(default_factory=DoseSafetyCheck)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "date": self.date,
            "time": self.time,
            "committed": self.committed,
            "status": self.status.value if self.status else None,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "quantity": self.quantity,
            "safety": self.safety.to_dict(),
        }


class MedicationService:
    """
    Entry point for every command and query on tracked medications.

    Collaborators (store, clock, notifier, inference) are injected.
    Store and inference failures are logged and never reach the caller;
    in-memory state stays authoritative.
    """

    def __init__(
        self,
        store: Optional[MedicationStore] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[NotificationService] = None,
        llm: Optional[LLMService] = None
    ):
        self.store = store or InMemoryStore()
        self.clock = clock or system_clock
        self.notifier = notifier or notification_service
        self.llm = llm

        self._medications: Dict[str, Medication] = {}
        self._archived: Dict[str, Medication] = {}
        self._prn_states: Dict[str, PRNState] = {}
        self._behaviors: Dict[str, NotificationBehavior] = {}
        self._check_ins: Dict[str, Dict[str, str]] = {}

        self.ledger = DoseLedger(self._medications)
        # guards the behavior, PRN and check-in maps
        self._state_lock = threading.RLock()

    # ==================== PERSISTENCE ====================

    def load(self) -> None:
        """Replace in-memory state with the store's contents"""
        try:
            medications = self.store.get(StoreKeys.MEDICATIONS) or []
            archived = self.store.get(StoreKeys.ARCHIVED_MEDICATIONS) or []
            prn_states = self.store.get(StoreKeys.PRN_STATES) or {}
            behaviors = self.store.get(StoreKeys.NOTIFICATION_BEHAVIORS) or {}
            check_ins = self.store.get(StoreKeys.CHECK_INS) or {}
        except TransientDependencyError as e:
            logger.warning(f"Could not load tracker state, starting empty: {e}")
            return

        with self._state_lock:
            self._medications.clear()
            self._medications.update({m["id"]: Medication.from_dict(m) for m in medications})
            self._archived = {m["id"]: Medication.from_dict(m) for m in archived}
            self._prn_states = {k: PRNState.from_dict(v) for k, v in prn_states.items()}
            self._behaviors = {k: NotificationBehavior.from_dict(v) for k, v in behaviors.items()}
            self._check_ins = {k: dict(v) for k, v in check_ins.items()}

        logger.info(f"Loaded {len(self._medications)} medication(s)")

    def persist(self) -> bool:
        """Write the full state to the store; False when the store failed"""
        with self._state_lock:
            snapshot = {
                StoreKeys.MEDICATIONS: [m.to_dict() for m in self._medications.values()],
                StoreKeys.ARCHIVED_MEDICATIONS: [m.to_dict() for m in self._archived.values()],
                StoreKeys.PRN_STATES: {k: v.to_dict() for k, v in self._prn_states.items()},
                StoreKeys.NOTIFICATION_BEHAVIORS: {k: v.to_dict() for k, v in self._behaviors.items()},
                StoreKeys.CHECK_INS: {k: dict(v) for k, v in self._check_ins.items()},
            }

        try:
            for key, value in snapshot.items():
                self.store.set(key, value)
            return True
        except TransientDependencyError as e:
            logger.warning(f"Could not persist tracker state: {e}")
            return False

    # ==================== MEDICATIONS ====================

    async def resolve_times(self, frequency: str) -> List[str]:
        """
        Daily clock times for a frequency description

        Asks the inference service first and falls back to the static
        table when it is missing, fails or returns nothing usable.
        """
        if self.llm is not None:
            try:
                return await self.llm.infer_schedule_times(frequency)
            except ConfigFallbackError as e:
                logger.info(f"Using static times for '{frequency}': {e}")
            except TransientDependencyError as e:
                logger.warning(f"Time inference failed for '{frequency}', using static times: {e}")
        return fallback_times_from_frequency(frequency)

    async def add_medication(
        self,
        name: str,
        dosage: str = "",
        frequency: str = "",
        times: Optional[List[str]] = None,
        food: Union[str, None] = None,
        quantity: Optional[int] = None,
        refill_threshold: Optional[int] = None,
        drug_class: Optional[str] = None
    ) -> Medication:
        """
        Add a medication, inferring its times when none are given

        Args:
            name: Medication name
            dosage: Dosage (e.g., "500mg")
            frequency: Frequency description (e.g., "twice daily")
            times: Clock times (HH:MM); inferred from frequency if empty
            food: "with-food", "without-food" or "none"
            quantity: Pills on hand
            refill_threshold: Quantity at which a refill reminder is sent
            drug_class: Optional drug class used for check-ins

        Returns:
            Created Medication
        """
        if not name or not name.strip():
            raise ValueError("Medication name is required")
        if quantity is not None and quantity < 0:
            raise ValueError("Quantity cannot be negative")

        medication = Medication(
            name=name.strip(),
            dosage=dosage,
            frequency=frequency,
            times=times or [],
            food=food or "none",
            quantity=quantity,
            refill_threshold=refill_threshold,
            drug_class=drug_class,
        )

        if not medication.times and not medication.is_prn:
            medication.times = await self.resolve_times(frequency)

        with self._state_lock:
            self._medications[medication.id] = medication

        logger.info(f"Added medication {medication.name} ({medication.id}) at {medication.times}")
        self.persist()
        return medication

    def update_medication(self, medication_id: str, **changes) -> Medication:
        """Edit schedule or stock fields; the ledger is left untouched"""
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        with self.ledger.transaction(medication_id) as medication:
            if "times" in changes and changes["times"] is not None:
                changes["times"] = sorted({normalize_time(t) for t in changes["times"]})
            if "food" in changes and changes["food"] is not None:
                changes["food"] = parse_food(changes["food"])
            if changes.get("quantity") is not None and changes["quantity"] < 0:
                raise ValueError("Quantity cannot be negative")

            for name, value in changes.items():
                if value is not None or name in ("quantity", "refill_threshold", "drug_class"):
                    setattr(medication, name, value)

            if not medication.needs_refill:
                medication.refill_notified = False

        logger.info(f"Updated medication {medication_id}: {sorted(changes)}")
        self.persist()
        return medication

    def delete_medication(self, medication_id: str) -> Medication:
        """Archive a medication together with its dose history"""
        with self.ledger.transaction(medication_id) as medication:
            with self._state_lock:
                self._medications.pop(medication_id, None)
                self._archived[medication_id] = medication
                self._behaviors.pop(medication_id, None)
                self._prn_states.pop(medication_id, None)

        logger.info(f"Archived medication {medication.name} ({medication_id})")
        self.persist()
        return medication

    def get_medication(self, medication_id: str) -> Medication:
        return self.ledger.get_medication(medication_id)

    def list_medications(self) -> List[Medication]:
        return list(self._medications.values())

    def list_archived_medications(self) -> List[Medication]:
        return list(self._archived.values())

    # ==================== DOSE COMMANDS ====================

    def _after_terminal(self, medication: Medication, slot_date: str, clock_time: str, taken: bool) -> None:
        """Reset reminder escalation and learn lateness once a slot resolves"""
        now = self.clock.now()
        actual = now.strftime("%H:%M") if taken and slot_date == normalize_date(now) else None

        with self._state_lock:
            behavior = self._behaviors.get(medication.id) or NotificationBehavior(medication_id=medication.id)
            behaviors = dict(self._behaviors)
            behaviors[medication.id] = reset_reminder_stage(behavior)
            self._behaviors = update_notification_behavior(medication.id, clock_time, actual, behaviors)

    def record_dose(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str,
        acknowledge_warnings: bool = False
    ) -> DoseTransitionResult:
        """
        Mark a scheduled slot as Taken

        Hard safety errors raise DoseValidationError. Warnings leave the
        ledger untouched and return committed=False until the call is
        repeated with acknowledge_warnings=True.
        """
        day = normalize_date(slot_date)
        clock_time = normalize_time(clock_time)

        with self.ledger.transaction(medication_id) as medication:
            if medication.is_prn:
                availability = self.can_take_prn(medication_id)
                if not availability.can_take:
                    raise PRNLimitError(availability.reason, availability.next_available_time)
                safety = DoseSafetyCheck()
            else:
                safety = check_dose_safety(
                    medication.schedule, day, clock_time, DoseStatus.TAKEN, medication.dose_status
                )
                if not safety.can_proceed:
                    logger.warning(f"Rejected dose {slot_key(day, clock_time)} of {medication.name}: {safety.errors}")
                    raise DoseValidationError(safety.errors)
                if safety.warnings and not acknowledge_warnings:
                    return DoseTransitionResult(
                        medication_id=medication_id,
                        date=day,
                        time=clock_time,
                        committed=False,
                        previous_status=medication.dose_status.get(slot_key(day, clock_time)),
                        quantity=medication.quantity,
                        safety=safety,
                    )

            previous = self.ledger.set_status(medication_id, day, clock_time, DoseStatus.TAKEN)
            if medication.is_prn:
                self._count_prn_dose(medication_id)

        self._after_terminal(medication, day, clock_time, taken=True)
        self.persist()

        return DoseTransitionResult(
            medication_id=medication_id,
            date=day,
            time=clock_time,
            committed=True,
            status=DoseStatus.TAKEN,
            previous_status=previous,
            quantity=medication.quantity,
            safety=safety,
        )

    def skip_dose(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str
    ) -> DoseTransitionResult:
        """Mark a slot as Skipped; a Taken slot gets its pill back"""
        day = normalize_date(slot_date)
        clock_time = normalize_time(clock_time)

        with self.ledger.transaction(medication_id) as medication:
            previous = self.ledger.set_status(medication_id, day, clock_time, DoseStatus.SKIPPED)

        self._after_terminal(medication, day, clock_time, taken=False)
        self.persist()

        return DoseTransitionResult(
            medication_id=medication_id,
            date=day,
            time=clock_time,
            committed=True,
            status=DoseStatus.SKIPPED,
            previous_status=previous,
            quantity=medication.quantity,
        )

    def unmark_dose(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str
    ) -> DoseTransitionResult:
        """Delete the slot's entry so it reads Missing or Scheduled again"""
        day = normalize_date(slot_date)
        clock_time = normalize_time(clock_time)

        with self.ledger.transaction(medication_id) as medication:
            previous = self.ledger.set_status(medication_id, day, clock_time, None)

        self.persist()

        return DoseTransitionResult(
            medication_id=medication_id,
            date=day,
            time=clock_time,
            committed=True,
            status=None,
            previous_status=previous,
            quantity=medication.quantity,
        )

    def get_slot_status(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str
    ) -> SlotStatus:
        return self.ledger.get_status(medication_id, slot_date, clock_time, self.clock.now())

    def check_dose_safety(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str,
        proposed_status: Optional[DoseStatus] = DoseStatus.TAKEN
    ) -> DoseSafetyCheck:
        medication = self.get_medication(medication_id)
        return check_dose_safety(
            medication.schedule,
            normalize_date(slot_date),
            normalize_time(clock_time),
            proposed_status,
            dict(medication.dose_status),
        )

    # ==================== PRN ====================

    def get_prn_state(self, medication_id: str) -> PRNState:
        self.get_medication(medication_id)
        with self._state_lock:
            return self._prn_states.get(medication_id) or get_default_prn_state(medication_id, self.clock.now())

    def set_prn_limits(
        self,
        medication_id: str,
        min_interval_hours: Optional[float] = None,
        max_per_day: Optional[int] = None
    ) -> PRNState:
        state = self.get_prn_state(medication_id)
        if min_interval_hours is not None:
            if min_interval_hours < 0:
                raise ValueError("Minimum interval cannot be negative")
            state = replace(state, min_interval_hours=min_interval_hours)
        if max_per_day is not None:
            if max_per_day < 1:
                raise ValueError("Daily maximum must be at least 1")
            state = replace(state, max_per_day=max_per_day)

        with self._state_lock:
            self._prn_states[medication_id] = state
        self.persist()
        return state

    def can_take_prn(self, medication_id: str) -> PRNAvailability:
        return can_take_prn(self.get_prn_state(medication_id), self.clock.now())

    def _count_prn_dose(self, medication_id: str) -> PRNState:
        state = record_prn_dose(self.get_prn_state(medication_id), self.clock.now())
        with self._state_lock:
            self._prn_states[medication_id] = state
        return state

    def record_prn_dose(self, medication_id: str) -> PRNState:
        """
        Take an as-needed dose now

        The dose is written to the ledger at the current minute so it
        counts towards streaks and stock.

        Raises:
            PRNLimitError: Daily cap reached or minimum interval not met
        """
        now = self.clock.now()

        with self.ledger.transaction(medication_id) as medication:
            if not medication.is_prn:
                raise ValueError(f"{medication.name} is not an as-needed medication")

            availability = self.can_take_prn(medication_id)
            if not availability.can_take:
                logger.warning(f"PRN dose of {medication.name} denied: {availability.reason}")
                raise PRNLimitError(availability.reason, availability.next_available_time)

            self.ledger.set_status(medication_id, now.date(), now.strftime("%H:%M"), DoseStatus.TAKEN)
            state = self._count_prn_dose(medication_id)

        self.persist()
        return state

    # ==================== REMINDERS ====================

    def get_notification_behavior(self, medication_id: str) -> NotificationBehavior:
        self.get_medication(medication_id)
        with self._state_lock:
            return self._behaviors.get(medication_id) or NotificationBehavior(medication_id=medication_id)

    def snooze_reminder(self, medication_id: str, snooze_minutes: int) -> NotificationBehavior:
        """Advance the reminder stage and hold reminders for the chosen minutes"""
        if snooze_minutes not in tracker_config.SNOOZE_OPTIONS_MINUTES:
            raise ValueError(
                f"Snooze must be one of {tracker_config.SNOOZE_OPTIONS_MINUTES} minutes"
            )

        now = self.clock.now()
        behavior = self.get_notification_behavior(medication_id)
        last_stage = len(tracker_config.STAGE_OFFSETS_MINUTES) - 1
        behavior = update_reminder_stage(behavior, min(behavior.reminder_stage + 1, last_stage), now)
        behavior = replace(behavior, snoozed_until=calculate_snooze_time(now, snooze_minutes))

        with self._state_lock:
            self._behaviors[medication_id] = behavior

        logger.info(f"Snoozed {medication_id} for {snooze_minutes} min, stage {behavior.reminder_stage}")
        self.persist()
        return behavior

    def get_reminder_stages_for_date(
        self,
        medication_id: str,
        slot_date: Union[str, date]
    ) -> Dict[str, List[ReminderStage]]:
        """Reminder stages of every slot on one date, keyed by clock time"""
        medication = self.get_medication(medication_id)
        behavior = self.get_notification_behavior(medication_id)
        return {
            clock_time: calculate_reminder_stages(medication.schedule, clock_time, slot_date, behavior)
            for clock_time in medication.schedule.sorted_times()
        }

    def collect_due_reminders(self, now: Optional[datetime] = None) -> List[DueReminder]:
        """Due reminder stages at `now`, recording them as sent"""
        now = now or self.clock.now()
        with self._state_lock:
            due, self._behaviors = reminder_engine.collect_due(
                self.list_medications(), self._behaviors, now
            )
        return due

    # ==================== ANALYTICS ====================

    def get_adherence_streak(self) -> AdherenceStreak:
        return adherence_service.calculate_adherence_streak(
            self.list_medications(), self.clock.now().date()
        )

    def get_earned_badges(self) -> List[Badge]:
        today = self.clock.now().date()
        streak = adherence_service.calculate_adherence_streak(self.list_medications(), today)
        return adherence_service.get_earned_badges(streak, today)

    def get_motivational_message(self) -> str:
        return adherence_service.get_motivational_message(self.get_adherence_streak())

    def get_weekly_summary(self, week_start: Optional[Union[str, date]] = None) -> WeeklySummary:
        """Coaching summary of the week holding `week_start` (this week by default)"""
        now = self.clock.now()
        day = date.fromisoformat(normalize_date(week_start)) if week_start is not None else now.date()
        return adherence_service.get_weekly_summary(self.list_medications(), day, now=now)

    def get_missed_dose_recovery(
        self,
        medication_id: str,
        missed_date: Union[str, date],
        missed_time: str
    ) -> Optional[RecoveryGuidance]:
        medication = self.get_medication(medication_id)
        return get_missed_dose_recovery(
            medication.schedule,
            dict(medication.dose_status),
            normalize_date(missed_date),
            normalize_time(missed_time),
            self.clock.now(),
        )

    def find_missed_doses(self) -> List[Dict[str, Any]]:
        return find_missed_doses(self.list_medications(), self.clock.now())

    def analyze_patterns(self) -> List[BehavioralPattern]:
        return analyze_behavioral_patterns(self.list_medications(), self.clock.now())

    # ==================== REFILLS ====================

    def log_refill(self, medication_id: str, new_quantity: int) -> Medication:
        """Record a refill: new stock on hand and today's date in the history"""
        if new_quantity is None or new_quantity < 0:
            raise ValueError("Refill quantity must be zero or more")

        with self.ledger.transaction(medication_id) as medication:
            medication.quantity = new_quantity
            medication.refill_history.append(normalize_date(self.clock.now()))
            medication.refill_notified = False

        logger.info(f"Refilled {medication.name}: {new_quantity} on hand")
        self.persist()
        return medication

    def check_refills(self) -> List[Medication]:
        """
        Notify once for every medication at or below its refill threshold

        Medications back above the threshold have their flag cleared.
        """
        notified = []
        changed = False

        for medication in self.list_medications():
            with self.ledger.transaction(medication.id):
                if medication.quantity is None or medication.refill_threshold is None:
                    continue
                if medication.needs_refill and not medication.refill_notified:
                    self.notifier.send_refill_reminder(
                        medication.name,
                        medication.quantity,
                        data={"medication_id": medication.id},
                    )
                    medication.refill_notified = True
                    notified.append(medication)
                    changed = True
                elif not medication.needs_refill and medication.refill_notified:
                    medication.refill_notified = False
                    changed = True

        if changed:
            self.persist()
        if notified:
            logger.info(f"Sent {len(notified)} refill reminder(s)")
        return notified

    # ==================== ANNOTATIONS & CHECK-INS ====================

    def save_missed_dose_reasons(self, reasons: Mapping[str, Mapping[str, str]]) -> None:
        """Merge free-text reasons keyed by medication id, then slot key"""
        for medication_id, by_slot in reasons.items():
            with self.ledger.transaction(medication_id) as medication:
                medication.missed_dose_reasons.update(by_slot)
        self.persist()

    def get_check_in_reminders(self) -> List[CheckInReminder]:
        with self._state_lock:
            check_ins = {k: dict(v) for k, v in self._check_ins.items()}
        return generate_check_in_reminders(self.list_medications(), check_ins, self.clock.now().date())

    def complete_check_in(self, medication_id: str, chronic_review: bool = False) -> Dict[str, str]:
        """Record today as the last check-in (or chronic review) date"""
        self.get_medication(medication_id)
        kind = REVIEW_KEY if chronic_review else CHECKIN_KEY

        with self._state_lock:
            completed = dict(self._check_ins.get(medication_id, {}))
            completed[kind] = normalize_date(self.clock.now())
            self._check_ins[medication_id] = completed

        self.persist()
        return completed


_default_service: Optional[MedicationService] = None


def get_medication_service() -> MedicationService:
    """Process-wide service bound to the configured store and system clock"""
    global _default_service
    if _default_service is None:
        from services.llm_service import llm_service
        from services.store import build_store

        _default_service = MedicationService(store=build_store(), llm=llm_service)
    return _default_service
