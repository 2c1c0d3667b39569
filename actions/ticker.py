"""
Reminder Ticker
Per-minute task that dispatches due reminders and the daily refill check
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from config import StoreKeys, settings, tracker_config
from exceptions import TransientDependencyError
from tools.schedule_model import normalize_date
from services.medication_service import MedicationService
from actions.reminder_engine import DueReminder


logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """What one tick did"""
    now: datetime
    reminders: List[DueReminder] = field(default_factory=list)
    refills_notified: List[str] = field(default_factory=list)
    refill_check_ran: bool = False


class ReminderTicker:
    """
    Drives timer-based work against the injected clock.

    tick() is safe to call more than once for the same minute: a reminder
    stage already sent, or a slot already resolved, is not sent again, and
    the refill check runs at most once per calendar day.
    """

    def __init__(
        self,
        service: MedicationService,
        interval_seconds: Optional[int] = None
    ):
        self.service = service
        self.interval_seconds = interval_seconds or settings.TICK_INTERVAL_SECONDS
        self._last_refill_check: Optional[str] = None
        self._state_loaded = False

    def _load_state(self) -> None:
        if self._state_loaded:
            return
        try:
            state = self.service.store.get(StoreKeys.TICKER_STATE) or {}
            self._last_refill_check = state.get("last_refill_check")
        except TransientDependencyError as e:
            logger.warning(f"Could not load ticker state: {e}")
        self._state_loaded = True

    def _save_state(self) -> None:
        try:
            self.service.store.set(StoreKeys.TICKER_STATE, {"last_refill_check": self._last_refill_check})
        except TransientDependencyError as e:
            logger.warning(f"Could not save ticker state: {e}")

    def _dispatch(self, reminder: DueReminder) -> None:
        self.service.notifier.send_medication_reminder(
            reminder.medication_name,
            reminder.dosage,
            reminder.scheduled_time,
            reminder.stage,
            data={
                "medication_id": reminder.medication_id,
                "date": reminder.date,
                "snoozed": reminder.snoozed,
            },
        )

    def tick(self, now: Optional[datetime] = None) -> TickResult:
        """Run one evaluation at `now` (the service clock by default)"""
        now = now or self.service.clock.now()
        self._load_state()
        result = TickResult(now=now)

        result.reminders = self.service.collect_due_reminders(now)
        for reminder in result.reminders:
            self._dispatch(reminder)
        if result.reminders:
            logger.info(f"Dispatched {len(result.reminders)} reminder(s) at {now:%H:%M}")
            self.service.persist()

        today = normalize_date(now)
        if now.strftime("%H:%M") >= tracker_config.REFILL_CHECK_TIME and self._last_refill_check != today:
            result.refills_notified = [m.id for m in self.service.check_refills()]
            result.refill_check_ran = True
            self._last_refill_check = today
            self._save_state()

        return result

    async def run(self) -> None:
        """Tick forever in the default executor; cancel the task to stop"""
        logger.info(f"Reminder ticker started ({self.interval_seconds}s interval)")
        try:
            while True:
                try:
                    await asyncio.get_event_loop().run_in_executor(None, self.tick)
                except Exception as e:
                    logger.error(f"Reminder tick failed: {e}", exc_info=True)
                await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            logger.info("Reminder ticker stopped")
            raise
