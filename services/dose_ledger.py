"""
Dose Ledger
Sparse per-medication record of Taken/Skipped outcomes keyed by slot
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Dict, Generator, List, Optional, Union

from exceptions import AlreadyTerminalError, MedicationNotFoundError
from models import DoseStatus, SlotStatus
from tools.schedule_model import (
    Medication,
    key_instant,
    normalize_date,
    parse_slot_key,
    slot_instant,
    slot_key,
)


logger = logging.getLogger(__name__)


def classify_slot(
    now: datetime,
    instant: datetime,
    entry: Optional[DoseStatus]
) -> SlotStatus:
    """
    Derive the status of one slot

    A stored entry wins; without one the slot is Missing once its instant
    has passed and Scheduled before that.
    """
    if entry is not None:
        return SlotStatus(DoseStatus(entry).value)
    if instant <= now:
        return SlotStatus.MISSING
    return SlotStatus.SCHEDULED


class DoseLedger:
    """
    Source of truth for dose outcomes.

    Entries are written only by explicit commands and never inferred.
    A transition that changes Taken-ness adjusts the medication's
    quantity inside the same per-medication lock, so the status write
    and the stock change are applied together or not at all.
    """

    def __init__(self, medications: Dict[str, Medication]):
        self._medications = medications
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, medication_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(medication_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[medication_id] = lock
            return lock

    def get_medication(self, medication_id: str) -> Medication:
        medication = self._medications.get(medication_id)
        if medication is None:
            raise MedicationNotFoundError(medication_id)
        return medication

    @contextmanager
    def transaction(self, medication_id: str) -> Generator[Medication, None, None]:
        """Hold the medication's writer lock across a read-check-write sequence"""
        medication = self.get_medication(medication_id)
        with self._lock_for(medication_id):
            yield medication

    # ==================== QUERIES ====================

    def get_entry(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str
    ) -> Optional[DoseStatus]:
        medication = self.get_medication(medication_id)
        return medication.dose_status.get(slot_key(slot_date, clock_time))

    def get_status(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str,
        now: datetime
    ) -> SlotStatus:
        """Taken, Skipped, Missing or Scheduled for one slot"""
        entry = self.get_entry(medication_id, slot_date, clock_time)
        return classify_slot(now, slot_instant(slot_date, clock_time), entry)

    def entries(self, medication_id: str) -> Dict[str, DoseStatus]:
        return dict(self.get_medication(medication_id).dose_status)

    def taken_instants(self, medication_id: str) -> List[datetime]:
        """Instants of every Taken entry, oldest first"""
        medication = self.get_medication(medication_id)
        return sorted(
            key_instant(key)
            for key, status in medication.dose_status.items()
            if status == DoseStatus.TAKEN
        )

    def count_taken_on(self, medication_id: str, slot_date: Union[str, date]) -> int:
        medication = self.get_medication(medication_id)
        return count_taken_on(medication, slot_date)

    # ==================== COMMANDS ====================

    def set_status(
        self,
        medication_id: str,
        slot_date: Union[str, date],
        clock_time: str,
        status: Optional[DoseStatus]
    ) -> Optional[DoseStatus]:
        """
        Write or delete the entry of one slot

        Args:
            medication_id: Medication ID
            slot_date: Calendar date of the slot
            clock_time: Scheduled clock time (HH:MM)
            status: Taken, Skipped, or None to un-mark

        Returns:
            The previous status, or None if the slot had no entry

        Raises:
            AlreadyTerminalError: Taken written over Taken (state unchanged)
        """
        key = slot_key(slot_date, clock_time)
        status = DoseStatus(status) if status is not None else None

        with self.transaction(medication_id) as medication:
            previous = medication.dose_status.get(key)

            if previous == DoseStatus.TAKEN and status == DoseStatus.TAKEN:
                raise AlreadyTerminalError(key)

            if status is None:
                medication.dose_status.pop(key, None)
            else:
                # delete-then-insert, entries are never mutated in place
                medication.dose_status.pop(key, None)
                medication.dose_status[key] = status

            if medication.quantity is not None:
                if status == DoseStatus.TAKEN and previous != DoseStatus.TAKEN:
                    medication.quantity -= 1
                elif previous == DoseStatus.TAKEN and status != DoseStatus.TAKEN:
                    medication.quantity += 1

        logger.info(
            f"Dose {key} of {medication.name}: "
            f"{previous.value if previous else 'none'} -> {status.value if status else 'none'}"
        )
        return previous


def count_taken_on(medication: Medication, slot_date: Union[str, date]) -> int:
    """Number of Taken entries recorded on one calendar date"""
    day = normalize_date(slot_date)
    return sum(
        1 for key, status in medication.dose_status.items()
        if status == DoseStatus.TAKEN and parse_slot_key(key)[0] == day
    )
