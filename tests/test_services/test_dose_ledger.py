"""
Tests for the Dose Ledger
Tests slot classification, status transitions and paired quantity changes
"""

import threading
import pytest
from datetime import datetime

from exceptions import AlreadyTerminalError, MedicationNotFoundError
from models import DoseStatus, SlotStatus
from services.dose_ledger import DoseLedger, classify_slot, count_taken_on
from tools.schedule_model import Medication


NOW = datetime(2024, 1, 5, 9, 0)


@pytest.fixture
def medication():
    return Medication(name="Metformin", frequency="twice daily", times=["08:00", "20:00"], quantity=30)


@pytest.fixture
def ledger(medication):
    return DoseLedger({medication.id: medication})


class TestClassifySlot:
    """Tests for derived slot status"""

    @pytest.mark.unit
    def test_entry_wins(self):
        assert classify_slot(NOW, datetime(2024, 1, 5, 20, 0), DoseStatus.SKIPPED) == SlotStatus.SKIPPED
        assert classify_slot(NOW, datetime(2024, 1, 5, 8, 0), DoseStatus.TAKEN) == SlotStatus.TAKEN

    @pytest.mark.unit
    def test_elapsed_without_entry_is_missing(self):
        assert classify_slot(NOW, datetime(2024, 1, 5, 8, 0), None) == SlotStatus.MISSING

    @pytest.mark.unit
    def test_due_now_is_missing(self):
        """Test a slot whose instant equals now already counts as Missing"""
        assert classify_slot(NOW, NOW, None) == SlotStatus.MISSING

    @pytest.mark.unit
    def test_future_is_scheduled(self):
        assert classify_slot(NOW, datetime(2024, 1, 5, 20, 0), None) == SlotStatus.SCHEDULED


class TestSetStatus:
    """Tests for ledger transitions"""

    @pytest.mark.unit
    def test_taken_decrements_quantity(self, ledger, medication):
        """Test a new Taken entry uses one pill"""
        previous = ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)

        assert previous is None
        assert medication.quantity == 29
        assert ledger.get_status(medication.id, "2024-01-05", "08:00", NOW) == SlotStatus.TAKEN

    @pytest.mark.unit
    def test_quantity_round_trip(self, ledger, medication):
        """Test Taken -> unmarked -> Taken leaves stock where a single Taken would"""
        ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)
        previous = ledger.set_status(medication.id, "2024-01-05", "08:00", None)
        assert previous == DoseStatus.TAKEN
        assert medication.quantity == 30

        ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)
        assert medication.quantity == 29

    @pytest.mark.unit
    def test_taken_over_taken_rejected(self, ledger, medication):
        """Test Taken written twice raises and changes nothing"""
        ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)

        with pytest.raises(AlreadyTerminalError):
            ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)

        assert medication.quantity == 29
        assert medication.dose_status == {"2024-01-05T08:00": DoseStatus.TAKEN}

    @pytest.mark.unit
    def test_skip_over_taken_returns_pill(self, ledger, medication):
        ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)
        previous = ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.SKIPPED)

        assert previous == DoseStatus.TAKEN
        assert medication.quantity == 30

    @pytest.mark.unit
    def test_unmark_leaves_missing(self, ledger, medication):
        """Test deleting an entry makes an elapsed slot Missing again"""
        ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.SKIPPED)
        ledger.set_status(medication.id, "2024-01-05", "08:00", None)

        assert ledger.get_status(medication.id, "2024-01-05", "08:00", NOW) == SlotStatus.MISSING

    @pytest.mark.unit
    def test_no_quantity_tracking(self):
        """Test medications without stock never get a quantity"""
        med = Medication(name="Vitamin D", times=["08:00"])
        ledger = DoseLedger({med.id: med})

        ledger.set_status(med.id, "2024-01-05", "08:00", DoseStatus.TAKEN)

        assert med.quantity is None

    @pytest.mark.unit
    def test_unknown_medication(self, ledger):
        with pytest.raises(MedicationNotFoundError):
            ledger.set_status("missing", "2024-01-05", "08:00", DoseStatus.TAKEN)

    @pytest.mark.unit
    def test_concurrent_writers_apply_once(self, ledger, medication):
        """Test racing Taken writes on one slot decrement stock exactly once"""
        errors = []

        def _take():
            try:
                ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)
            except AlreadyTerminalError as e:
                errors.append(e)

        threads = [threading.Thread(target=_take) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert medication.quantity == 29
        assert len(errors) == 7


class TestQueries:
    """Tests for ledger queries"""

    @pytest.mark.unit
    def test_count_taken_on(self, ledger, medication):
        ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)
        ledger.set_status(medication.id, "2024-01-05", "20:00", DoseStatus.SKIPPED)
        ledger.set_status(medication.id, "2024-01-04", "20:00", DoseStatus.TAKEN)

        assert count_taken_on(medication, "2024-01-05") == 1
        assert ledger.count_taken_on(medication.id, "2024-01-04") == 1

    @pytest.mark.unit
    def test_taken_instants_sorted(self, ledger, medication):
        ledger.set_status(medication.id, "2024-01-05", "08:00", DoseStatus.TAKEN)
        ledger.set_status(medication.id, "2024-01-04", "20:00", DoseStatus.TAKEN)

        assert ledger.taken_instants(medication.id) == [
            datetime(2024, 1, 4, 20, 0),
            datetime(2024, 1, 5, 8, 0),
        ]
