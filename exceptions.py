"""
Exceptions
Error taxonomy for dose tracking commands and external collaborators
"""

from datetime import datetime
from typing import List, Optional


class MedicationTrackerError(Exception):
    """Base class for tracker errors"""


class DoseValidationError(MedicationTrackerError):
    """A hard rule blocked a dose transition. Never retried automatically."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Dose transition rejected")


class AlreadyTerminalError(DoseValidationError):
    """Taken was written over a slot that is already Taken"""

    def __init__(self, slot_key: str):
        self.slot_key = slot_key
        super().__init__([f"Dose {slot_key} has already been marked as taken."])


class PRNLimitError(DoseValidationError):
    """As-needed dose denied by the daily cap or the minimum interval"""

    def __init__(self, reason: str, next_available_time: Optional[datetime] = None):
        self.next_available_time = next_available_time
        super().__init__([reason])


class MedicationNotFoundError(MedicationTrackerError):
    """Unknown medication id"""

    def __init__(self, medication_id: str):
        self.medication_id = medication_id
        super().__init__(f"Medication {medication_id} not found")


class ConfigFallbackError(MedicationTrackerError):
    """Frequency text could not be turned into clock times by the inference service"""


class TransientDependencyError(MedicationTrackerError):
    """An injected collaborator (store, LLM) failed or timed out"""


__all__ = [
    "MedicationTrackerError",
    "DoseValidationError",
    "AlreadyTerminalError",
    "PRNLimitError",
    "MedicationNotFoundError",
    "ConfigFallbackError",
    "TransientDependencyError",
]
