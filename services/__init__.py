"""
Services Module
Business logic layer for MedMinder
"""

from services.llm_service import LLMService, llm_service
from services.store import MedicationStore, InMemoryStore, SQLStore, build_store
from services.dose_ledger import DoseLedger, classify_slot
from services.safety_service import DoseSafetyCheck, check_dose_safety
from services.prn_service import PRNState, PRNAvailability, can_take_prn, record_prn_dose
from services.adherence_service import AdherenceService, adherence_service
from services.recovery_service import RecoveryGuidance, get_missed_dose_recovery
from services.medication_service import (
    MedicationService,
    DoseTransitionResult,
    get_medication_service,
)


__all__ = [
    # Collaborators
    "LLMService",
    "llm_service",
    "MedicationStore",
    "InMemoryStore",
    "SQLStore",
    "build_store",
    # Core
    "DoseLedger",
    "classify_slot",
    "DoseSafetyCheck",
    "check_dose_safety",
    "PRNState",
    "PRNAvailability",
    "can_take_prn",
    "record_prn_dose",
    "AdherenceService",
    "adherence_service",
    "RecoveryGuidance",
    "get_missed_dose_recovery",
    # Facade
    "MedicationService",
    "DoseTransitionResult",
    "get_medication_service",
]
