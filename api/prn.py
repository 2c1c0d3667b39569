"""
PRN API Router
Endpoints for as-needed medications
"""

from fastapi import APIRouter, Depends

from api.deps import services
from api.schemas.dose import PRNLimitsUpdate, PRNStateResponse, PRNAvailabilityResponse
from services.medication_service import MedicationService


router = APIRouter(prefix="/prn", tags=["prn"])


@router.get("/{medication_id}", response_model=PRNStateResponse)
async def get_prn_state(
    medication_id: str,
    service: MedicationService = Depends(services.get_medication_service)
):
    return service.get_prn_state(medication_id).to_dict()


@router.get("/{medication_id}/availability", response_model=PRNAvailabilityResponse)
async def can_take_prn(
    medication_id: str,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Whether an as-needed dose may be taken now
    """
    return service.can_take_prn(medication_id).to_dict()


@router.post("/{medication_id}/take", response_model=PRNStateResponse)
async def record_prn_dose(
    medication_id: str,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Take an as-needed dose now

    Answers 409 with next_available_time when the daily cap or the
    minimum interval blocks the dose.
    """
    return service.record_prn_dose(medication_id).to_dict()


@router.put("/{medication_id}/limits", response_model=PRNStateResponse)
async def set_prn_limits(
    medication_id: str,
    limits: PRNLimitsUpdate,
    service: MedicationService = Depends(services.get_medication_service)
):
    state = service.set_prn_limits(
        medication_id,
        min_interval_hours=limits.min_interval_hours,
        max_per_day=limits.max_per_day,
    )
    return state.to_dict()
