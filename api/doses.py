"""
Doses API Router
Endpoints for recording, skipping and inspecting scheduled doses
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status

from api.deps import services
from api.schemas.dose import (
    DoseCommand,
    RecordDoseRequest,
    SafetyCheckRequest,
    MissedReasonsRequest,
    SafetyCheckResponse,
    DoseTransitionResponse,
    SlotStatusResponse,
    MissedDose,
    MissedDoseList,
)
from api.schemas.adherence import RecoveryGuidanceResponse
from services.medication_service import MedicationService
from tools.schedule_model import normalize_date, normalize_time


router = APIRouter(prefix="/doses", tags=["doses"])


@router.post("/{medication_id}/take", response_model=DoseTransitionResponse)
async def record_dose(
    medication_id: str,
    command: RecordDoseRequest,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Mark a scheduled dose as taken

    Returns committed=false with the warnings when the safety gate has
    warnings and they were not acknowledged. Hard errors answer 409.
    """
    result = service.record_dose(
        medication_id,
        command.date,
        command.time,
        acknowledge_warnings=command.acknowledge_warnings,
    )
    return result.to_dict()


@router.post("/{medication_id}/skip", response_model=DoseTransitionResponse)
async def skip_dose(
    medication_id: str,
    command: DoseCommand,
    service: MedicationService = Depends(services.get_medication_service)
):
    return service.skip_dose(medication_id, command.date, command.time).to_dict()


@router.post("/{medication_id}/unmark", response_model=DoseTransitionResponse)
async def unmark_dose(
    medication_id: str,
    command: DoseCommand,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Remove the recorded outcome of a dose
    """
    return service.unmark_dose(medication_id, command.date, command.time).to_dict()


@router.get("/{medication_id}/status", response_model=SlotStatusResponse)
async def get_slot_status(
    medication_id: str,
    slot_date: date = Query(..., alias="date"),
    time: str = Query(..., description="HH:MM"),
    service: MedicationService = Depends(services.get_medication_service)
):
    return SlotStatusResponse(
        medication_id=medication_id,
        date=normalize_date(slot_date),
        time=normalize_time(time),
        status=service.get_slot_status(medication_id, slot_date, time),
    )


@router.post("/{medication_id}/safety-check", response_model=SafetyCheckResponse)
async def check_dose_safety(
    medication_id: str,
    request: SafetyCheckRequest,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Run the safety gate without recording anything
    """
    check = service.check_dose_safety(
        medication_id, request.date, request.time, request.proposed_status
    )
    return check.to_dict()


@router.get(
    "/{medication_id}/recovery",
    response_model=Optional[RecoveryGuidanceResponse],
    responses={204: {"description": "Dose recorded or not yet due"}},
)
async def get_missed_dose_recovery(
    medication_id: str,
    slot_date: date = Query(..., alias="date"),
    time: str = Query(..., description="HH:MM"),
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Guidance for a missed dose
    """
    guidance = service.get_missed_dose_recovery(medication_id, slot_date, time)
    if guidance is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return guidance.to_dict()


@router.get("/missed", response_model=MissedDoseList)
async def find_missed_doses(
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Unrecorded past doses of today and yesterday, newest first
    """
    missed = [
        MissedDose(
            medication_id=item["medication_id"],
            medication_name=item["medication_name"],
            date=item["date"],
            time=item["time"],
        )
        for item in service.find_missed_doses()
    ]
    return MissedDoseList(missed=missed, total=len(missed))


@router.post("/missed/reasons", status_code=status.HTTP_204_NO_CONTENT)
async def save_missed_dose_reasons(
    request: MissedReasonsRequest,
    service: MedicationService = Depends(services.get_medication_service)
):
    service.save_missed_dose_reasons(request.reasons)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
