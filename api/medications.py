"""
Medications API Router
Endpoints for medication management and refills
"""

from typing import List
from fastapi import APIRouter, Depends, status

from api.deps import services
from api.schemas.medication import (
    MedicationCreate,
    MedicationUpdate,
    MedicationResponse,
    MedicationList,
    RefillRequest,
)
from services.medication_service import MedicationService
from tools.schedule_model import Medication


router = APIRouter(prefix="/medications", tags=["medications"])


def to_response(medication: Medication) -> MedicationResponse:
    return MedicationResponse(
        **medication.to_dict(),
        is_prn=medication.is_prn,
        needs_refill=medication.needs_refill,
    )


@router.post("/", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED)
async def create_medication(
    medication_data: MedicationCreate,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Add a new medication

    - **name**: Medication name
    - **frequency**: Frequency description, used to infer times when none are given
    - **times**: Daily clock times (HH:MM)
    """
    medication = await service.add_medication(
        name=medication_data.name,
        dosage=medication_data.dosage,
        frequency=medication_data.frequency,
        times=medication_data.times,
        food=medication_data.food.value,
        quantity=medication_data.quantity,
        refill_threshold=medication_data.refill_threshold,
        drug_class=medication_data.drug_class,
    )
    return to_response(medication)


@router.get("/", response_model=MedicationList)
async def list_medications(
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    List tracked medications
    """
    medications = service.list_medications()
    return MedicationList(
        medications=[to_response(m) for m in medications],
        total=len(medications),
    )


@router.get("/archived", response_model=List[MedicationResponse])
async def list_archived_medications(
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Deleted medications, kept with their dose history
    """
    return [to_response(m) for m in service.list_archived_medications()]


@router.get("/{medication_id}", response_model=MedicationResponse)
async def get_medication(
    medication_id: str,
    service: MedicationService = Depends(services.get_medication_service)
):
    return to_response(service.get_medication(medication_id))


@router.put("/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: str,
    medication_data: MedicationUpdate,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Update medication information
    """
    updates = medication_data.model_dump(exclude_unset=True)
    if "food" in updates and updates["food"] is not None:
        updates["food"] = updates["food"].value

    if not updates:
        return to_response(service.get_medication(medication_id))

    return to_response(service.update_medication(medication_id, **updates))


@router.delete("/{medication_id}", response_model=MedicationResponse)
async def delete_medication(
    medication_id: str,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Archive a medication; its dose history is kept
    """
    return to_response(service.delete_medication(medication_id))


@router.post("/{medication_id}/refill", response_model=MedicationResponse)
async def log_refill(
    medication_id: str,
    refill: RefillRequest,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Record a refill and reset the refill reminder
    """
    return to_response(service.log_refill(medication_id, refill.new_quantity))
