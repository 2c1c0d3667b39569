"""
Reminders API Router
Endpoints for reminder stages, snoozing and learned timing
"""

from datetime import date
from typing import List
from fastapi import APIRouter, Depends, Query

from api.deps import services
from api.schemas.reminder import (
    SnoozeRequest,
    SnoozeOption,
    ReminderScheduleResponse,
    NotificationBehaviorResponse,
)
from actions.reminder_engine import get_snooze_options
from services.medication_service import MedicationService
from tools.schedule_model import normalize_date


router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("/snooze-options", response_model=List[SnoozeOption])
async def list_snooze_options():
    return get_snooze_options()


@router.get("/{medication_id}/stages", response_model=ReminderScheduleResponse)
async def get_reminder_stages_for_date(
    medication_id: str,
    slot_date: date = Query(..., alias="date"),
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Reminder stages of each scheduled time on a date
    """
    stages = service.get_reminder_stages_for_date(medication_id, slot_date)
    return ReminderScheduleResponse(
        medication_id=medication_id,
        date=normalize_date(slot_date),
        stages={
            clock_time: [stage.to_dict() for stage in slot_stages]
            for clock_time, slot_stages in stages.items()
        },
    )


@router.post("/{medication_id}/snooze", response_model=NotificationBehaviorResponse)
async def snooze_reminder(
    medication_id: str,
    request: SnoozeRequest,
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Snooze reminders and advance the escalation stage
    """
    return service.snooze_reminder(medication_id, request.minutes).to_dict()


@router.get("/{medication_id}/behavior", response_model=NotificationBehaviorResponse)
async def get_notification_behavior(
    medication_id: str,
    service: MedicationService = Depends(services.get_medication_service)
):
    return service.get_notification_behavior(medication_id).to_dict()
