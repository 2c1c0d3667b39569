"""
Adherence API Router
Endpoints for streaks, badges, weekly summaries, behavior patterns and periodic check-ins
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from api.deps import services
from api.schemas.adherence import (
    AdherenceStreakResponse,
    BadgeResponse,
    MotivationResponse,
    WeeklySummaryResponse,
    BehavioralPatternResponse,
    CheckInRequest,
    CheckInReminderResponse,
)
from services.medication_service import MedicationService


router = APIRouter(prefix="/adherence", tags=["adherence"])


@router.get("/streak", response_model=AdherenceStreakResponse)
async def get_adherence_streak(
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Current and longest day streaks with milestone progress
    """
    return service.get_adherence_streak().to_dict()


@router.get("/badges", response_model=List[BadgeResponse])
async def get_earned_badges(
    service: MedicationService = Depends(services.get_medication_service)
):
    return [badge.to_dict() for badge in service.get_earned_badges()]


@router.get("/motivation", response_model=MotivationResponse)
async def get_motivational_message(
    service: MedicationService = Depends(services.get_medication_service)
):
    streak = service.get_adherence_streak()
    return MotivationResponse(
        message=service.get_motivational_message(),
        current_streak=streak.current_streak,
    )


@router.get("/weekly", response_model=WeeklySummaryResponse)
async def get_weekly_summary(
    week_start: Optional[date] = Query(None, description="Any date in the week; defaults to this week"),
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Weekly adherence percentage, best and worst dose windows and coaching tips
    """
    return service.get_weekly_summary(week_start).to_dict()


@router.get("/patterns", response_model=List[BehavioralPatternResponse])
async def analyze_patterns(
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Recurring missed weekdays and busy dose windows per medication
    """
    return [pattern.to_dict() for pattern in service.analyze_patterns()]


@router.get("/check-ins", response_model=List[CheckInReminderResponse])
async def get_check_in_reminders(
    service: MedicationService = Depends(services.get_medication_service)
):
    """
    Long-term and chronic medications due for a review
    """
    return [reminder.to_dict() for reminder in service.get_check_in_reminders()]


@router.post("/check-ins/{medication_id}")
async def complete_check_in(
    medication_id: str,
    request: CheckInRequest,
    service: MedicationService = Depends(services.get_medication_service)
):
    completed = service.complete_check_in(medication_id, chronic_review=request.chronic_review)
    return {"medication_id": medication_id, "completed": completed}
