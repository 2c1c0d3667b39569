"""
Reminder Schemas
Pydantic models for reminder stages, snoozing and learned timing
"""

from typing import Optional, List, Dict
from datetime import datetime
from pydantic import BaseModel, Field


class SnoozeRequest(BaseModel):
    """Snooze the current reminder"""
    minutes: int = Field(..., description="One of the offered snooze options")


class SnoozeOption(BaseModel):
    label: str
    minutes: int


class ReminderStageResponse(BaseModel):
    """One reminder instant of a slot"""
    stage: int
    scheduled_time: str
    reminder_time: datetime
    snooze_options: List[int]


class ReminderScheduleResponse(BaseModel):
    """Reminder stages of every slot on one date"""
    medication_id: str
    date: str
    stages: Dict[str, List[ReminderStageResponse]]


class NotificationBehaviorResponse(BaseModel):
    """Reminder state and learned lateness"""
    medication_id: str
    snooze_count: int = 0
    late_dose_count: int = 0
    average_response_time: Optional[float] = None
    adjusted_times: List[str] = Field(default_factory=list)
    reminder_stage: int = 0
    last_reminder_time: Optional[datetime] = None
    snoozed_until: Optional[datetime] = None
