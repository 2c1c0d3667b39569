"""
Adherence Schemas
Pydantic models for streaks, badges, weekly summaries, recovery guidance, patterns and check-ins
"""

from typing import Optional, List
from pydantic import BaseModel, Field

from models import (
    BadgeCategory,
    CheckInType,
    MilestoneType,
    PatternType,
    RecoveryAction,
    RecoverySeverity,
)


# ==================== STREAKS & BADGES ====================

class MilestoneResponse(BaseModel):
    id: str
    type: MilestoneType
    target: int
    achieved: bool
    achieved_date: Optional[str] = None


class AdherenceStreakResponse(BaseModel):
    """Streak summary across all medications"""
    current_streak: int
    longest_streak: int
    last_streak_date: str
    total_doses_taken: int
    milestones: List[MilestoneResponse] = Field(default_factory=list)


class BadgeResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    earned_date: str


class MotivationResponse(BaseModel):
    message: str
    current_streak: int


class WeeklySummaryResponse(BaseModel):
    """Monday-to-Sunday coaching summary"""
    week_start: str
    adherence_percentage: int
    total_doses: int
    taken_doses: int
    missed_doses: int
    best_time_window: str
    worst_time_window: str
    suggestions: List[str] = Field(default_factory=list)
    achievements: List[str] = Field(default_factory=list)


# ==================== RECOVERY & PATTERNS ====================

class RecoveryGuidanceResponse(BaseModel):
    """What to do about a missed dose"""
    medication_id: str
    medication_name: str
    missed_date: str
    missed_time: str
    hours_late: float
    guidance: str
    action: RecoveryAction
    severity: RecoverySeverity
    is_critical: bool = False


class BehavioralPatternResponse(BaseModel):
    medication_id: str
    pattern_type: PatternType
    frequency: int
    suggestion: str
    day_of_week: Optional[int] = None
    day_name: Optional[str] = None
    time_window: Optional[str] = None


# ==================== CHECK-INS ====================

class CheckInRequest(BaseModel):
    """Mark a check-in or chronic review as done"""
    chronic_review: bool = False


class CheckInReminderResponse(BaseModel):
    id: str
    medication_id: str
    medication_name: str
    type: CheckInType
    last_check_in: str
    next_check_in: str
    message: str
    priority: str
