"""
Dose Schemas
Pydantic models for dose commands, safety checks and PRN dosing
"""

from typing import Optional, List, Dict
from datetime import date, datetime
from pydantic import BaseModel, Field

from models import DoseStatus, SlotStatus


# ==================== REQUEST SCHEMAS ====================

class DoseCommand(BaseModel):
    """Identifies one scheduled slot"""
    date: date
    time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")


class RecordDoseRequest(DoseCommand):
    """Mark a slot as taken"""
    acknowledge_warnings: bool = False


class SafetyCheckRequest(DoseCommand):
    """Dry-run the safety gate"""
    proposed_status: Optional[DoseStatus] = DoseStatus.TAKEN


class MissedReasonsRequest(BaseModel):
    """Free-text reasons keyed by medication id, then slot key"""
    reasons: Dict[str, Dict[str, str]]


class PRNLimitsUpdate(BaseModel):
    """Adjust the as-needed limits of a medication"""
    min_interval_hours: Optional[float] = Field(None, ge=0)
    max_per_day: Optional[int] = Field(None, ge=1)


# ==================== RESPONSE SCHEMAS ====================

class SafetyCheckResponse(BaseModel):
    """Errors block, warnings need confirmation"""
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    can_proceed: bool
    is_safe: bool


class DoseTransitionResponse(BaseModel):
    """Result of a dose command"""
    medication_id: str
    date: str
    time: str
    committed: bool
    status: Optional[DoseStatus] = None
    previous_status: Optional[DoseStatus] = None
    quantity: Optional[int] = None
    safety: SafetyCheckResponse


class SlotStatusResponse(BaseModel):
    """Derived status of a slot"""
    medication_id: str
    date: str
    time: str
    status: SlotStatus


class MissedDose(BaseModel):
    """A past slot with no entry"""
    medication_id: str
    medication_name: str
    date: str
    time: str


class MissedDoseList(BaseModel):
    missed: List[MissedDose]
    total: int


class PRNStateResponse(BaseModel):
    """As-needed counters of a medication"""
    medication_id: str
    reset_date: str
    min_interval_hours: float
    max_per_day: int
    taken_today: int
    last_taken_time: Optional[datetime] = None


class PRNAvailabilityResponse(BaseModel):
    """Whether an as-needed dose may be taken now"""
    can_take: bool
    reason: Optional[str] = None
    next_available_time: Optional[datetime] = None
