"""
Database Models
Status enums and the SQLAlchemy table backing the medication store
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime
from enum import Enum as PyEnum

from database import Base


# ==================== ENUMS ====================

class DoseStatus(str, PyEnum):
    """Outcome stored in the dose ledger. Missing is never stored."""
    TAKEN = "taken"
    SKIPPED = "skipped"


class SlotStatus(str, PyEnum):
    """Derived status of a scheduled slot"""
    SCHEDULED = "scheduled"
    TAKEN = "taken"
    SKIPPED = "skipped"
    MISSING = "missing"


class FoodConstraint(str, PyEnum):
    """Food requirement for a medication"""
    WITH_FOOD = "with-food"
    WITHOUT_FOOD = "without-food"
    NONE = "none"


class FrequencyClass(str, PyEnum):
    """Coarse dosing frequency derived from the frequency text"""
    PRN = "prn"
    DAILY = "daily"
    TWICE_DAILY = "twice_daily"
    MULTIPLE_DAILY = "multiple_daily"
    UNKNOWN = "unknown"


class RecoveryAction(str, PyEnum):
    """Recommended action for a missed dose"""
    TAKE_NOW = "take_now"
    SKIP = "skip"
    CONSULT = "consult"
    TAKE_NEXT = "take_next"


class RecoverySeverity(str, PyEnum):
    """Severity of a missed dose"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PatternType(str, PyEnum):
    """Behavioral patterns mined from the ledger"""
    MISSED_DAY = "missed_day"
    LATE_TIME = "late_time"


class MilestoneType(str, PyEnum):
    DAYS = "days"
    DOSES = "doses"


class BadgeCategory(str, PyEnum):
    STREAK = "streak"
    ADHERENCE = "adherence"
    MILESTONE = "milestone"


class CheckInType(str, PyEnum):
    """Periodic review reminders for long-running medications"""
    LONG_TERM = "long-term"
    CHRONIC = "chronic"


# ==================== MODELS ====================

class StoreEntry(Base):
    """Opaque key/value document holding one slice of tracker state"""
    __tablename__ = "store_entries"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, index=True, nullable=False)
    value = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<StoreEntry {self.key}>"
