"""
Configuration management for MedMinder
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "MedMinder"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Persistence
    STORE_BACKEND: str = "memory"  # "memory" or "sql"
    DATABASE_URL: str = "sqlite:///./medminder.db"
    DATABASE_ECHO: bool = False

    # LLM Configuration (schedule-time inference)
    CEREBRAS_API_KEY: Optional[str] = None
    CEREBRAS_BASE_URL: str = "https://api.cerebras.ai/v1"
    LLM_MODEL: str = "llama3.1-8b"
    LLM_TEMPERATURE: float = 0.2
    LLM_MAX_TOKENS: int = 256
    LLM_TIMEOUT_SECONDS: int = 15

    # Background ticker
    TICK_INTERVAL_SECONDS: int = 60
    TICKER_ENABLED: bool = True

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class TrackerConfig:
    """Rules and thresholds for dose tracking"""

    # Reminder escalation
    SNOOZE_OPTIONS_MINUTES: list[int] = [5, 10, 15]
    STAGE_OFFSETS_MINUTES: list[int] = [0, 15, 30]  # stage 0, follow-up, check-in

    # Adaptive timing
    MAX_ADAPTIVE_SHIFT_MINUTES: int = 30
    EWMA_HISTORY_WEIGHT: float = 0.7
    EWMA_SAMPLE_WEIGHT: float = 0.3

    # Safety gate
    DEFAULT_MIN_SPACING_HOURS: float = 2
    EARLY_MARK_WINDOW_HOURS: float = 1
    MEAL_WINDOWS: list[tuple[int, int]] = [(7, 9), (12, 14), (18, 20)]  # inclusive hours

    # Recovery advisor
    RECOVERY_TAKE_NOW_HOURS: float = 2
    RECOVERY_LATE_HOURS: float = 4
    RECOVERY_NEXT_DOSE_GAP_HOURS: float = 4
    CRITICAL_MEDICATIONS: list[str] = ["warfarin", "insulin", "digoxin", "lithium", "phenytoin"]
    CRITICAL_ADDENDUM: str = (
        " ⚠️ This is a critical medication - consult your healthcare provider "
        "if you have concerns."
    )

    # Adherence analytics
    DAY_MILESTONES: list[int] = [7, 30, 100]
    DOSE_MILESTONES: list[int] = [50, 100, 500]

    # PRN defaults
    PRN_DEFAULT_MIN_INTERVAL_HOURS: float = 4
    PRN_DEFAULT_MAX_PER_DAY: int = 4

    # Timer-driven checks
    REFILL_CHECK_TIME: str = "09:00"
    MISSED_DOSE_LOOKBACK_DAYS: int = 2

    # Behavior analysis
    BEHAVIOR_LOOKBACK_DAYS: int = 28
    PATTERN_MIN_OCCURRENCES: int = 3

    # Periodic check-ins
    LONG_TERM_CHECKIN_DAYS: int = 90
    LONG_TERM_HIGH_PRIORITY_DAYS: int = 120
    CHRONIC_REVIEW_DAYS: int = 180
    CHRONIC_HIGH_PRIORITY_DAYS: int = 240
    CHRONIC_CONDITIONS: list[str] = ["blood pressure", "diabetes", "cholesterol", "heart", "thyroid"]


# Store keys
class StoreKeys:
    MEDICATIONS = "medications"
    ARCHIVED_MEDICATIONS = "archived_medications"
    PRN_STATES = "prn_states"
    NOTIFICATION_BEHAVIORS = "notification_behaviors"
    CHECK_INS = "check_ins"
    TICKER_STATE = "ticker_state"


settings = get_settings()
tracker_config = TrackerConfig()
