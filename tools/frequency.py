"""
Frequency Classifier
Maps free-text dosing frequency onto spacing hours and coarse classes
"""

import logging
import re
from typing import List, Optional

from config import tracker_config
from models import FrequencyClass


logger = logging.getLogger(__name__)


PRN_PHRASES = ("as needed", "prn", "when needed", "as required")

# (hours, phrases) checked in order; the first match wins
SPACING_RULES = [
    (4, ("every 4 hours", "every 4h", "q4h")),
    (6, ("every 6 hours", "every 6h", "q6h")),
    (8, ("every 8 hours", "every 8h", "q8h")),
    (12, ("every 12 hours", "every 12h", "q12h")),
    (12, ("twice", "bid")),
    (8, ("three times", "three", "tid")),
    (6, ("four times", "four", "qid")),
]

_EVERY_N_HOURS = re.compile(r"every\s+(\d+)\s*(?:hours?|hrs?|h)\b")
_QNH = re.compile(r"\bq(\d+)h\b")


def _normalize(frequency: Optional[str]) -> str:
    return (frequency or "").strip().lower()


def _interval_hours(text: str) -> Optional[int]:
    """Explicit 'every N hours' / 'qNh' interval, if any"""
    match = _EVERY_N_HOURS.search(text) or _QNH.search(text)
    if match:
        hours = int(match.group(1))
        return hours if hours > 0 else None
    return None


def is_prn_frequency(frequency: Optional[str]) -> bool:
    """True for as-needed medications"""
    text = _normalize(frequency)
    return any(phrase in text for phrase in PRN_PHRASES)


def get_recommended_spacing(frequency: Optional[str]) -> float:
    """
    Minimum hours between two doses of the same medication

    Explicit intervals and bid/tid/qid phrasing map to 4/6/8/12 hours;
    anything else falls back to the default minimum.
    """
    text = _normalize(frequency)

    for hours, phrases in SPACING_RULES:
        if any(phrase in text for phrase in phrases):
            return hours

    interval = _interval_hours(text)
    if interval:
        return interval

    return tracker_config.DEFAULT_MIN_SPACING_HOURS


def classify_frequency(frequency: Optional[str]) -> FrequencyClass:
    """Coarse frequency class used by the recovery advisor"""
    text = _normalize(frequency)

    if is_prn_frequency(text):
        return FrequencyClass.PRN

    if any(word in text for word in ("three", "tid", "four", "qid")):
        return FrequencyClass.MULTIPLE_DAILY

    interval = _interval_hours(text)
    if interval:
        if interval >= 24:
            return FrequencyClass.DAILY
        if interval >= 12:
            return FrequencyClass.TWICE_DAILY
        return FrequencyClass.MULTIPLE_DAILY

    if any(word in text for word in ("twice", "bid")):
        return FrequencyClass.TWICE_DAILY

    if any(word in text for word in ("once", "daily")):
        return FrequencyClass.DAILY

    return FrequencyClass.UNKNOWN


def fallback_times_from_frequency(frequency: Optional[str]) -> List[str]:
    """Static heuristic used when time inference is unavailable"""
    text = _normalize(frequency)

    if "twice" in text or "every 12 hours" in text:
        return ["09:00", "21:00"]
    if "once" in text or "daily" in text:
        return ["09:00"]

    logger.debug(f"No static schedule for frequency '{frequency}'")
    return []
