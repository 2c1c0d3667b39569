"""
Schedule Model
Medication records, their recurring daily schedule and slot keys
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from models import DoseStatus, FoodConstraint
from tools.frequency import is_prn_frequency


DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

_FOOD_ALIASES = {
    "with food": FoodConstraint.WITH_FOOD,
    "with-food": FoodConstraint.WITH_FOOD,
    "without food": FoodConstraint.WITHOUT_FOOD,
    "without-food": FoodConstraint.WITHOUT_FOOD,
    "none": FoodConstraint.NONE,
    "no specific instructions": FoodConstraint.NONE,
    "": FoodConstraint.NONE,
}


# ==================== SLOT KEYS ====================

def normalize_date(value: Union[str, date, datetime]) -> str:
    """ISO calendar date string; raises ValueError on bad input"""
    if isinstance(value, datetime):
        return value.date().strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return datetime.strptime(value, DATE_FORMAT).strftime(DATE_FORMAT)


def normalize_time(value: Union[str, time]) -> str:
    """Zero-padded HH:MM clock time; raises ValueError on bad input"""
    if isinstance(value, time):
        return value.strftime(TIME_FORMAT)
    return datetime.strptime(value.strip(), TIME_FORMAT).strftime(TIME_FORMAT)


def slot_key(slot_date: Union[str, date], clock_time: Union[str, time]) -> str:
    """Ledger key for a slot, e.g. '2024-01-05T08:00'"""
    return f"{normalize_date(slot_date)}T{normalize_time(clock_time)}"


def parse_slot_key(key: str) -> Tuple[str, str]:
    """Split a ledger key into (date, time)"""
    slot_date, _, clock_time = key.partition("T")
    return slot_date, clock_time


def slot_instant(slot_date: Union[str, date], clock_time: Union[str, time]) -> datetime:
    """Naive local datetime of a slot"""
    return datetime.strptime(slot_key(slot_date, clock_time), f"{DATE_FORMAT}T{TIME_FORMAT}")


def key_instant(key: str) -> datetime:
    return datetime.strptime(key, f"{DATE_FORMAT}T{TIME_FORMAT}")


def parse_food(value: Union[str, FoodConstraint, None]) -> FoodConstraint:
    if isinstance(value, FoodConstraint):
        return value
    try:
        return _FOOD_ALIASES[(value or "").strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown food constraint: {value}")


# ==================== ENTITIES ====================

@dataclass(frozen=True)
class Schedule:
    """Recurring daily dosing schedule of one medication"""
    medication_id: str
    medication_name: str
    times: Tuple[str, ...]
    food: FoodConstraint = FoodConstraint.NONE
    frequency: str = ""
    quantity: Optional[int] = None
    refill_threshold: Optional[int] = None

    @property
    def is_prn(self) -> bool:
        return is_prn_frequency(self.frequency)

    @property
    def doses_per_day(self) -> int:
        return len(self.times)

    def sorted_times(self) -> List[str]:
        return sorted(self.times)

    def slots_for_date(self, slot_date: Union[str, date]) -> List[str]:
        """Slot keys of one calendar day, in clock order"""
        return [slot_key(slot_date, t) for t in self.sorted_times()]

    def next_slot_after(self, instant: datetime) -> Optional[datetime]:
        """First scheduled instant strictly after `instant`, rolling into the next day"""
        times = self.sorted_times()
        if not times:
            return None
        for day_offset in (0, 1):
            day = instant.date() + timedelta(days=day_offset)
            for t in times:
                candidate = slot_instant(day, t)
                if candidate > instant:
                    return candidate
        return None


@dataclass
class Medication:
    """A tracked medication with its sparse dose ledger"""
    name: str
    dosage: str = ""
    frequency: str = ""
    times: List[str] = field(default_factory=list)
    food: FoodConstraint = FoodConstraint.NONE
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    quantity: Optional[int] = None
    refill_threshold: Optional[int] = None
    refill_notified: bool = False
    refill_history: List[str] = field(default_factory=list)
    drug_class: Optional[str] = None
    dose_status: Dict[str, DoseStatus] = field(default_factory=dict)
    missed_dose_reasons: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.times = [normalize_time(t) for t in self.times]
        self.food = parse_food(self.food)
        self.dose_status = {k: DoseStatus(v) for k, v in self.dose_status.items()}

    @property
    def schedule(self) -> Schedule:
        return Schedule(
            medication_id=self.id,
            medication_name=self.name,
            times=tuple(self.times),
            food=self.food,
            frequency=self.frequency,
            quantity=self.quantity,
            refill_threshold=self.refill_threshold,
        )

    @property
    def is_prn(self) -> bool:
        return is_prn_frequency(self.frequency)

    @property
    def needs_refill(self) -> bool:
        return (
            self.quantity is not None
            and self.refill_threshold is not None
            and self.quantity <= self.refill_threshold
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "times": list(self.times),
            "food": self.food.value,
            "quantity": self.quantity,
            "refill_threshold": self.refill_threshold,
            "refill_notified": self.refill_notified,
            "refill_history": list(self.refill_history),
            "drug_class": self.drug_class,
            "dose_status": {k: v.value for k, v in self.dose_status.items()},
            "missed_dose_reasons": dict(self.missed_dose_reasons),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Medication":
        return cls(
            id=data["id"],
            name=data["name"],
            dosage=data.get("dosage", ""),
            frequency=data.get("frequency", ""),
            times=data.get("times") or [],
            food=data.get("food") or FoodConstraint.NONE,
            quantity=data.get("quantity"),
            refill_threshold=data.get("refill_threshold"),
            refill_notified=bool(data.get("refill_notified", False)),
            refill_history=list(data.get("refill_history") or []),
            drug_class=data.get("drug_class"),
            dose_status=dict(data.get("dose_status") or {}),
            missed_dose_reasons=dict(data.get("missed_dose_reasons") or {}),
        )
