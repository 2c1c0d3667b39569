"""
Clock
Injectable time source so elapsed time can be simulated in tests
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol


class Clock(Protocol):
    """Anything with a now() returning a naive local datetime"""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time of the host"""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


class FrozenClock:
    """Manually driven clock"""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, 9, 0)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **kwargs) -> datetime:
        """Move forward, e.g. advance(minutes=15)"""
        self._now = self._now + timedelta(**kwargs)
        return self._now


system_clock = SystemClock()
