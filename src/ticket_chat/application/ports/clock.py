from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC; the gateway stamps every outbound event with it."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
