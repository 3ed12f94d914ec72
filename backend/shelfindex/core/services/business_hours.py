from __future__ import annotations
import time
import logging
from datetime import datetime, time as dtime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger("shelf.business_hours")


def parse_clock(value: str) -> dtime:
    """Parse "HH:MM" (or "HH") into a time of day."""
    parts = value.strip().split(":")
    if not parts[0] or len(parts) > 2:
        raise ValueError(f"Invalid time of day: {value!r}")
    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) == 2 else 0
    return dtime(hour=hour, minute=minute)


class BusinessHoursGate:
    """
    Cooperative throttle that holds heavy work until local time is inside
    [start, end). A window whose end is earlier than its start wraps midnight.

    `clock` must return an aware datetime; `sleep` is the polling primitive.
    Both are injectable so tests can simulate hours passing without waiting.
    """

    def __init__(
        self,
        tz: str = "Europe/Amsterdam",
        start: str = "08:00",
        end: str = "21:00",
        poll_seconds: float = 60.0,
        enabled: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.tz = ZoneInfo(tz)
        self.start = parse_clock(start)
        self.end = parse_clock(end)
        self.poll_seconds = poll_seconds
        self.enabled = enabled
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.sleep = sleep

    def is_open(self, now: Optional[datetime] = None) -> bool:
        if not self.enabled:
            return True
        local = (now or self.clock()).astimezone(self.tz).time().replace(second=0, microsecond=0)
        if self.start == self.end:
            return True
        if self.start < self.end:
            return self.start <= local < self.end
        return local >= self.start or local < self.end

    def wait_if_needed(self, stage: str) -> int:
        """Block until the window is open; return how many polls it took."""
        if self.is_open():
            return 0
        logger.info(
            "🌙 Outside business hours (%s-%s %s); pausing at stage=%s",
            self.start.strftime("%H:%M"), self.end.strftime("%H:%M"), self.tz.key, stage,
        )
        polls = 0
        while not self.is_open():
            self.sleep(self.poll_seconds)
            polls += 1
        logger.info("☀️ Business hours window open; resuming at stage=%s after %d polls", stage, polls)
        return polls
