"""
Week window around "now": period boundaries, week labels, and the mapping
from a gig's date to its label.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from tracker import config

WEEK = timedelta(days=7)


def label_for_distance(distance):
    """0 -> "This week", -3 -> "-3w", 2 -> "+2w"."""
    if distance == 0:
        return config.CURRENT_WEEK_LABEL
    if distance < 0:
        return f"-{abs(distance)}w"
    return f"+{distance}w"


@dataclass(frozen=True)
class WeekWindow:
    now: datetime
    weeks_past: int = 10
    weeks_future: int = 6
    start_weekday: int = 0
    start_hour: int = 4

    @classmethod
    def build(cls, now=None, tz=None, weeks_past=None, weeks_future=None,
              start_weekday=None, start_hour=None):
        """Build a window from config defaults, anchored at `now` (default: current time)."""
        tz = tz or ZoneInfo(config.TIMEZONE)
        if now is None:
            now = datetime.now(tz)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=tz)
        else:
            now = now.astimezone(tz)

        return cls(
            now=now,
            weeks_past=config.WEEKS_PAST if weeks_past is None else weeks_past,
            weeks_future=config.WEEKS_FUTURE if weeks_future is None else weeks_future,
            start_weekday=config.WEEK_START_WEEKDAY if start_weekday is None else start_weekday,
            start_hour=config.WEEK_START_HOUR if start_hour is None else start_hour,
        )

    @property
    def tz(self):
        return self.now.tzinfo

    @property
    def period_count(self):
        return self.weeks_past + self.weeks_future + 1

    def period_start(self, instant):
        """Start of the week containing `instant`. A boundary instant starts its own week."""
        instant = instant.astimezone(self.tz)
        days_back = (instant.weekday() - self.start_weekday) % 7
        start = (instant - timedelta(days=days_back)).replace(
            hour=self.start_hour, minute=0, second=0, microsecond=0
        )
        if start > instant:
            start -= WEEK
        return start

    @property
    def current_start(self):
        return self.period_start(self.now)

    def distance(self, instant):
        """Signed number of whole weeks between `instant`'s week and the current week."""
        # Same tzinfo on both sides, so this is wall-clock arithmetic; round() absorbs DST drift
        delta = self.period_start(instant) - self.current_start
        return round(delta / WEEK)

    def label_for(self, instant):
        return label_for_distance(self.distance(instant))

    def periods(self):
        """(label, start, end) for every week in the window, oldest first. `end` is exclusive."""
        current = self.current_start
        out = []
        for offset in range(-self.weeks_past, self.weeks_future + 1):
            start = current + offset * WEEK
            out.append((label_for_distance(offset), start, start + WEEK))
        return out

    def labels(self):
        return [label for label, _, _ in self.periods()]
