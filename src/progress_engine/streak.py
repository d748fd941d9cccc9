"""
Day-based study streak.

Streaks are counted in whole calendar days, never by dividing raw timestamp
differences: 23:50 followed by 00:10 the next day is a 1-day gap, and 00:10
followed by 23:50 the same day is a 0-day gap. Timestamps are converted to the
configured day-boundary timezone (UTC by default) before truncating to a date.
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from progress_engine.types import OverallMetrics
from progress_api.utils.logger import configure_logging

logger = configure_logging()


def whole_calendar_days_between(earlier: date, later: date) -> int:
    """Signed number of calendar days from `earlier` to `later`."""
    return (later - earlier).days


class StreakCalculator:
    def __init__(self, tz: Union[str, tzinfo, None] = None):
        if tz is None:
            tz = timezone.utc
        elif isinstance(tz, str):
            tz = timezone.utc if tz.upper() == "UTC" else ZoneInfo(tz)
        self.tz = tz

    def study_date(self, now: datetime) -> date:
        """Calendar date of `now` at the configured day boundary."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz).date()

    def days_since_last_study(self, metrics: OverallMetrics, now: datetime) -> Optional[int]:
        if metrics.last_study_date is None:
            return None
        return whole_calendar_days_between(metrics.last_study_date, self.study_date(now))

    def touch(self, metrics: OverallMetrics, now: datetime) -> bool:
        """
        Record a study event at `now`. Returns False when the event was ignored
        because it is older than the last recorded study day.
        """
        today = self.study_date(now)
        diff = self.days_since_last_study(metrics, now)

        if diff is None:
            metrics.current_streak = 1
        elif diff < 0:
            logger.warning(
                "streak backdated event ignored last_study_date=%s event_date=%s",
                metrics.last_study_date, today,
            )
            return False
        elif diff == 1:
            metrics.current_streak += 1
        elif diff > 1:
            metrics.current_streak = 1

        metrics.longest_streak = max(metrics.longest_streak, metrics.current_streak)
        metrics.last_study_date = today
        return True

    def is_active(self, metrics: OverallMetrics, now: datetime) -> bool:
        """A streak is alive if the learner studied today or yesterday."""
        diff = self.days_since_last_study(metrics, now)
        return diff is not None and 0 <= diff <= 1
