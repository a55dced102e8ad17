"""
Activity ledger for streaks and the study calendar.

Each outcome event bumps a per-day counter. Streak length and calendar
histograms are derived from those counters on read; nothing derived is stored.
Day boundaries are UTC calendar days.
"""

import calendar
import logging
from collections.abc import Mapping
from datetime import date, datetime, timedelta

from quizflow.domain.constants import DEFAULT_CALENDAR_DAYS, STREAK_SCAN_LIMIT
from quizflow.domain.models import as_utc, day_key, utcnow
from quizflow.domain.stats.models import ActivityRecord
from quizflow.domain.stats.ports import ActivityRepository

logger = logging.getLogger(__name__)


def streak_from_counts(counts: Mapping[str, int], today: date) -> int:
    """
    Length of the run of consecutive active days ending today or yesterday.

    A chain whose last active day is before yesterday is broken and counts as
    0, however long it was. At most STREAK_SCAN_LIMIT days are scanned.
    """
    yesterday = today - timedelta(days=1)

    if counts.get(day_key(today), 0) > 0:
        cursor = today
    elif counts.get(day_key(yesterday), 0) > 0:
        cursor = yesterday
    else:
        return 0

    streak = 0
    for _ in range(STREAK_SCAN_LIMIT):
        if counts.get(day_key(cursor), 0) <= 0:
            break
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def _to_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


class ActivityLedger:
    """
    Records study events and derives streak / calendar views.

    Depends on the ActivityRepository port only.
    """

    def __init__(self, activity_repo: ActivityRepository):
        self._repo = activity_repo

    async def record_activity(self, learner: str, now: datetime | None = None) -> int:
        """
        Increment today's counter by one.

        Upsert semantics: the first event of a day creates the record with
        count 1. Returns the new count.
        """
        today = day_key(now or utcnow())
        existing = await self._repo.get_activity(learner, today)
        count = (existing.count if existing else 0) + 1
        await self._repo.put_activity(learner, today, count)
        logger.debug(f"Activity for {today}: {count}")
        return count

    async def compute_streak(self, learner: str, now: datetime | None = None) -> int:
        today = as_utc(now or utcnow()).date()
        start = today - timedelta(days=STREAK_SCAN_LIMIT)
        records = await self._repo.get_activity_range(
            learner, day_key(start), day_key(today)
        )
        return streak_from_counts({r.date: r.count for r in records}, today)

    async def compute_calendar(
        self,
        learner: str,
        range_start: date | datetime | str,
        range_end: date | datetime | str,
    ) -> dict[str, int]:
        """
        Return a sparse date -> count map for days with recorded activity.

        Both bounds are inclusive.
        """
        start = _to_date(range_start)
        end = _to_date(range_end)
        if start > end:
            return {}

        records = await self._repo.get_activity_range(learner, day_key(start), day_key(end))
        return {r.date: r.count for r in records}

    async def calendar_month(self, learner: str, year: int, month: int) -> dict[str, int]:
        """Sparse calendar for one month (month is 1-12)."""
        last_day = calendar.monthrange(year, month)[1]
        return await self.compute_calendar(
            learner, date(year, month, 1), date(year, month, last_day)
        )

    async def recent_calendar(
        self,
        learner: str,
        now: datetime | None = None,
        days: int = DEFAULT_CALENDAR_DAYS,
    ) -> list[ActivityRecord]:
        """
        Dense calendar of the last `days` days, oldest first, zero-filled.
        """
        if days <= 0:
            return []

        today = as_utc(now or utcnow()).date()
        start = today - timedelta(days=days - 1)
        counts = await self.compute_calendar(learner, start, today)

        return [
            ActivityRecord(date=day_key(d), count=counts.get(day_key(d), 0))
            for d in (start + timedelta(days=i) for i in range(days))
        ]
