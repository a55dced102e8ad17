"""
Fixed-ladder interval scheduler.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from quizflow.domain.constants import INTERVAL_LADDER
from quizflow.domain.models import as_utc


@dataclass(frozen=True)
class ScheduleResult:
    interval: int  # days
    next_review: datetime


class IntervalScheduler:
    """
    Grants review intervals from a static ladder of day counts.

    A correct answer climbs one rung (first rung if never scheduled, capped at
    the last rung). An incorrect answer always drops back to 1 day. There is no
    ease factor; the ladder stays fixed for predictability.
    """

    def __init__(self, ladder: tuple[int, ...] = INTERVAL_LADDER):
        if not ladder:
            raise ValueError("interval ladder must have at least one rung")
        self.ladder = tuple(ladder)

    def next_interval(self, previous: int | None, was_correct: bool) -> int:
        if not was_correct:
            return 1

        if not previous:
            return self.ladder[0]

        step = self._rung_index(previous) + 1
        return self.ladder[min(step, len(self.ladder) - 1)]

    def schedule(
        self, previous: int | None, was_correct: bool, now: datetime
    ) -> ScheduleResult:
        interval = self.next_interval(previous, was_correct)
        return ScheduleResult(
            interval=interval, next_review=as_utc(now) + timedelta(days=interval)
        )

    def _rung_index(self, interval: int) -> int:
        """
        Locate an interval on the ladder.

        Off-ladder values (e.g. imported from another scheduler) map to the
        highest rung not above them, so growth resumes from there.
        """
        if interval in self.ladder:
            return self.ladder.index(interval)

        index = -1
        for i, rung in enumerate(self.ladder):
            if rung <= interval:
                index = i
        return index
