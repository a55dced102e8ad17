"""
StatRecorder: turns one outcome event into an updated CardStat.
"""

import logging
from dataclasses import replace
from datetime import datetime

from quizflow.domain.models import as_utc, utcnow
from quizflow.domain.stats.models import CardStat
from quizflow.domain.stats.ports import CardStatRepository

from .scheduler import IntervalScheduler

logger = logging.getLogger(__name__)


class StatRecorder:
    """
    Owns the outcome-to-state transition of a card.

    Callers must invoke it exactly once per learner-visible outcome; it does
    not deduplicate.
    """

    def __init__(
        self,
        stats_repo: CardStatRepository,
        scheduler: IntervalScheduler | None = None,
    ):
        self._repo = stats_repo
        self._scheduler = scheduler or IntervalScheduler()

    def apply(
        self,
        existing: CardStat | None,
        card_id: str,
        was_correct: bool,
        now: datetime,
    ) -> CardStat:
        """
        Compute the next statistic without touching storage.

        Args:
            existing: Current statistic, or None on the first outcome for the card.
            card_id: Card being judged (used when existing is None).
            was_correct: The learner's outcome.
            now: Outcome timestamp.
        """
        stat = existing or CardStat(card_id=card_id)
        now = as_utc(now)
        schedule = self._scheduler.schedule(stat.interval, was_correct, now)

        if was_correct:
            return replace(
                stat,
                correct=stat.correct + 1,
                streak=stat.streak + 1,
                interval=schedule.interval,
                next_review=schedule.next_review,
                last_reviewed=now,
            )

        return replace(
            stat,
            incorrect=stat.incorrect + 1,
            streak=0,
            interval=schedule.interval,
            next_review=schedule.next_review,
            last_reviewed=now,
        )

    async def record_outcome(
        self,
        learner: str,
        card_id: str,
        was_correct: bool,
        now: datetime | None = None,
    ) -> CardStat:
        """
        Load the card's statistic, apply the outcome and persist the result.

        Storage errors propagate; a failed read must not be mistaken for a
        first outcome, which would wipe the counters.
        """
        now = now or utcnow()
        existing = await self._repo.get_card_stat(learner, card_id)
        updated = self.apply(existing, card_id, was_correct, now)
        await self._repo.put_card_stat(learner, updated)

        logger.debug(
            f"Recorded {'correct' if was_correct else 'incorrect'} for card={card_id}: "
            f"streak={updated.streak} interval={updated.interval} "
            f"difficulty={updated.difficulty.value}"
        )
        return updated

    async def reset(self, learner: str, card_ids: list[str]) -> None:
        """Remove every statistic of the given cards."""
        if not card_ids:
            return
        await self._repo.delete_card_stats(learner, card_ids)
        logger.info(f"Reset statistics for {len(card_ids)} cards")
