"""
Queue builder for review sessions.

Builds the set of cards due "now" by:
1. Loading the statistics of every card in the given subjects
2. Keeping cards that were never scheduled or whose next review has arrived
3. Preserving collection order (subjects, then cards within a subject)

Also derives the per-subject/per-mode completion state used by resume UIs.
"""

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from quizflow.domain.models import (
    Card,
    CardRef,
    Difficulty,
    StudyMode,
    Subject,
    as_utc,
    day_key,
    utcnow,
)
from quizflow.domain.session.models import StudySession
from quizflow.domain.stats.models import CardStat
from quizflow.domain.stats.ports import CardStatRepository

from .progress import percent_complete

logger = logging.getLogger(__name__)

SessionStatus = Literal["none", "in_progress", "completed"]

_LEARN_PRIORITY = {
    Difficulty.UNRATED: 0,
    Difficulty.HARD: 1,
    Difficulty.MEDIUM: 2,
    Difficulty.EASY: 3,
}


@dataclass
class CompletionState:
    """Resume/continue state of one subject in one mode."""

    subject_id: str
    mode: StudyMode
    status: SessionStatus
    percent: int
    updated_at: datetime | None = None


def is_due(stat: CardStat | None, now: datetime) -> bool:
    """
    A card is due if it was never studied, never scheduled, or its review
    time has arrived. Once due it stays due until a new outcome is recorded.
    """
    if stat is None or stat.next_review is None:
        return True
    return as_utc(stat.next_review) <= as_utc(now)


def build_review_queue(
    subjects: Iterable[Subject],
    stats: dict[str, CardStat],
    now: datetime,
) -> list[CardRef]:
    """
    Collect due cards across subjects in collection order.

    Args:
        subjects: Subjects to scan.
        stats: Mapping of card_id -> CardStat (cards without one are due).
        now: Reference time.

    Returns:
        Ordered list of CardRef; no due-date sort is applied.
    """
    queue: list[CardRef] = []
    for subject in subjects:
        for card in subject.cards:
            if is_due(stats.get(card.id), now):
                queue.append(CardRef(subject.id, card.id, subject.title))
    return queue


def is_review_completed_today(session: StudySession | None, now: datetime) -> bool:
    """
    True only if the daily review session is completed *and* stamped today.

    A completion marker from a previous day is stale and does not count, so
    the queue is recomputed instead of reporting "nothing to review" forever.
    """
    if session is None or not session.completed:
        return False
    stamped = session.progress.get("date") if isinstance(session.progress, dict) else None
    return stamped == day_key(now)


def completion_state(
    subject: Subject,
    mode: StudyMode,
    session: StudySession | None,
    now: datetime,
) -> CompletionState:
    if session is None:
        return CompletionState(subject.id, mode, "none", 0)

    completed = session.completed
    if mode == StudyMode.REVIEW and completed and not is_review_completed_today(session, now):
        completed = False

    percent = percent_complete(mode, session.progress, completed, len(subject.cards))
    status: SessionStatus = "completed" if completed else "in_progress"
    return CompletionState(subject.id, mode, status, percent, session.updated_at)


def completion_states(
    subjects: Iterable[Subject],
    sessions: Iterable[StudySession],
    now: datetime,
) -> dict[str, dict[StudyMode, CompletionState]]:
    """
    Completion state of every subject in every mode that has a session.

    Returns:
        subject_id -> mode -> CompletionState. Subjects with no sessions map
        to an empty dict.
    """
    by_key = {(s.subject_id, s.mode): s for s in sessions}
    result: dict[str, dict[StudyMode, CompletionState]] = {}

    for subject in subjects:
        states: dict[StudyMode, CompletionState] = {}
        for mode in StudyMode:
            session = by_key.get((subject.id, mode))
            if session is not None:
                states[mode] = completion_state(subject, mode, session, now)
        result[subject.id] = states
    return result


def prioritize_for_learning(
    cards: Sequence[Card],
    stats: dict[str, CardStat],
    rng: random.Random | None = None,
) -> list[Card]:
    """
    Order cards for learn mode: unrated, then hard, medium, easy.

    When rng is given the cards are shuffled first; the sort is stable so the
    shuffle survives within each tier.
    """
    ordered = list(cards)
    if rng is not None:
        rng.shuffle(ordered)

    def priority(card: Card) -> int:
        stat = stats.get(card.id)
        return _LEARN_PRIORITY[stat.difficulty] if stat else 0

    return sorted(ordered, key=priority)


class DueQueueBuilder:
    """
    Recomputes the review queue from current statistics on demand.
    """

    def __init__(self, stats_repo: CardStatRepository):
        self._repo = stats_repo

    async def load_stats(
        self, learner: str, subjects: Sequence[Subject]
    ) -> dict[str, CardStat]:
        card_ids = [c.id for s in subjects for c in s.cards]
        if not card_ids:
            return {}
        return await self._repo.get_card_stats(learner, card_ids)

    async def due_cards(
        self,
        learner: str,
        subjects: Sequence[Subject],
        now: datetime | None = None,
    ) -> list[CardRef]:
        now = now or utcnow()
        stats = await self.load_stats(learner, subjects)
        queue = build_review_queue(subjects, stats, now)
        logger.debug(f"{len(queue)} cards due across {len(subjects)} subjects")
        return queue
