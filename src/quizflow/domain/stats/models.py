"""
Domain models for per-card statistics and daily activity.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import datetime

from quizflow.domain.models import Difficulty

from .difficulty import classify_difficulty


@dataclass(frozen=True)
class CardStat:
    """
    Outcome counters and review schedule for one learner x card.

    Attributes:
        card_id: The card these counters belong to.
        correct: Total correct outcomes.
        incorrect: Total incorrect outcomes.
        streak: Consecutive correct outcomes; reset to 0 by any incorrect one.
        interval: Last granted interval in days (None if never scheduled).
        next_review: When the card becomes due again (None means due now).
        last_reviewed: Timestamp of the latest outcome.
    """

    card_id: str
    correct: int = 0
    incorrect: int = 0
    streak: int = 0
    interval: int | None = None
    next_review: datetime | None = None
    last_reviewed: datetime | None = None

    @property
    def difficulty(self) -> Difficulty:
        return classify_difficulty(self.correct, self.incorrect, self.streak)

    @property
    def attempts(self) -> int:
        return self.correct + self.incorrect


@dataclass(frozen=True)
class ActivityRecord:
    """Number of outcome events a learner produced on one UTC day."""

    date: str  # YYYY-MM-DD
    count: int = 0
