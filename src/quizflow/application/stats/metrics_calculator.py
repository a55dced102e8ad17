"""
Metrics calculator for the statistics dashboard.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from quizflow.domain.models import Difficulty, Subject
from quizflow.domain.stats.models import CardStat


def _empty_distribution() -> dict[Difficulty, int]:
    return {tier: 0 for tier in Difficulty}


@dataclass
class SubjectSummary:
    """
    Per-subject study metrics.
    """

    subject_id: str
    title: str
    total_cards: int
    studied_cards: int
    mastered: int  # cards currently classified easy
    mastered_percent: int
    attempts: int
    correct: int
    accuracy: int | None  # None until the first outcome
    distribution: dict[Difficulty, int] = field(default_factory=_empty_distribution)


@dataclass
class Overview:
    total_cards: int
    total_attempts: int
    total_correct: int
    accuracy: int | None
    distribution: dict[Difficulty, int]
    subjects: list[SubjectSummary]


@dataclass
class WrongNoteEntry:
    subject_id: str
    subject_title: str
    card_id: str
    term: str
    definition: str
    correct: int
    incorrect: int
    streak: int
    difficulty: Difficulty

    @property
    def error_ratio(self) -> float:
        total = self.correct + self.incorrect
        return self.incorrect / total if total else 0.0


class MetricsCalculator:
    """
    Derives dashboard metrics from raw CardStat objects.

    Stateless and side-effect free. Percentages are rounded to whole numbers.
    """

    def summarize_subject(
        self, subject: Subject, stats: dict[str, CardStat]
    ) -> SubjectSummary:
        card_stats = [stats[c.id] for c in subject.cards if c.id in stats]
        distribution = self._distribution(card_stats)
        attempts = sum(s.attempts for s in card_stats)
        correct = sum(s.correct for s in card_stats)
        total = len(subject.cards)
        mastered = distribution[Difficulty.EASY]

        return SubjectSummary(
            subject_id=subject.id,
            title=subject.title,
            total_cards=total,
            studied_cards=len(card_stats),
            mastered=mastered,
            mastered_percent=_percent(mastered, total) or 0,
            attempts=attempts,
            correct=correct,
            accuracy=_percent(correct, attempts),
            distribution=distribution,
        )

    def overview(
        self, subjects: Iterable[Subject], stats: dict[str, CardStat]
    ) -> Overview:
        summaries = [self.summarize_subject(s, stats) for s in subjects]

        distribution = _empty_distribution()
        for summary in summaries:
            for tier, count in summary.distribution.items():
                distribution[tier] += count

        attempts = sum(s.attempts for s in summaries)
        correct = sum(s.correct for s in summaries)

        return Overview(
            total_cards=sum(s.total_cards for s in summaries),
            total_attempts=attempts,
            total_correct=correct,
            accuracy=_percent(correct, attempts),
            distribution=distribution,
            subjects=summaries,
        )

    def wrong_notes(
        self,
        subjects: Iterable[Subject],
        stats: dict[str, CardStat],
        sort_by: Literal["incorrect", "ratio"] = "incorrect",
        subject_id: str | None = None,
    ) -> list[WrongNoteEntry]:
        """
        Collect every card answered wrong at least once.

        Args:
            sort_by: "incorrect" for most misses first, "ratio" for the highest
                share of misses first.
            subject_id: Restrict to a single subject.
        """
        entries: list[WrongNoteEntry] = []
        for subject in subjects:
            if subject_id is not None and subject.id != subject_id:
                continue
            for card in subject.cards:
                stat = stats.get(card.id)
                if stat is None or stat.incorrect <= 0:
                    continue
                entries.append(
                    WrongNoteEntry(
                        subject_id=subject.id,
                        subject_title=subject.title,
                        card_id=card.id,
                        term=card.term,
                        definition=card.definition,
                        correct=stat.correct,
                        incorrect=stat.incorrect,
                        streak=stat.streak,
                        difficulty=stat.difficulty,
                    )
                )

        if sort_by == "ratio":
            entries.sort(key=lambda e: e.error_ratio, reverse=True)
        else:
            entries.sort(key=lambda e: e.incorrect, reverse=True)
        return entries

    def _distribution(self, stats: list[CardStat]) -> dict[Difficulty, int]:
        distribution = _empty_distribution()
        for stat in stats:
            distribution[stat.difficulty] += 1
        return distribution


def _percent(part: int, whole: int) -> int | None:
    if whole <= 0:
        return None
    return round(part / whole * 100)
