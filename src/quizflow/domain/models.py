"""
Core domain models shared across layers.

Cards and subjects are owned by the authoring collaborator; the engine only
reads their identifiers and titles.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


class Difficulty(str, Enum):
    UNRATED = "unrated"
    MEDIUM = "medium"
    HARD = "hard"
    EASY = "easy"


class StudyMode(str, Enum):
    FLASHCARD = "flashcard"
    LEARN = "learn"
    TEST = "test"
    MATCH = "match"
    WRITE = "write"
    REVIEW = "review"


@dataclass(frozen=True)
class Card:
    id: str
    term: str = ""
    definition: str = ""


@dataclass
class Subject:
    """A named collection of cards (a "set")."""

    id: str
    title: str
    cards: list[Card] = field(default_factory=list)

    @property
    def card_ids(self) -> list[str]:
        return [c.id for c in self.cards]


@dataclass(frozen=True)
class CardRef:
    """Pointer to a card inside a subject, as handed to the review UI."""

    subject_id: str
    card_id: str
    subject_title: str = ""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Normalize a timestamp to aware UTC. Naive values are assumed to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def day_key(moment: datetime | date) -> str:
    """ISO day string (YYYY-MM-DD) of the UTC calendar date."""
    if isinstance(moment, datetime):
        return as_utc(moment).date().isoformat()
    return moment.isoformat()
