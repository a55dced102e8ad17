"""
Normalization of per-mode progress payloads into one percent-complete signal.

Payload shapes by mode:
    flashcard  {"idx"}                          (total from the subject size)
    learn      {"mastered", "total"}
    test       {"idx", "total"}
    match      {"idx", "total"}
    write      {"idx", "total"}
    review     {"date", "done", "correct", "total"}

Missing or malformed fields are read as "no progress", never as an error.

"idx" is the number of cards already moved past, not the card on screen, so
a flashcard session opened on its first card is at 0% and reaches 100% only
when completed or when idx equals the subject size.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from quizflow.domain.models import StudyMode, day_key


def _as_count(value: Any) -> int | None:
    # bool is an int subclass; a stray True must not read as 1
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value >= 0:
        return int(value)
    return None


def position_of(progress: Mapping[str, Any] | None, field: str = "idx") -> int:
    """Read a position/count field from a payload, defaulting to 0."""
    if not isinstance(progress, Mapping):
        return 0
    return _as_count(progress.get(field)) or 0


def percent_complete(
    mode: StudyMode,
    progress: Mapping[str, Any] | None,
    completed: bool = False,
    card_count: int | None = None,
) -> int:
    """
    Percent (0-100) of the mode's work that is done.

    Args:
        mode: Study mode the payload belongs to.
        progress: The stored payload; may be None or partial.
        completed: A completed session is always 100.
        card_count: Subject size, used when the payload has no "total".
    """
    if completed:
        return 100
    if not isinstance(progress, Mapping):
        return 0

    total = _as_count(progress.get("total"))
    if total is None:
        total = card_count

    if mode == StudyMode.LEARN:
        done = position_of(progress, "mastered")
    elif mode == StudyMode.REVIEW:
        done = position_of(progress, "done")
    else:
        done = position_of(progress, "idx")

    if not total:
        return 0
    return max(0, min(100, round(done / total * 100)))


def review_payload(
    now: datetime, done: int, correct: int, total: int | None = None
) -> dict[str, Any]:
    """Progress payload of the daily review mode, stamped with today's day key."""
    payload: dict[str, Any] = {"date": day_key(now), "done": done, "correct": correct}
    if total is not None:
        payload["total"] = total
    return payload
