"""
Mastery tier classification.

A pure rule over the outcome counters of a card. It is evaluated every time
the counters are read, so a stored tier can never drift from its counters.
"""

from quizflow.domain.constants import EASY_STREAK, MEDIUM_STREAK
from quizflow.domain.models import Difficulty


def classify_difficulty(correct: int, incorrect: int, streak: int) -> Difficulty:
    """
    Map outcome counters to a qualitative mastery tier.

    Precedence (first match wins):
        1. streak >= 5            -> easy
        2. streak >= 2            -> medium
        3. incorrect > correct    -> hard
        4. otherwise              -> unrated

    Not monotonic in total attempts: a wrong answer resets the streak, which
    can drop a previously easy card straight to hard or unrated.
    """
    if streak >= EASY_STREAK:
        return Difficulty.EASY
    if streak >= MEDIUM_STREAK:
        return Difficulty.MEDIUM
    if incorrect > correct:
        return Difficulty.HARD
    return Difficulty.UNRATED
