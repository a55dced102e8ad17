# Domain Stats Package
from .difficulty import classify_difficulty
from .models import ActivityRecord, CardStat
from .ports import ActivityRepository, CardStatRepository

__all__ = [
    "ActivityRecord",
    "CardStat",
    "classify_difficulty",
    "ActivityRepository",
    "CardStatRepository",
]
