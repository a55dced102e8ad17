# Application Stats Package
from .metrics_calculator import MetricsCalculator, Overview, SubjectSummary, WrongNoteEntry
from .recorder import StatRecorder
from .scheduler import IntervalScheduler, ScheduleResult

__all__ = [
    "IntervalScheduler",
    "ScheduleResult",
    "StatRecorder",
    "MetricsCalculator",
    "Overview",
    "SubjectSummary",
    "WrongNoteEntry",
]
