"""
Domain model for resumable study sessions.

A StudySession records where a learner currently is inside one mode of one
subject. The local cache copy and the durable copy are two physical replicas
of the same logical session and are reconciled by `updated_at`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from quizflow.domain.models import StudyMode, as_utc


@dataclass(frozen=True)
class StudySession:
    """
    Attributes:
        subject_id: The subject (card set) being studied.
        mode: Study mode the progress belongs to.
        progress: Mode-specific payload, e.g. {"idx": 3} for flashcards or
            {"mastered": 4, "total": 10} for learn mode.
        completed: Terminal flag; only an explicit clear reverts it.
        updated_at: Timestamp of the write that produced this copy.
    """

    subject_id: str
    mode: StudyMode
    progress: dict[str, Any] = field(default_factory=dict)
    completed: bool = False
    updated_at: datetime | None = None

    def is_newer_than(self, other: "StudySession | None") -> bool:
        if other is None:
            return True
        if self.updated_at is None:
            return False
        if other.updated_at is None:
            return True
        return as_utc(self.updated_at) > as_utc(other.updated_at)

    def to_payload(self) -> dict[str, Any]:
        return {
            "progress": dict(self.progress),
            "completed": self.completed,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_payload(
        cls, subject_id: str, mode: StudyMode, data: Any
    ) -> "StudySession | None":
        """
        Rebuild a session from its stored payload.

        Anything that is not a mapping yields None; a missing or non-mapping
        progress becomes an empty payload.
        """
        if not isinstance(data, dict):
            return None

        progress = data.get("progress")
        if not isinstance(progress, dict):
            progress = {}

        return cls(
            subject_id=subject_id,
            mode=mode,
            progress=progress,
            completed=bool(data.get("completed", False)),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value:
        return None
    try:
        # PostgREST emits a trailing "Z" on some deployments
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None
