"""
Ports for the two tiers that hold study sessions.

Tier 1 is a synchronous flat string key/value cache on the device.
Tier 2 is the durable, asynchronous, remote store.
"""

from abc import ABC, abstractmethod

from quizflow.domain.models import StudyMode

from .models import StudySession


class LocalCache(ABC):
    """
    Flat string key/value surface of the device-local cache.

    The engine serializes its own payloads; implementations only move strings.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class SessionRepository(ABC):
    """Port for durable study sessions keyed by (learner, subject, mode)."""

    @abstractmethod
    async def get_study_session(
        self, learner: str, subject_id: str, mode: StudyMode
    ) -> StudySession | None:
        pass

    @abstractmethod
    async def put_study_session(self, learner: str, session: StudySession) -> None:
        pass

    @abstractmethod
    async def delete_study_session(
        self, learner: str, subject_id: str, mode: StudyMode
    ) -> None:
        pass

    @abstractmethod
    async def list_study_sessions(self, learner: str) -> list[StudySession]:
        """Fetch every session of the learner across subjects and modes."""
        pass
