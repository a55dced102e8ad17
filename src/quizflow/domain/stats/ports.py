"""
Ports (interfaces) for statistic and activity persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import ActivityRecord, CardStat


class CardStatRepository(ABC):
    """
    Port for the durable per-card statistics.

    Implementations:
        - InMemoryDurableStore: Dict-backed store for tests and offline use.
        - RestDurableStore: PostgREST-style HTTP API.
    """

    @abstractmethod
    async def get_card_stat(self, learner: str, card_id: str) -> CardStat | None:
        """Fetch the statistic for one card, or None if it was never studied."""
        pass

    @abstractmethod
    async def get_card_stats(self, learner: str, card_ids: list[str]) -> dict[str, CardStat]:
        """
        Fetch statistics for many cards at once.

        Returns:
            Mapping of card_id -> CardStat. Cards without a statistic are absent.
        """
        pass

    @abstractmethod
    async def put_card_stat(self, learner: str, stat: CardStat) -> None:
        """Insert or replace the statistic keyed by (learner, stat.card_id)."""
        pass

    @abstractmethod
    async def delete_card_stats(self, learner: str, card_ids: list[str]) -> None:
        """Remove every statistic of the given cards."""
        pass


class ActivityRepository(ABC):
    """Port for the date-keyed activity counters."""

    @abstractmethod
    async def get_activity(self, learner: str, date: str) -> ActivityRecord | None:
        pass

    @abstractmethod
    async def put_activity(self, learner: str, date: str, count: int) -> None:
        pass

    @abstractmethod
    async def get_activity_range(
        self, learner: str, start: str, end: str
    ) -> list[ActivityRecord]:
        """
        Fetch activity between two day keys, both inclusive.

        Returns:
            Records sorted by date ascending.
        """
        pass
