from abc import ABC

from quizflow.domain.session.ports import SessionRepository
from quizflow.domain.stats.ports import ActivityRepository, CardStatRepository


class DurableStore(CardStatRepository, ActivityRepository, SessionRepository, ABC):
    """
    The remote source of truth: card statistics, daily activity and sessions.

    Adapters implement all three record families behind one connection.
    """

    async def close(self) -> None:
        """Release network resources. No-op for in-process stores."""
        return None
