"""
In-memory durable store.

Implements every DurableStore port with plain dicts. Used as the default
backend and as the reference implementation in tests.
"""

from dataclasses import replace

from quizflow.domain.interfaces import DurableStore
from quizflow.domain.models import StudyMode
from quizflow.domain.session.models import StudySession
from quizflow.domain.stats.models import ActivityRecord, CardStat


class InMemoryDurableStore(DurableStore):
    def __init__(self):
        self.card_stats: dict[tuple[str, str], CardStat] = {}
        self.activity: dict[tuple[str, str], int] = {}
        self.sessions: dict[tuple[str, str, StudyMode], StudySession] = {}

    # Card stats

    async def get_card_stat(self, learner: str, card_id: str) -> CardStat | None:
        return self.card_stats.get((learner, card_id))

    async def get_card_stats(self, learner: str, card_ids: list[str]) -> dict[str, CardStat]:
        return {
            cid: self.card_stats[(learner, cid)]
            for cid in card_ids
            if (learner, cid) in self.card_stats
        }

    async def put_card_stat(self, learner: str, stat: CardStat) -> None:
        self.card_stats[(learner, stat.card_id)] = stat

    async def delete_card_stats(self, learner: str, card_ids: list[str]) -> None:
        for cid in card_ids:
            self.card_stats.pop((learner, cid), None)

    # Activity

    async def get_activity(self, learner: str, date: str) -> ActivityRecord | None:
        count = self.activity.get((learner, date))
        if count is None:
            return None
        return ActivityRecord(date=date, count=count)

    async def put_activity(self, learner: str, date: str, count: int) -> None:
        self.activity[(learner, date)] = count

    async def get_activity_range(
        self, learner: str, start: str, end: str
    ) -> list[ActivityRecord]:
        # ISO day keys sort lexicographically in date order
        return sorted(
            (
                ActivityRecord(date=d, count=c)
                for (who, d), c in self.activity.items()
                if who == learner and start <= d <= end
            ),
            key=lambda r: r.date,
        )

    # Sessions

    async def get_study_session(
        self, learner: str, subject_id: str, mode: StudyMode
    ) -> StudySession | None:
        session = self.sessions.get((learner, subject_id, StudyMode(mode)))
        return _copy(session) if session else None

    async def put_study_session(self, learner: str, session: StudySession) -> None:
        self.sessions[(learner, session.subject_id, session.mode)] = _copy(session)

    async def delete_study_session(
        self, learner: str, subject_id: str, mode: StudyMode
    ) -> None:
        self.sessions.pop((learner, subject_id, StudyMode(mode)), None)

    async def list_study_sessions(self, learner: str) -> list[StudySession]:
        return [_copy(s) for (who, _, _), s in self.sessions.items() if who == learner]


def _copy(session: StudySession) -> StudySession:
    return replace(session, progress=dict(session.progress))
