"""
Study Service: Application layer orchestrator.

The single surface the UI talks to: outcome recording, due queues, streaks,
calendars, dashboard metrics and session resume.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from typing import Any, Literal

from quizflow.domain.constants import DAILY_REVIEW_SUBJECT
from quizflow.domain.interfaces import DurableStore
from quizflow.domain.models import CardRef, StudyMode, Subject, utcnow
from quizflow.domain.session.models import StudySession
from quizflow.domain.stats.models import ActivityRecord, CardStat

from .activity_ledger import ActivityLedger
from .queue_builder import (
    CompletionState,
    DueQueueBuilder,
    build_review_queue,
    completion_states,
    is_review_completed_today,
)
from .session_sync import SessionSyncManager
from .stats.metrics_calculator import MetricsCalculator, Overview, WrongNoteEntry
from .stats.recorder import StatRecorder
from .stats.scheduler import IntervalScheduler

logger = logging.getLogger(__name__)


class StudyService:
    """
    Application service wiring the scheduling and sync components together.

    Follows Dependency Inversion: depends on the DurableStore and LocalCache
    abstractions (through SessionSyncManager), not on concrete adapters.

    Every read degrades instead of raising: an unreachable store yields
    "no statistics" (every card due), a streak of 0 or an empty calendar.
    """

    def __init__(
        self,
        store: DurableStore,
        sync: SessionSyncManager,
        scheduler: IntervalScheduler | None = None,
        calculator: MetricsCalculator | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            store: Durable store for statistics, activity and sessions.
            sync: Session sync manager; its learner is the service's learner.
            scheduler: Optional custom interval ladder.
            calculator: Optional custom dashboard calculator.
            clock: Source of "now" for operations called without a timestamp.
        """
        self._store = store
        self.sync = sync
        self.recorder = StatRecorder(store, scheduler)
        self.ledger = ActivityLedger(store)
        self.queue = DueQueueBuilder(store)
        self._calc = calculator or MetricsCalculator()
        self._clock = clock

    @property
    def learner(self) -> str | None:
        return self.sync.learner

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    async def record_outcome(
        self, card_id: str, was_correct: bool, now: datetime | None = None
    ) -> CardStat | None:
        """
        Record one learner-visible outcome.

        Updates the card statistic and bumps today's activity counter. The two
        writes are independent: either may fail without affecting the other.

        Returns:
            The updated CardStat, or None if it could not be persisted.
        """
        learner = self.learner
        if not learner:
            logger.warning(f"Outcome for card={card_id} dropped: no learner identity")
            return None

        now = now or self._clock()
        stat_result, activity_result = await asyncio.gather(
            self.recorder.record_outcome(learner, card_id, was_correct, now),
            self.ledger.record_activity(learner, now),
            return_exceptions=True,
        )

        if isinstance(activity_result, Exception):
            logger.warning(f"Activity write failed for card={card_id}: {activity_result}")

        if isinstance(stat_result, Exception):
            logger.warning(f"Card stat write failed for card={card_id}: {stat_result}")
            return None
        return stat_result

    async def reset_stats(self, subject: Subject) -> bool:
        """Delete every CardStat of the subject's cards. Returns success."""
        learner = self.learner
        if not learner:
            return False
        try:
            await self.recorder.reset(learner, subject.card_ids)
            return True
        except Exception as e:
            logger.warning(f"Reset failed for subject={subject.id}: {e}")
            return False

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------

    async def load_stats(self, subjects: Sequence[Subject]) -> dict[str, CardStat]:
        learner = self.learner
        if not learner:
            return {}
        try:
            return await self.queue.load_stats(learner, subjects)
        except Exception as e:
            logger.warning(f"Card stat read failed: {e}")
            return {}

    async def due_cards(
        self, subjects: Sequence[Subject], now: datetime | None = None
    ) -> list[CardRef]:
        stats = await self.load_stats(subjects)
        return build_review_queue(subjects, stats, now or self._clock())

    async def is_review_completed_today(self, now: datetime | None = None) -> bool:
        session = await self.sync.load_initial(DAILY_REVIEW_SUBJECT, StudyMode.REVIEW)
        return is_review_completed_today(session, now or self._clock())

    async def daily_review_queue(
        self, subjects: Sequence[Subject], now: datetime | None = None
    ) -> list[CardRef]:
        """Due cards, or nothing if today's review session is already done."""
        now = now or self._clock()
        if await self.is_review_completed_today(now):
            return []
        return await self.due_cards(subjects, now)

    async def completion_states(
        self, subjects: Sequence[Subject], now: datetime | None = None
    ) -> dict[str, dict[StudyMode, CompletionState]]:
        sessions = await self.sync.load_all()
        return completion_states(subjects, sessions, now or self._clock())

    # ------------------------------------------------------------------
    # Streak & calendar
    # ------------------------------------------------------------------

    async def compute_streak(self, now: datetime | None = None) -> int:
        learner = self.learner
        if not learner:
            return 0
        try:
            return await self.ledger.compute_streak(learner, now or self._clock())
        except Exception as e:
            logger.warning(f"Streak read failed: {e}")
            return 0

    async def compute_calendar(
        self, range_start: date | datetime | str, range_end: date | datetime | str
    ) -> dict[str, int]:
        learner = self.learner
        if not learner:
            return {}
        try:
            return await self.ledger.compute_calendar(learner, range_start, range_end)
        except Exception as e:
            logger.warning(f"Calendar read failed: {e}")
            return {}

    async def recent_calendar(
        self, days: int | None = None, now: datetime | None = None
    ) -> list[ActivityRecord]:
        learner = self.learner
        if not learner:
            return []
        kwargs = {"days": days} if days is not None else {}
        try:
            return await self.ledger.recent_calendar(learner, now or self._clock(), **kwargs)
        except Exception as e:
            logger.warning(f"Calendar read failed: {e}")
            return []

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def overview(self, subjects: Sequence[Subject]) -> Overview:
        stats = await self.load_stats(subjects)
        return self._calc.overview(subjects, stats)

    async def wrong_notes(
        self,
        subjects: Sequence[Subject],
        sort_by: Literal["incorrect", "ratio"] = "incorrect",
        subject_id: str | None = None,
    ) -> list[WrongNoteEntry]:
        stats = await self.load_stats(subjects)
        return self._calc.wrong_notes(subjects, stats, sort_by=sort_by, subject_id=subject_id)

    # ------------------------------------------------------------------
    # Session resume
    # ------------------------------------------------------------------

    async def load_initial(self, subject_id: str, mode: StudyMode) -> StudySession | None:
        return await self.sync.load_initial(subject_id, mode)

    def save_progress(
        self,
        subject_id: str,
        mode: StudyMode,
        progress: Mapping[str, Any],
        completed: bool = False,
    ) -> StudySession:
        return self.sync.save_progress(subject_id, mode, progress, completed)

    async def clear(self, subject_id: str, mode: StudyMode) -> None:
        await self.sync.clear(subject_id, mode)

    async def close(self) -> None:
        """Flush pending session writes and release the store."""
        await self.sync.flush()
        await self._store.close()
