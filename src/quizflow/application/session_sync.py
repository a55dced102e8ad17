"""
Study session synchronization across a local cache and a durable store.

The two copies of a session are modelled as a two-tier cache:

    tier 1  local cache   synchronous, always written, never blocks on network
    tier 2  durable store asynchronous, debounced, best-effort

Reads reconcile the tiers by recency (last writer wins on `updated_at`).
Durable failures are logged and degrade to the local copy; they are retried
only by the next natural trigger (the next save or load), never by backoff.

Across devices the sync is weak: two devices studying the same subject at
once can silently overwrite each other's progress.
"""

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from quizflow.domain.constants import DEBOUNCE_SECONDS, SESSION_CACHE_PREFIX
from quizflow.domain.models import StudyMode, as_utc, day_key, utcnow
from quizflow.domain.session.models import StudySession
from quizflow.domain.session.ports import LocalCache, SessionRepository

logger = logging.getLogger(__name__)

SessionKey = tuple[str, StudyMode]


@dataclass(frozen=True)
class SyncPolicy:
    """
    Read preference, write fan-out and failure handling of the session sync.

    Attributes:
        debounce_seconds: Quiet period before a durable write is sent. A newer
            save inside the window replaces the pending payload.
        last_writer_wins: On load, keep whichever copy has the newer
            `updated_at`. When False the durable copy always wins if present.
        suppress_durable_errors: Swallow durable failures instead of raising.
    """

    debounce_seconds: float = DEBOUNCE_SECONDS
    last_writer_wins: bool = True
    suppress_durable_errors: bool = True


def cache_key(subject_id: str, mode: StudyMode) -> str:
    return f"{SESSION_CACHE_PREFIX}:{StudyMode(mode).value}:{subject_id}"


class SessionSyncManager:
    """
    Keeps per-(subject, mode) study progress mirrored in both tiers.

    State per key: no-session -> in-progress -> completed. Progress updates
    never move a completed session back to in-progress; only `clear` does.
    """

    def __init__(
        self,
        local_cache: LocalCache,
        durable: SessionRepository | None = None,
        learner: str | None = None,
        policy: SyncPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._cache = local_cache
        self._durable = durable
        self.learner = learner
        self.policy = policy or SyncPolicy()
        self._clock = clock

        self._known: dict[SessionKey, StudySession] = {}
        self._timers: dict[SessionKey, asyncio.Task] = {}
        self._queued: dict[SessionKey, tuple[str, StudySession]] = {}
        self._inflight: dict[SessionKey, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def has_durable(self) -> bool:
        return bool(self.learner) and self._durable is not None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_local(self, subject_id: str, mode: StudyMode) -> StudySession | None:
        """Fast path: the cached copy, or None if absent or unreadable."""
        mode = StudyMode(mode)
        try:
            raw = self._cache.get(cache_key(subject_id, mode))
        except Exception as e:
            logger.warning(f"Local cache read failed for {subject_id}/{mode.value}: {e}")
            return None

        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring malformed cached session {subject_id}/{mode.value}")
            return None
        return StudySession.from_payload(subject_id, mode, data)

    async def load_initial(self, subject_id: str, mode: StudyMode) -> StudySession | None:
        """
        Resolve the session to resume from.

        The local copy is read first. With a learner identity the durable copy
        is fetched and preferred when present, unless the local copy is
        strictly newer (an offline write that never reached the store), in
        which case the local copy wins and is queued for upload.
        """
        mode = StudyMode(mode)
        key = (subject_id, mode)
        local = self.read_local(subject_id, mode)

        if not self.has_durable:
            self._remember(key, local)
            return local

        learner = self.learner
        try:
            remote = await self._durable.get_study_session(learner, subject_id, mode)
        except Exception as e:
            if not self.policy.suppress_durable_errors:
                raise
            logger.warning(f"Durable session read failed for {subject_id}/{mode.value}: {e}")
            self._remember(key, local)
            return local

        if remote is None:
            self._remember(key, local)
            return local

        if self.policy.last_writer_wins and local is not None and local.is_newer_than(remote):
            logger.debug(f"Local session {subject_id}/{mode.value} is newer; re-uploading")
            self._remember(key, local)
            self._schedule_durable_write(key, learner, local)
            return local

        self._write_local(key, remote)
        self._remember(key, remote)
        return remote

    async def load_all(self) -> list[StudySession]:
        """Every durable session of the learner; empty when unavailable."""
        if not self.has_durable:
            return []
        try:
            return await self._durable.list_study_sessions(self.learner)
        except Exception as e:
            if not self.policy.suppress_durable_errors:
                raise
            logger.warning(f"Durable session listing failed: {e}")
            return []

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_progress(
        self,
        subject_id: str,
        mode: StudyMode,
        progress: Mapping[str, Any],
        completed: bool = False,
    ) -> StudySession:
        """
        Record a progress change.

        The local cache is written immediately. With a learner identity a
        durable write is (re)scheduled after the debounce window, so a burst
        of changes produces one durable write carrying the last payload.

        Returns:
            The session now in effect. If the stored session is completed and
            this update is not, the update is refused and the completed
            session is returned unchanged.
        """
        mode = StudyMode(mode)
        key = (subject_id, mode)
        current = self._current(key)

        if not completed and self._is_terminal(current):
            logger.debug(
                f"Ignoring in-progress update for completed session {subject_id}/{mode.value}"
            )
            return current

        session = StudySession(
            subject_id=subject_id,
            mode=mode,
            progress=dict(progress),
            completed=completed,
            updated_at=self._next_timestamp(current),
        )

        self._write_local(key, session)
        self._remember(key, session)

        if self.has_durable:
            self._schedule_durable_write(key, self.learner, session)
        return session

    async def clear(self, subject_id: str, mode: StudyMode) -> None:
        """
        Remove both copies of a session (e.g. "retry" on a completed mode).

        A pending debounced write for the key is abandoned first, and a write
        already in flight is awaited, so neither can resurrect the session.
        """
        mode = StudyMode(mode)
        key = (subject_id, mode)
        self._cancel_pending(key)
        inflight = self._inflight.get(key)
        if inflight is not None:
            await asyncio.gather(inflight, return_exceptions=True)
        self._known.pop(key, None)

        try:
            self._cache.remove(cache_key(subject_id, mode))
        except Exception as e:
            logger.warning(f"Local cache remove failed for {subject_id}/{mode.value}: {e}")

        if not self.has_durable:
            return
        try:
            await self._durable.delete_study_session(self.learner, subject_id, mode)
        except Exception as e:
            if not self.policy.suppress_durable_errors:
                raise
            logger.warning(f"Durable session delete failed for {subject_id}/{mode.value}: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def pending_keys(self) -> list[SessionKey]:
        return list(self._queued)

    async def flush(self) -> None:
        """Send every pending write now and wait for in-flight writes."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

        queued = list(self._queued.values())
        self._queued.clear()
        for learner, session in queued:
            await self._write_durable(learner, session)

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Teardown: abandon every pending durable write."""
        for key in list(self._timers):
            self._cancel_pending(key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _current(self, key: SessionKey) -> StudySession | None:
        if key in self._known:
            return self._known[key]
        return self.read_local(*key)

    def _is_terminal(self, session: StudySession | None) -> bool:
        """
        Completed sessions are terminal, except a daily review completed on an
        earlier day, which gives way to today's review.
        """
        if session is None or not session.completed:
            return False
        if session.mode == StudyMode.REVIEW:
            return session.progress.get("date") == day_key(self._clock())
        return True

    def _remember(self, key: SessionKey, session: StudySession | None) -> None:
        if session is None:
            self._known.pop(key, None)
        else:
            self._known[key] = session

    def _next_timestamp(self, current: StudySession | None) -> datetime:
        """Clock reading, nudged forward so updated_at is strictly increasing per key."""
        now = as_utc(self._clock())
        if current is not None and current.updated_at is not None:
            previous = as_utc(current.updated_at)
            if now <= previous:
                now = previous + timedelta(microseconds=1)
        return now

    def _write_local(self, key: SessionKey, session: StudySession) -> None:
        try:
            self._cache.set(cache_key(*key), json.dumps(session.to_payload()))
        except Exception as e:
            logger.warning(f"Local cache write failed for {key[0]}/{key[1].value}: {e}")

    def _schedule_durable_write(
        self, key: SessionKey, learner: str, session: StudySession
    ) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; durable write deferred to next trigger")
            return

        self._cancel_pending(key)
        self._queued[key] = (learner, session)
        timer = loop.create_task(self._send_after_quiet_period(key))
        self._timers[key] = timer
        self._tasks.add(timer)
        timer.add_done_callback(self._tasks.discard)

    def _cancel_pending(self, key: SessionKey) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None and not timer.done():
            timer.cancel()
            logger.debug(f"Superseded pending durable write for {key[0]}/{key[1].value}")
        self._queued.pop(key, None)

    async def _send_after_quiet_period(self, key: SessionKey) -> None:
        await asyncio.sleep(self.policy.debounce_seconds)

        # Past this point the write is in flight: `clear` waits for it instead
        # of cancelling it.
        self._timers.pop(key, None)
        entry = self._queued.pop(key, None)
        if entry is None:
            return
        learner, session = entry
        task = asyncio.current_task()
        self._inflight[key] = task
        try:
            await self._write_durable(learner, session)
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    async def _write_durable(self, learner: str, session: StudySession) -> None:
        try:
            await self._durable.put_study_session(learner, session)
        except Exception as e:
            if not self.policy.suppress_durable_errors:
                raise
            logger.warning(
                f"Durable session write failed for "
                f"{session.subject_id}/{session.mode.value}: {e}"
            )
