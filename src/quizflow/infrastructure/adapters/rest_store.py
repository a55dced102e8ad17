"""
REST durable store: Infrastructure adapter for a PostgREST-style API.

Implements DurableStore over three tables:

    card_stats      unique (user_id, card_id)
    study_activity  unique (user_id, date)
    study_sessions  unique (user_id, set_id, mode)

Upserts use `on_conflict` with `Prefer: resolution=merge-duplicates`.
"""

import logging
from typing import Any

import httpx

from quizflow.domain.constants import (
    ACTIVITY_TABLE,
    CARD_STATS_TABLE,
    REQUEST_TIMEOUT,
    SESSIONS_TABLE,
)
from quizflow.domain.exceptions import StoreError
from quizflow.domain.interfaces import DurableStore
from quizflow.domain.models import StudyMode
from quizflow.domain.session.models import StudySession, parse_timestamp
from quizflow.domain.stats.models import ActivityRecord, CardStat

Params = list[tuple[str, str]]


def _in_list(values: list[str]) -> str:
    quoted = ",".join('"' + v.replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


class RestDurableStore(DurableStore):
    """Adapter for a hosted Postgres exposed through PostgREST (e.g. Supabase)."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._client = client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Card stats
    # ------------------------------------------------------------------

    async def get_card_stat(self, learner: str, card_id: str) -> CardStat | None:
        rows = await self._select(
            CARD_STATS_TABLE, [("user_id", f"eq.{learner}"), ("card_id", f"eq.{card_id}")]
        )
        return self._row_to_stat(rows[0]) if rows else None

    async def get_card_stats(self, learner: str, card_ids: list[str]) -> dict[str, CardStat]:
        if not card_ids:
            return {}
        rows = await self._select(
            CARD_STATS_TABLE, [("user_id", f"eq.{learner}"), ("card_id", _in_list(card_ids))]
        )
        stats = (self._row_to_stat(r) for r in rows)
        return {s.card_id: s for s in stats}

    async def put_card_stat(self, learner: str, stat: CardStat) -> None:
        row = {
            "user_id": learner,
            "card_id": stat.card_id,
            "correct": stat.correct,
            "incorrect": stat.incorrect,
            "streak": stat.streak,
            # Written for readers of the table; recomputed from counters on load
            "difficulty": stat.difficulty.value,
            "interval_days": stat.interval,
            "next_review": stat.next_review.isoformat() if stat.next_review else None,
            "last_reviewed": stat.last_reviewed.isoformat() if stat.last_reviewed else None,
        }
        await self._upsert(CARD_STATS_TABLE, "user_id,card_id", row)

    async def delete_card_stats(self, learner: str, card_ids: list[str]) -> None:
        if not card_ids:
            return
        await self._request(
            "DELETE",
            CARD_STATS_TABLE,
            params=[("user_id", f"eq.{learner}"), ("card_id", _in_list(card_ids))],
        )

    # ------------------------------------------------------------------
    # Activity
    # ------------------------------------------------------------------

    async def get_activity(self, learner: str, date: str) -> ActivityRecord | None:
        rows = await self._select(
            ACTIVITY_TABLE, [("user_id", f"eq.{learner}"), ("date", f"eq.{date}")]
        )
        return self._row_to_activity(rows[0]) if rows else None

    async def put_activity(self, learner: str, date: str, count: int) -> None:
        await self._upsert(
            ACTIVITY_TABLE, "user_id,date", {"user_id": learner, "date": date, "count": count}
        )

    async def get_activity_range(
        self, learner: str, start: str, end: str
    ) -> list[ActivityRecord]:
        rows = await self._select(
            ACTIVITY_TABLE,
            [
                ("user_id", f"eq.{learner}"),
                ("date", f"gte.{start}"),
                ("date", f"lte.{end}"),
                ("order", "date.asc"),
            ],
        )
        return [self._row_to_activity(r) for r in rows]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def get_study_session(
        self, learner: str, subject_id: str, mode: StudyMode
    ) -> StudySession | None:
        rows = await self._select(
            SESSIONS_TABLE,
            [
                ("user_id", f"eq.{learner}"),
                ("set_id", f"eq.{subject_id}"),
                ("mode", f"eq.{StudyMode(mode).value}"),
            ],
        )
        return self._row_to_session(rows[0]) if rows else None

    async def put_study_session(self, learner: str, session: StudySession) -> None:
        row = {
            "user_id": learner,
            "set_id": session.subject_id,
            "mode": session.mode.value,
            "progress": session.progress,
            "completed": session.completed,
            "updated_at": session.updated_at.isoformat() if session.updated_at else None,
        }
        await self._upsert(SESSIONS_TABLE, "user_id,set_id,mode", row)

    async def delete_study_session(
        self, learner: str, subject_id: str, mode: StudyMode
    ) -> None:
        await self._request(
            "DELETE",
            SESSIONS_TABLE,
            params=[
                ("user_id", f"eq.{learner}"),
                ("set_id", f"eq.{subject_id}"),
                ("mode", f"eq.{StudyMode(mode).value}"),
            ],
        )

    async def list_study_sessions(self, learner: str) -> list[StudySession]:
        rows = await self._select(SESSIONS_TABLE, [("user_id", f"eq.{learner}")])
        sessions = []
        for row in rows:
            try:
                sessions.append(self._row_to_session(row))
            except StoreError as e:
                # One unknown mode must not hide the learner's other sessions
                self.logger.warning(f"Skipping session row: {e}")
        return sessions

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _row_to_stat(self, row: dict[str, Any]) -> CardStat:
        try:
            interval = row.get("interval_days")
            return CardStat(
                card_id=str(row["card_id"]),
                correct=int(row.get("correct") or 0),
                incorrect=int(row.get("incorrect") or 0),
                streak=int(row.get("streak") or 0),
                interval=int(interval) if interval is not None else None,
                next_review=parse_timestamp(row.get("next_review")),
                last_reviewed=parse_timestamp(row.get("last_reviewed")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError("parse card_stats", f"bad row {row!r}: {e}") from e

    def _row_to_activity(self, row: dict[str, Any]) -> ActivityRecord:
        try:
            return ActivityRecord(date=str(row["date"])[:10], count=int(row.get("count") or 0))
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError("parse study_activity", f"bad row {row!r}: {e}") from e

    def _row_to_session(self, row: dict[str, Any]) -> StudySession:
        try:
            mode = StudyMode(row["mode"])
            subject_id = str(row["set_id"])
        except (KeyError, ValueError) as e:
            raise StoreError("parse study_sessions", f"bad row {row!r}: {e}") from e

        session = StudySession.from_payload(subject_id, mode, row)
        if session is None:
            raise StoreError("parse study_sessions", f"bad row {row!r}")
        return session

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _select(self, table: str, params: Params) -> list[dict[str, Any]]:
        data = await self._request("GET", table, params=[("select", "*"), *params])
        if not isinstance(data, list):
            raise StoreError(f"select {table}", "response is not a list")
        return data

    async def _upsert(self, table: str, on_conflict: str, row: dict[str, Any]) -> None:
        await self._request(
            "POST",
            table,
            params=[("on_conflict", on_conflict)],
            json=row,
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: Params | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer

        try:
            resp = await self._client.request(
                method,
                f"{self.base_url}/{table}",
                params=params,
                json=json,
                headers=headers,
            )
            resp.raise_for_status()
            if not resp.content:
                return None
            return resp.json()
        except httpx.HTTPError as e:
            self.logger.error(f"{method} {table} failed: {e}")
            raise StoreError(f"{method} {table}", str(e)) from e
        except ValueError as e:
            self.logger.error(f"{method} {table} returned invalid JSON: {e}")
            raise StoreError(f"{method} {table}", "invalid JSON response") from e
