import json
from datetime import datetime, timezone

import httpx
import pytest

from quizflow.domain.exceptions import StoreError
from quizflow.domain.models import Difficulty, StudyMode
from quizflow.domain.session.models import StudySession
from quizflow.domain.stats.models import CardStat
from quizflow.infrastructure.adapters.rest_store import RestDurableStore

BASE = "https://db.example.com/rest/v1"
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeBackend:
    """Records requests and answers from a queue of canned responses."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            return self.responses.pop(0)
        return httpx.Response(201)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def rest(backend):
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    return RestDurableStore(BASE, api_key="anon-key", client=client)


@pytest.mark.asyncio
async def test_get_card_stat(rest, backend):
    backend.responses.append(
        httpx.Response(
            200,
            json=[
                {
                    "user_id": "u1",
                    "card_id": "c1",
                    "correct": 6,
                    "incorrect": 1,
                    "streak": 5,
                    "difficulty": "hard",  # stale column value
                    "interval_days": 14,
                    "next_review": "2024-03-29T12:00:00Z",
                    "last_reviewed": "2024-03-15T12:00:00+00:00",
                }
            ],
        )
    )

    stat = await rest.get_card_stat("u1", "c1")

    assert stat.correct == 6
    assert stat.interval == 14
    assert stat.next_review == datetime(2024, 3, 29, 12, 0, tzinfo=timezone.utc)
    # Difficulty is derived from the counters, not read back
    assert stat.difficulty == Difficulty.EASY

    request = backend.last
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/card_stats"
    assert request.url.params["user_id"] == "eq.u1"
    assert request.url.params["card_id"] == "eq.c1"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_get_card_stat_missing(rest, backend):
    backend.responses.append(httpx.Response(200, json=[]))
    assert await rest.get_card_stat("u1", "c1") is None


@pytest.mark.asyncio
async def test_get_card_stats_batches_ids(rest, backend):
    backend.responses.append(
        httpx.Response(200, json=[{"card_id": "c1", "correct": 1}, {"card_id": "c2"}])
    )

    stats = await rest.get_card_stats("u1", ["c1", "c2"])

    assert set(stats) == {"c1", "c2"}
    assert stats["c2"].attempts == 0
    assert backend.last.url.params["card_id"] == 'in.("c1","c2")'


@pytest.mark.asyncio
async def test_get_card_stats_empty_list_skips_request(rest, backend):
    assert await rest.get_card_stats("u1", []) == {}
    assert backend.requests == []


@pytest.mark.asyncio
async def test_put_card_stat_upserts(rest, backend):
    stat = CardStat("c1", correct=2, streak=2, interval=3, next_review=NOW, last_reviewed=NOW)

    await rest.put_card_stat("u1", stat)

    request = backend.last
    assert request.method == "POST"
    assert request.url.params["on_conflict"] == "user_id,card_id"
    assert "merge-duplicates" in request.headers["Prefer"]
    body = json.loads(request.content)
    assert body["interval_days"] == 3
    assert body["difficulty"] == "medium"
    assert body["next_review"] == NOW.isoformat()


@pytest.mark.asyncio
async def test_delete_card_stats(rest, backend):
    await rest.delete_card_stats("u1", ["c1"])

    assert backend.last.method == "DELETE"
    assert backend.last.url.params["card_id"] == 'in.("c1")'


@pytest.mark.asyncio
async def test_activity_range(rest, backend):
    backend.responses.append(
        httpx.Response(
            200,
            json=[{"date": "2024-03-14", "count": 3}, {"date": "2024-03-15", "count": 1}],
        )
    )

    records = await rest.get_activity_range("u1", "2024-03-01", "2024-03-15")

    assert [(r.date, r.count) for r in records] == [("2024-03-14", 3), ("2024-03-15", 1)]
    params = backend.last.url.params
    assert params.get_list("date") == ["gte.2024-03-01", "lte.2024-03-15"]
    assert params["order"] == "date.asc"


@pytest.mark.asyncio
async def test_put_activity(rest, backend):
    await rest.put_activity("u1", "2024-03-15", 4)

    assert backend.last.url.params["on_conflict"] == "user_id,date"
    assert json.loads(backend.last.content) == {"user_id": "u1", "date": "2024-03-15", "count": 4}


@pytest.mark.asyncio
async def test_session_round_trip(rest, backend):
    session = StudySession("s1", StudyMode.TEST, {"idx": 2}, completed=False, updated_at=NOW)
    await rest.put_study_session("u1", session)

    sent = json.loads(backend.last.content)
    assert sent["set_id"] == "s1"
    assert sent["mode"] == "test"
    assert backend.last.url.params["on_conflict"] == "user_id,set_id,mode"

    backend.responses.append(httpx.Response(200, json=[sent]))
    loaded = await rest.get_study_session("u1", "s1", StudyMode.TEST)

    assert loaded == session


@pytest.mark.asyncio
async def test_list_sessions_skips_unknown_modes(rest, backend):
    backend.responses.append(
        httpx.Response(
            200,
            json=[
                {"set_id": "s1", "mode": "learn", "progress": {"mastered": 1}},
                {"set_id": "s2", "mode": "quiz", "progress": {}},
            ],
        )
    )

    sessions = await rest.list_study_sessions("u1")

    assert [(s.subject_id, s.mode) for s in sessions] == [("s1", StudyMode.LEARN)]


@pytest.mark.asyncio
async def test_http_error_raises_store_error(rest, backend):
    backend.responses.append(httpx.Response(500, text="boom"))

    with pytest.raises(StoreError) as exc:
        await rest.get_activity("u1", "2024-03-15")
    assert exc.value.operation == "GET study_activity"


@pytest.mark.asyncio
async def test_invalid_json_raises_store_error(rest, backend):
    backend.responses.append(httpx.Response(200, text="<html>"))

    with pytest.raises(StoreError):
        await rest.get_card_stat("u1", "c1")


@pytest.mark.asyncio
async def test_non_list_select_raises_store_error(rest, backend):
    backend.responses.append(httpx.Response(200, json={"message": "nope"}))

    with pytest.raises(StoreError):
        await rest.get_card_stat("u1", "c1")


@pytest.mark.asyncio
async def test_transport_error_raises_store_error():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(unreachable))
    store = RestDurableStore(BASE, client=client)

    with pytest.raises(StoreError):
        await store.get_study_session("u1", "s1", StudyMode.FLASHCARD)
    await store.close()
