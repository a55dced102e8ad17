import pytest
from fastapi.testclient import TestClient

from quizflow.application.service import StudyService
from quizflow.application.session_sync import SessionSyncManager, SyncPolicy
from quizflow.consts import VERSION
from quizflow.domain.models import StudyMode
from quizflow.domain.session.models import StudySession
from quizflow.domain.stats.models import CardStat
from quizflow.server import app, get_service

SUBJECTS = [
    {
        "id": "s1",
        "title": "Spanish",
        "cards": [
            {"id": "c1", "term": "hola", "definition": "hello"},
            {"id": "c2", "term": "adios", "definition": "bye"},
        ],
    }
]


def _service(store, cache, clock, learner="u1"):
    sync = SessionSyncManager(
        cache, store, learner=learner, policy=SyncPolicy(debounce_seconds=0.01), clock=clock
    )
    return StudyService(store=store, sync=sync, clock=clock)


@pytest.fixture
def service(store, cache, clock):
    return _service(store, cache, clock)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version(client):
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_record_outcome(client, store):
    response = client.post("/outcomes", json={"card_id": "c1", "correct": True})

    assert response.status_code == 200
    data = response.json()
    assert data["correct"] == 1
    assert data["interval"] == 1
    assert data["difficulty"] == "unrated"
    assert data["next_review"].startswith("2024-03-16T12:00:00")
    assert store.activity[("u1", "2024-03-15")] == 1


def test_record_outcome_without_identity(store, cache, clock):
    app.dependency_overrides[get_service] = lambda: _service(store, cache, clock, learner=None)
    try:
        with TestClient(app) as c:
            response = c.post("/outcomes", json={"card_id": "c1", "correct": True})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503


def test_due_cards(client, store, now):
    store.card_stats[("u1", "c1")] = CardStat("c1", interval=7, next_review=now.replace(year=2030))

    response = client.post("/due", json={"subjects": SUBJECTS})

    assert response.status_code == 200
    assert response.json() == {
        "cards": [{"subject_id": "s1", "card_id": "c2", "subject_title": "Spanish"}]
    }


def test_daily_due_cards_after_review_completed(client):
    client.put(
        "/sessions/daily-review/review",
        json={"progress": {"date": "2024-03-15", "done": 2}, "completed": True},
    )

    response = client.post("/due", json={"subjects": SUBJECTS, "daily": True})

    assert response.json() == {"cards": []}


def test_streak_and_calendar(client, store):
    store.activity[("u1", "2024-03-14")] = 3
    store.activity[("u1", "2024-03-15")] = 2

    assert client.get("/streak").json() == {"streak": 2}

    response = client.get("/calendar", params={"start": "2024-03-01", "end": "2024-03-31"})
    assert response.json() == {"days": {"2024-03-14": 3, "2024-03-15": 2}}

    recent = client.get("/calendar/recent", params={"days": 2}).json()["days"]
    assert recent == [{"date": "2024-03-14", "count": 3}, {"date": "2024-03-15", "count": 2}]


def test_session_lifecycle(client):
    missing = client.get("/sessions/s1/test")
    assert missing.json() == {"session": None}

    saved = client.put("/sessions/s1/test", json={"progress": {"idx": 1, "total": 2}})
    assert saved.status_code == 200
    assert saved.json()["progress"] == {"idx": 1, "total": 2}

    loaded = client.get("/sessions/s1/test").json()["session"]
    assert loaded["mode"] == "test"
    assert loaded["completed"] is False

    assert client.delete("/sessions/s1/test").json() == {"ok": True}
    assert client.get("/sessions/s1/test").json() == {"session": None}


def test_completed_session_is_not_regressed(client):
    client.put("/sessions/s1/learn", json={"progress": {"mastered": 2}, "completed": True})

    response = client.put("/sessions/s1/learn", json={"progress": {"mastered": 0}})

    assert response.json()["completed"] is True
    assert response.json()["progress"] == {"mastered": 2}


def test_unknown_mode_is_rejected(client):
    assert client.get("/sessions/s1/quiz").status_code == 422


def test_session_progress_from_store(client, store, now):
    store.sessions[("u1", "s1", StudyMode.LEARN)] = StudySession(
        "s1", StudyMode.LEARN, {"mastered": 1, "total": 2}, updated_at=now
    )

    data = client.post("/sessions/progress", json={"subjects": SUBJECTS}).json()

    assert data["s1"]["learn"]["status"] == "in_progress"
    assert data["s1"]["learn"]["percent"] == 50


def test_stats_endpoints(client, store):
    store.card_stats[("u1", "c1")] = CardStat("c1", correct=1, incorrect=3)
    store.card_stats[("u1", "c2")] = CardStat("c2", correct=5, streak=5)

    overview = client.post("/stats/overview", json={"subjects": SUBJECTS}).json()
    assert overview["total_attempts"] == 9
    assert overview["accuracy"] == 67
    assert overview["distribution"]["easy"] == 1
    assert overview["subjects"][0]["mastered"] == 1

    notes = client.post("/stats/wrong-notes", json={"subjects": SUBJECTS}).json()
    assert [n["card_id"] for n in notes["cards"]] == ["c1"]
    assert notes["cards"][0]["difficulty"] == "hard"

    reset = client.post("/stats/reset", json=SUBJECTS[0])
    assert reset.json() == {"ok": True}
    assert store.card_stats == {}
