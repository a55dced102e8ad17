from datetime import datetime, timezone

import pytest

from quizflow.domain.models import Card, Subject
from quizflow.infrastructure.adapters.local_cache import MemoryLocalCache
from quizflow.infrastructure.adapters.memory_store import InMemoryDurableStore

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for code that takes a `clock` callable."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryDurableStore()


@pytest.fixture
def cache():
    return MemoryLocalCache()


@pytest.fixture
def subjects():
    return [
        Subject(
            id="s1",
            title="Spanish",
            cards=[Card("c1", "hola", "hello"), Card("c2", "adios", "bye")],
        ),
        Subject(
            id="s2",
            title="Capitals",
            cards=[Card("c3", "France", "Paris"), Card("c4", "Peru", "Lima")],
        ),
    ]


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/cache
    monkeypatch.setenv("HOME", str(home))
    return home
