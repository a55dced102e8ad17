"""Tests for the review queue builder and completion states."""

import random
from datetime import timedelta

import pytest

from quizflow.application.queue_builder import (
    DueQueueBuilder,
    build_review_queue,
    completion_state,
    completion_states,
    is_due,
    is_review_completed_today,
    prioritize_for_learning,
)
from quizflow.domain.models import Card, CardRef, StudyMode, Subject
from quizflow.domain.session.models import StudySession
from quizflow.domain.stats.models import CardStat


class TestIsDue:
    def test_no_stat_is_due(self, now):
        assert is_due(None, now)

    def test_unscheduled_stat_is_due(self, now):
        assert is_due(CardStat("c1", correct=1), now)

    def test_past_review_is_due(self, now):
        assert is_due(CardStat("c1", next_review=now - timedelta(hours=1)), now)

    def test_exact_review_time_is_due(self, now):
        assert is_due(CardStat("c1", next_review=now), now)

    def test_future_review_is_not_due(self, now):
        assert not is_due(CardStat("c1", next_review=now + timedelta(seconds=1)), now)

    def test_due_is_monotonic_in_time(self, now):
        stat = CardStat("c1", next_review=now)
        for hours in range(0, 200, 7):
            assert is_due(stat, now + timedelta(hours=hours))


def test_build_review_queue_keeps_collection_order(subjects, now):
    stats = {
        "c1": CardStat("c1", next_review=now + timedelta(days=3)),
        "c3": CardStat("c3", next_review=now - timedelta(days=3)),
        "c4": CardStat("c4", next_review=now - timedelta(days=30)),
    }

    queue = build_review_queue(subjects, stats, now)

    assert queue == [
        CardRef("s1", "c2", "Spanish"),
        CardRef("s2", "c3", "Capitals"),
        CardRef("s2", "c4", "Capitals"),
    ]


def test_build_review_queue_empty_subjects(now):
    assert build_review_queue([], {}, now) == []
    assert build_review_queue([Subject("s", "Empty")], {}, now) == []


class TestReviewCompletedToday:
    def test_completed_today(self, now):
        session = StudySession(
            "daily", StudyMode.REVIEW, {"date": "2024-03-15", "done": 4}, completed=True
        )
        assert is_review_completed_today(session, now)

    def test_stale_completion_does_not_count(self, now):
        session = StudySession(
            "daily", StudyMode.REVIEW, {"date": "2024-03-14", "done": 4}, completed=True
        )
        assert not is_review_completed_today(session, now)

    def test_in_progress_today(self, now):
        session = StudySession("daily", StudyMode.REVIEW, {"date": "2024-03-15"})
        assert not is_review_completed_today(session, now)

    def test_missing_date(self, now):
        session = StudySession("daily", StudyMode.REVIEW, {}, completed=True)
        assert not is_review_completed_today(session, now)

    def test_no_session(self, now):
        assert not is_review_completed_today(None, now)


class TestCompletionState:
    def test_no_session(self, subjects, now):
        state = completion_state(subjects[0], StudyMode.TEST, None, now)
        assert state.status == "none"
        assert state.percent == 0

    def test_in_progress_flashcard(self, subjects, now):
        session = StudySession("s1", StudyMode.FLASHCARD, {"idx": 1}, updated_at=now)
        state = completion_state(subjects[0], StudyMode.FLASHCARD, session, now)

        assert state.status == "in_progress"
        assert state.percent == 50
        assert state.updated_at == now

    def test_completed(self, subjects, now):
        session = StudySession("s1", StudyMode.LEARN, {"mastered": 2, "total": 2}, True)
        state = completion_state(subjects[0], StudyMode.LEARN, session, now)
        assert state.status == "completed"
        assert state.percent == 100

    def test_stale_review_completion_is_in_progress(self, subjects, now):
        session = StudySession(
            "s1", StudyMode.REVIEW, {"date": "2024-03-01", "done": 1, "total": 4}, True
        )
        state = completion_state(subjects[0], StudyMode.REVIEW, session, now)
        assert state.status == "in_progress"
        assert state.percent == 25

    def test_completion_states_groups_by_subject(self, subjects, now):
        sessions = [
            StudySession("s1", StudyMode.TEST, {"idx": 1, "total": 4}),
            StudySession("s1", StudyMode.MATCH, {}, completed=True),
            StudySession("unknown", StudyMode.TEST, {"idx": 1}),
        ]

        states = completion_states(subjects, sessions, now)

        assert set(states) == {"s1", "s2"}
        assert states["s1"][StudyMode.TEST].percent == 25
        assert states["s1"][StudyMode.MATCH].status == "completed"
        assert states["s2"] == {}


class TestPrioritizeForLearning:
    def test_orders_by_tier(self):
        cards = [Card("easy"), Card("medium"), Card("hard"), Card("new")]
        stats = {
            "easy": CardStat("easy", correct=5, streak=5),
            "medium": CardStat("medium", correct=2, streak=2),
            "hard": CardStat("hard", incorrect=2),
        }

        ordered = prioritize_for_learning(cards, stats)

        assert [c.id for c in ordered] == ["new", "hard", "medium", "easy"]

    def test_shuffle_is_kept_within_tier(self):
        cards = [Card(f"n{i}") for i in range(10)]
        ordered = prioritize_for_learning(cards, {}, rng=random.Random(3))

        assert sorted(c.id for c in ordered) == sorted(c.id for c in cards)
        expected = list(cards)
        random.Random(3).shuffle(expected)
        assert ordered == expected


@pytest.mark.asyncio
async def test_due_queue_builder_reads_store(store, subjects, now):
    await store.put_card_stat("u1", CardStat("c1", next_review=now + timedelta(days=1)))
    await store.put_card_stat("u1", CardStat("c2", next_review=now - timedelta(days=1)))
    await store.put_card_stat("u2", CardStat("c3", next_review=now + timedelta(days=1)))

    queue = await DueQueueBuilder(store).due_cards("u1", subjects, now)

    assert [ref.card_id for ref in queue] == ["c2", "c3", "c4"]
