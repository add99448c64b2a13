"""
Unit tests for the progress ledger.
"""

import pytest
from sqlalchemy import func, select

from learnflow.core.errors import InvalidRequestError
from learnflow.db.models import UserPreferences, XpEvent
from learnflow.progression import ProgressLedger


@pytest.fixture
def ledger(db_session):
    return ProgressLedger(db_session)


class TestGetProgress:
    def test_creates_zeroed_record(self, ledger):
        progress = ledger.get_progress("new-user")
        assert progress.total_xp == 0
        assert progress.level == 1
        assert progress.current_streak == 0
        assert progress.longest_streak == 0
        assert progress.last_activity_date is None
        assert progress.lessons_completed == 0

    def test_second_access_returns_same_record(self, ledger, db_session):
        ledger.get_progress("u1")
        ledger.add_xp("u1", 40)
        db_session.commit()
        assert ledger.get_progress("u1").total_xp == 40


class TestAddXp:
    def test_two_increments_accumulate(self, ledger):
        ledger.add_xp("u1", 250)
        result = ledger.add_xp("u1", 250)
        assert result.total_xp == 500
        assert result.level == 3
        assert result.previous_level == 2
        assert result.leveled_up is True

    def test_level_tracks_total(self, ledger):
        for amount in (30, 70, 299, 1, 500):
            result = ledger.add_xp("u1", amount)
            assert result.level == int((result.total_xp / 100) ** 0.5) + 1

    @pytest.mark.parametrize("amount", [0, -5, True, 2.5, "10"])
    def test_invalid_amount_rejected(self, ledger, amount):
        with pytest.raises(InvalidRequestError):
            ledger.add_xp("u1", amount)
        assert ledger.get_progress("u1").total_xp == 0

    def test_idempotency_key_applies_once(self, ledger, db_session):
        first = ledger.add_xp("u1", 100, reason="quiz", idempotency_key="quiz-42")
        second = ledger.add_xp("u1", 100, reason="quiz", idempotency_key="quiz-42")

        assert first.applied is True
        assert second.applied is False
        assert second.total_xp == 100
        count = db_session.scalar(select(func.count()).select_from(XpEvent).where(XpEvent.user_id == "u1"))
        assert count == 1

    def test_idempotency_key_scoped_per_user(self, ledger):
        ledger.add_xp("u1", 10, idempotency_key="k")
        result = ledger.add_xp("u2", 10, idempotency_key="k")
        assert result.applied is True
        assert result.total_xp == 10

    def test_every_credit_is_audited(self, ledger, db_session):
        ledger.add_xp("u1", 10, reason="lesson")
        ledger.add_xp("u1", 15, reason="resource")
        events = db_session.scalars(select(XpEvent).order_by(XpEvent.id)).all()
        assert [(e.amount, e.reason) for e in events] == [(10, "lesson"), (15, "resource")]


class TestCounters:
    def test_increment(self, ledger):
        ledger.increment_counters("u1", quizzes_completed=1, quizzes_passed=1)
        progress = ledger.increment_counters("u1", quizzes_completed=1, quizzes_passed=0)
        assert progress.quizzes_completed == 2
        assert progress.quizzes_passed == 1

    def test_unknown_counter(self, ledger):
        with pytest.raises(InvalidRequestError):
            ledger.increment_counters("u1", total_xp=100)

    def test_negative_increment(self, ledger):
        with pytest.raises(InvalidRequestError):
            ledger.increment_counters("u1", lessons_completed=-1)


class TestLeaderboard:
    def test_sorted_by_total_xp_with_usernames(self, ledger, db_session):
        ledger.add_xp("alice", 300)
        ledger.add_xp("bob", 900)
        ledger.add_xp("carol", 50)
        db_session.add(UserPreferences(user_id="bob", display_name="Bob"))
        db_session.commit()

        entries = ledger.leaderboard(limit=2)
        assert [(e.rank, e.user_id) for e in entries] == [(1, "bob"), (2, "alice")]
        assert entries[0].username == "Bob"
        assert entries[1].username == "Anonymous"
        assert entries[0].level == 4
        assert entries[0].weekly_xp == 900
        assert entries[0].monthly_xp == 900

    def test_empty(self, ledger):
        assert ledger.leaderboard() == []


class TestReset:
    def test_reset_zeroes_everything(self, ledger, db_session):
        ledger.add_xp("u1", 1000)
        ledger.increment_counters("u1", lessons_completed=3)
        progress = ledger.reset("u1")
        assert progress.total_xp == 0
        assert progress.level == 1
        assert progress.lessons_completed == 0
        assert db_session.scalar(select(func.count()).select_from(XpEvent)) == 0
