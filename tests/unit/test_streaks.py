"""
Unit tests for streak transitions and the streak tracker.
"""

from datetime import date, timedelta

import pytest

from learnflow.progression import ProgressLedger, StreakState, StreakTracker, is_at_risk, next_streak

DAY1 = date(2026, 3, 1)


class TestNextStreak:
    """Pure transition function."""

    def test_first_activity_starts_streak(self):
        state = next_streak(StreakState(), DAY1)
        assert state == StreakState(current_streak=1, longest_streak=1, last_activity_date=DAY1)

    def test_same_day_is_noop(self):
        state = StreakState(current_streak=4, longest_streak=6, last_activity_date=DAY1)
        assert next_streak(state, DAY1) is state

    def test_consecutive_day_extends(self):
        state = StreakState(current_streak=4, longest_streak=4, last_activity_date=DAY1)
        after = next_streak(state, DAY1 + timedelta(days=1))
        assert after.current_streak == 5
        assert after.longest_streak == 5

    def test_gap_resets_but_keeps_longest(self):
        state = StreakState(current_streak=4, longest_streak=9, last_activity_date=DAY1)
        after = next_streak(state, DAY1 + timedelta(days=3))
        assert after.current_streak == 1
        assert after.longest_streak == 9

    def test_sequence_day1_day2_gap_day4(self):
        state = StreakState()
        currents = []
        for day in (DAY1, DAY1 + timedelta(days=1), DAY1 + timedelta(days=3)):
            state = next_streak(state, day)
            currents.append(state.current_streak)
        assert currents == [1, 2, 1]
        assert state.longest_streak == 2

    def test_longest_never_below_current(self):
        state = StreakState()
        day = DAY1
        for step in (1, 1, 1, 2, 1, 5, 1, 1):
            day = day + timedelta(days=step)
            state = next_streak(state, day)
            assert state.longest_streak >= state.current_streak


class TestAtRisk:
    def test_live_streak_without_activity_today(self):
        state = StreakState(current_streak=3, longest_streak=3, last_activity_date=DAY1)
        assert is_at_risk(state, DAY1 + timedelta(days=1)) is True

    def test_active_today_is_safe(self):
        state = StreakState(current_streak=3, longest_streak=3, last_activity_date=DAY1)
        assert is_at_risk(state, DAY1) is False

    def test_no_streak_is_not_at_risk(self):
        assert is_at_risk(StreakState(), DAY1) is False


class TestStreakTracker:
    """Tracker persists through the ledger."""

    @pytest.fixture
    def tracker(self, db_session):
        return StreakTracker(db_session)

    def test_persists_sequence(self, tracker, db_session):
        tracker.record_activity("u1", today=DAY1)
        tracker.record_activity("u1", today=DAY1)
        tracker.record_activity("u1", today=DAY1 + timedelta(days=1))
        db_session.commit()

        progress = ProgressLedger(db_session).get_progress("u1")
        assert progress.current_streak == 2
        assert progress.longest_streak == 2
        assert progress.last_activity_date == DAY1 + timedelta(days=1)

    def test_gap_resets(self, tracker):
        tracker.record_activity("u1", today=DAY1)
        tracker.record_activity("u1", today=DAY1 + timedelta(days=1))
        state = tracker.record_activity("u1", today=DAY1 + timedelta(days=3))
        assert state.current_streak == 1
        assert state.longest_streak == 2

    def test_stale_snapshot_loses_guarded_write(self, db_session):
        ledger = ProgressLedger(db_session)
        tracker = StreakTracker(db_session, ledger)
        tracker.record_activity("u1", today=DAY1)

        # A writer holding the pre-DAY1 snapshot must not overwrite
        written = ledger.apply_streak(
            "u1",
            expected_last_date=None,
            current_streak=1,
            longest_streak=1,
            last_activity_date=DAY1,
        )
        assert written is False
        assert tracker.current("u1").current_streak == 1

    def test_defaults_to_today(self, tracker):
        state = tracker.record_activity("u1")
        assert state.last_activity_date == date.today()
