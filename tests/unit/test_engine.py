"""
Unit tests for the activity pipeline (XP -> level -> streak -> achievements).
"""

from datetime import date

import pytest

from learnflow.core.errors import InvalidRequestError
from learnflow.progression import Activity, ActivityKind, ProgressionEngine

TODAY = date(2026, 4, 10)


@pytest.fixture
def engine(db_session):
    return ProgressionEngine(db_session)


class TestXpTable:
    def test_quiz_pass_bonus(self, engine):
        assert engine.xp_for(Activity(ActivityKind.QUIZ, passed=False)) == 20
        assert engine.xp_for(Activity(ActivityKind.QUIZ, passed=True)) == 35

    def test_study_capped(self, engine):
        assert engine.xp_for(Activity(ActivityKind.STUDY, minutes=12)) == 12
        assert engine.xp_for(Activity(ActivityKind.STUDY, minutes=240)) == 30

    def test_study_requires_minutes(self, engine):
        with pytest.raises(InvalidRequestError):
            engine.xp_for(Activity(ActivityKind.STUDY, minutes=0))

    def test_module_and_resource(self, engine):
        assert engine.xp_for(Activity(ActivityKind.MODULE)) == 10
        assert engine.xp_for(Activity(ActivityKind.RESOURCE)) == 15


class TestRecordActivity:
    def test_runs_full_pipeline(self, engine):
        outcome = engine.record_activity("u1", Activity(ActivityKind.QUIZ, passed=True), today=TODAY)

        assert outcome.xp.total_xp == 35
        assert outcome.xp.level == 1
        assert outcome.streak.current_streak == 1
        assert outcome.streak.last_activity_date == TODAY
        progress = engine.ledger.get_progress("u1")
        assert progress.quizzes_completed == 1
        assert progress.quizzes_passed == 1

    def test_unlocks_achievements(self, seeded_session):
        engine = ProgressionEngine(seeded_session)
        outcome = engine.record_activity("u1", Activity(ActivityKind.QUIZ, passed=True), today=TODAY)

        assert [a.id for a in outcome.unlocked] == ["quiz-novice"]
        assert engine.ledger.get_progress("u1").total_xp == 35 + 50

    def test_replayed_activity_id_changes_nothing(self, engine):
        activity = Activity(ActivityKind.RESOURCE, activity_id="resource-7")
        engine.record_activity("u1", activity, today=TODAY)
        replay = engine.record_activity("u1", activity, today=TODAY)

        assert replay.xp.applied is False
        progress = engine.ledger.get_progress("u1")
        assert progress.total_xp == 15
        assert progress.resources_completed == 1

    def test_study_minutes_accumulate(self, engine):
        engine.record_activity("u1", Activity(ActivityKind.STUDY, minutes=25), today=TODAY)
        engine.record_activity("u1", Activity(ActivityKind.STUDY, minutes=50), today=TODAY)
        progress = engine.ledger.get_progress("u1")
        assert progress.total_study_time == 75
        assert progress.total_xp == 25 + 30

    def test_certificate(self, engine):
        engine.record_activity("u1", Activity(ActivityKind.CERTIFICATE), today=TODAY)
        progress = engine.ledger.get_progress("u1")
        assert progress.certificates_earned == 1
        assert progress.total_xp == 100
        assert progress.level == 2
