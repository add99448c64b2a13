"""
Unit tests for the achievement evaluator.
"""

import pytest
from sqlalchemy import func, select

from learnflow.db.models import Achievement, UserAchievement
from learnflow.progression import (
    DEFAULT_CATALOG,
    AchievementDefinition,
    AchievementEvaluator,
    ProgressLedger,
    seed_catalog,
)


def _count_earned(session, user_id):
    return session.scalar(
        select(func.count()).select_from(UserAchievement).where(UserAchievement.user_id == user_id)
    )


class TestSeedCatalog:
    def test_seed_is_idempotent(self, db_session):
        assert seed_catalog(db_session) == len(DEFAULT_CATALOG)
        assert seed_catalog(db_session) == 0
        assert db_session.scalar(select(func.count()).select_from(Achievement)) == len(DEFAULT_CATALOG)

    def test_unknown_metric_rejected(self, db_session):
        bad = AchievementDefinition("bad", "Bad", "", "x", "learning", "flashcards_reviewed", 1, "common", 0)
        with pytest.raises(ValueError):
            seed_catalog(db_session, (bad,))


class TestEvaluate:
    def test_nothing_earned_for_new_user(self, seeded_session):
        assert AchievementEvaluator(seeded_session).evaluate("u1") == []

    def test_unlocks_and_credits_reward(self, seeded_session):
        ledger = ProgressLedger(seeded_session)
        ledger.increment_counters("u1", lessons_completed=1)

        unlocked = AchievementEvaluator(seeded_session, ledger).evaluate("u1")

        assert [a.id for a in unlocked] == ["first-steps"]
        assert ledger.get_progress("u1").total_xp == 50

    def test_second_call_returns_nothing(self, seeded_session):
        ledger = ProgressLedger(seeded_session)
        ledger.increment_counters("u1", lessons_completed=5, quizzes_passed=1)
        evaluator = AchievementEvaluator(seeded_session, ledger)

        first = evaluator.evaluate("u1")
        second = evaluator.evaluate("u1")

        assert {a.id for a in first} >= {"first-steps", "quick-learner", "quiz-novice"}
        assert second == []
        assert _count_earned(seeded_session, "u1") == len(first)

    def test_reward_xp_crossing_level_threshold_unlocks_in_same_call(self, db_session):
        catalog = (
            AchievementDefinition("lesson", "Lesson", "", "x", "learning", "lessons_completed", 1, "common", 2400),
            AchievementDefinition("lvl5", "Level 5", "", "x", "level", "level", 5, "common", 0),
        )
        seed_catalog(db_session, catalog)
        ledger = ProgressLedger(db_session)
        ledger.increment_counters("u1", lessons_completed=1)
        evaluator = AchievementEvaluator(db_session, ledger)

        unlocked = evaluator.evaluate("u1")

        assert {a.id for a in unlocked} == {"lesson", "lvl5"}
        assert ledger.get_progress("u1").level == 5
        assert evaluator.evaluate("u1") == []

    def test_award_already_inserted_elsewhere_grants_no_xp(self, seeded_session):
        ledger = ProgressLedger(seeded_session)
        ledger.increment_counters("u1", lessons_completed=1)
        seeded_session.add(UserAchievement(user_id="u1", achievement_id="first-steps"))
        seeded_session.flush()
        evaluator = AchievementEvaluator(seeded_session, ledger)
        achievement = seeded_session.get(Achievement, "first-steps")

        assert evaluator._award("u1", achievement) is False
        assert ledger.get_progress("u1").total_xp == 0
        assert _count_earned(seeded_session, "u1") == 1

    def test_streak_achievement(self, seeded_session):
        from datetime import date, timedelta

        from learnflow.progression import StreakTracker

        ledger = ProgressLedger(seeded_session)
        tracker = StreakTracker(seeded_session, ledger)
        start = date(2026, 5, 1)
        for offset in range(3):
            tracker.record_activity("u1", today=start + timedelta(days=offset))

        unlocked = AchievementEvaluator(seeded_session, ledger).evaluate("u1")
        assert "streak-starter" in {a.id for a in unlocked}

    def test_earned_lists_in_order(self, seeded_session):
        ledger = ProgressLedger(seeded_session)
        ledger.increment_counters("u1", quizzes_passed=1)
        evaluator = AchievementEvaluator(seeded_session, ledger)
        evaluator.evaluate("u1")

        earned = evaluator.earned("u1")
        assert [item.achievement_id for item in earned] == ["quiz-novice"]
        assert earned[0].achievement.name == "Quiz Novice"
