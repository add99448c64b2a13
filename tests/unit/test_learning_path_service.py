"""
Unit tests for learning-path progression (sequential unlock state machine).
"""

from datetime import date

import pytest

from learnflow.core.errors import (
    ConflictError,
    InvalidRequestError,
    ModuleLockedError,
    NotFoundError,
    SequenceConflictError,
)
from learnflow.learning_paths import LearningPathService, ModuleDraft, ModuleState, PathDraft, module_states
from learnflow.progression import ProgressLedger

TODAY = date(2026, 6, 2)


@pytest.fixture
def service(db_session):
    return LearningPathService(db_session)


class TestCreate:
    def test_new_path_starts_at_zero(self, make_path):
        path = make_path()
        assert path.completed_modules == 0
        assert path.progress == 0
        assert path.status == "active"
        assert path.active_lesson is None
        assert [m.position for m in path.modules] == [0, 1, 2, 3, 4]
        assert module_states(path)[0] is ModuleState.CURRENT

    def test_requires_modules(self, service):
        with pytest.raises(InvalidRequestError):
            service.create_path("u1", PathDraft(title="Empty", modules=[]))

    def test_list_is_owner_scoped(self, make_path, service):
        make_path("u1")
        make_path("u2")
        assert len(service.list_paths("u1")) == 1


class TestModuleStates:
    def test_frontier_two_of_five(self, make_path, service):
        path = make_path()
        service.complete_module("learner-1", path.id, 0, today=TODAY)
        service.complete_module("learner-1", path.id, 1, today=TODAY)

        assert module_states(path) == [
            ModuleState.COMPLETED,
            ModuleState.COMPLETED,
            ModuleState.CURRENT,
            ModuleState.LOCKED,
            ModuleState.LOCKED,
        ]


class TestCompleteModule:
    def test_advances_frontier_and_progress(self, make_path, service):
        path = make_path()
        for index in range(3):
            result = service.complete_module("learner-1", path.id, index, today=TODAY)

        assert result.path.completed_modules == 3
        assert result.path.progress == pytest.approx(60.0)
        assert result.path.status == "active"

    def test_progress_is_not_rounded(self, make_path, service):
        draft = PathDraft(title="Three parts", modules=[ModuleDraft(title=f"Part {i}") for i in range(3)])
        path = make_path(draft=draft)

        result = service.complete_module("learner-1", path.id, 0, today=TODAY)

        assert result.path.progress == pytest.approx(100 / 3)
        assert isinstance(result.path.progress, float)

    def test_replay_is_rejected_without_change(self, make_path, service):
        path = make_path()
        for index in range(3):
            service.complete_module("learner-1", path.id, index, today=TODAY)

        with pytest.raises(SequenceConflictError) as exc_info:
            service.complete_module("learner-1", path.id, 2, today=TODAY)

        assert exc_info.value.expected_index == 3
        assert service.get_path("learner-1", path.id).completed_modules == 3

    def test_skipping_ahead_is_rejected(self, make_path, service):
        path = make_path()
        with pytest.raises(SequenceConflictError):
            service.complete_module("learner-1", path.id, 2, today=TODAY)
        assert service.get_path("learner-1", path.id).completed_modules == 0

    def test_out_of_range(self, make_path, service):
        path = make_path()
        with pytest.raises(InvalidRequestError):
            service.complete_module("learner-1", path.id, 5, today=TODAY)

    def test_grants_xp_once_per_module(self, make_path, service, db_session):
        path = make_path()
        service.complete_module("learner-1", path.id, 0, today=TODAY)
        with pytest.raises(SequenceConflictError):
            service.complete_module("learner-1", path.id, 0, today=TODAY)

        progress = ProgressLedger(db_session).get_progress("learner-1")
        assert progress.total_xp == 10
        assert progress.lessons_completed == 1
        assert progress.current_streak == 1

    def test_completing_last_module_completes_path(self, make_path, service, db_session):
        path = make_path()
        for index in range(5):
            result = service.complete_module("learner-1", path.id, index, today=TODAY)

        assert result.path_completed is True
        assert result.path.progress == 100
        assert all(state is ModuleState.COMPLETED for state in module_states(result.path))
        assert ProgressLedger(db_session).get_progress("learner-1").paths_completed == 1

    def test_clears_active_lesson_of_completed_module(self, make_path, service):
        path = make_path()
        service.set_active_lesson("learner-1", path.id, 0)
        result = service.complete_module("learner-1", path.id, 0, today=TODAY)
        assert result.path.active_lesson is None

    def test_other_users_path_not_found(self, make_path, service):
        path = make_path("owner")
        with pytest.raises(NotFoundError):
            service.complete_module("intruder", path.id, 0, today=TODAY)

    def test_path_achievements(self, seeded_session, path_draft):
        service = LearningPathService(seeded_session)
        path = service.create_path("u1", path_draft)
        unlocked = []
        for index in range(5):
            unlocked += service.complete_module("u1", path.id, index, today=TODAY).outcome.unlocked

        ids = {a.id for a in unlocked}
        assert {"first-steps", "quick-learner", "path-finder"} <= ids


class TestActiveLesson:
    def test_locked_module_cannot_be_opened(self, make_path, service):
        path = make_path()
        with pytest.raises(ModuleLockedError):
            service.set_active_lesson("learner-1", path.id, 1)

    def test_close_leaves_progress(self, make_path, service):
        path = make_path()
        service.complete_module("learner-1", path.id, 0, today=TODAY)
        service.set_active_lesson("learner-1", path.id, 1)
        closed = service.close_lesson("learner-1", path.id)
        assert closed.active_lesson is None
        assert closed.completed_modules == 1

    def test_completed_module_can_be_reopened(self, make_path, service):
        path = make_path()
        service.complete_module("learner-1", path.id, 0, today=TODAY)
        reopened = service.set_active_lesson("learner-1", path.id, 0)
        assert reopened.active_lesson["moduleIndex"] == 0


class TestUpdatePath:
    def test_same_frontier_is_noop(self, make_path, service):
        path = make_path()
        updated = service.update_path("learner-1", path.id, completed_modules=0)
        assert updated.completed_modules == 0

    def test_advance_by_one_completes_module(self, make_path, service, db_session):
        path = make_path()
        updated = service.update_path("learner-1", path.id, completed_modules=1, today=TODAY)
        assert updated.completed_modules == 1
        assert ProgressLedger(db_session).get_progress("learner-1").total_xp == 10

    def test_jump_rejected(self, make_path, service):
        path = make_path()
        with pytest.raises(SequenceConflictError):
            service.update_path("learner-1", path.id, completed_modules=4)

    def test_rewind_rejected_with_clear_message(self, make_path, service):
        path = make_path()
        service.complete_module("learner-1", path.id, 0, today=TODAY)
        service.complete_module("learner-1", path.id, 1, today=TODAY)

        with pytest.raises(ConflictError, match="cannot rewind from 2 to 0") as excinfo:
            service.update_path("learner-1", path.id, completed_modules=0)

        assert not isinstance(excinfo.value, SequenceConflictError)
        assert service.get_path("learner-1", path.id).completed_modules == 2

    def test_lesson_content_written_to_slot(self, make_path, service):
        path = make_path()
        content = {"overview": "Custom", "keyPoints": ["a"], "resources": [], "practiceTask": "Do it"}
        updated = service.update_path("learner-1", path.id, lesson_contents={2: content})
        assert updated.modules[2].generated_content["overview"] == "Custom"
        assert updated.modules[2].generated_content["keyPoints"] == ["a"]

    def test_close_active_lesson(self, make_path, service):
        path = make_path()
        service.set_active_lesson("learner-1", path.id, 0)
        updated = service.update_path("learner-1", path.id, close_active_lesson=True)
        assert updated.active_lesson is None


class TestDelete:
    def test_delete_twice_reports_not_found(self, make_path, service, db_session):
        path = make_path()
        service.delete_path("learner-1", path.id)
        db_session.commit()
        with pytest.raises(NotFoundError):
            service.delete_path("learner-1", path.id)

    def test_delete_is_owner_checked(self, make_path, service):
        path = make_path("owner")
        with pytest.raises(NotFoundError):
            service.delete_path("intruder", path.id)
        assert service.get_path("owner", path.id) is not None
