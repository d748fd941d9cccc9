"""Unit tests for the ProgressEngine command boundary."""
import threading

import pytest

from progress_engine import ProgressEngine
from progress_engine.errors import Conflict, InvalidScore, InvalidTimeSpent, NotFound, ValidationError
from progress_engine.store import InMemoryProgressStore
from progress_engine.types import ProgressStatus


@pytest.mark.unit
class TestLazyCreation:
    def test_reads_require_existing_progress(self, engine):
        with pytest.raises(NotFound):
            engine.get_progress("u1")

    def test_get_or_create(self, engine, clock):
        agg = engine.get_or_create_progress("u1")
        assert agg.version == 1
        assert agg.created_at == clock.now
        assert engine.get_or_create_progress("u1").version == 1

    def test_start_lesson_creates_progress(self, engine):
        agg = engine.start_lesson("u1", "l1")
        assert agg.overall_metrics.total_lessons_started == 1
        assert agg.version == 1

    def test_goals_require_existing_progress(self, engine):
        with pytest.raises(NotFound):
            engine.update_learning_goals("u1", {"weekly_goal": 3})

    def test_blank_user_id(self, engine):
        with pytest.raises(ValidationError):
            engine.start_lesson("  ", "l1")


@pytest.mark.unit
class TestLessonFlow:
    def test_complete_requires_start(self, engine):
        engine.get_or_create_progress("u1")
        with pytest.raises(NotFound):
            engine.complete_lesson("u1", "l1", 90, 10)

    def test_learner_journey(self, engine):
        engine.start_lesson("u1", "l1")
        engine.complete_lesson("u1", "l1", 80, 20)
        engine.start_lesson("u1", "l2")
        agg = engine.complete_lesson("u1", "l2", 75, 10)

        om = agg.overall_metrics
        assert om.total_lessons_started == 2
        assert om.total_lessons_completed == 2
        assert om.total_study_time == 30
        assert om.average_score == 78
        assert agg.get_lesson("l1").status == ProgressStatus.MASTERED
        assert agg.get_lesson("l2").status == ProgressStatus.COMPLETED

    def test_retried_completion_is_harmless(self, engine):
        engine.start_lesson("u1", "l1")
        first = engine.complete_lesson("u1", "l1", 85, 10)
        again = engine.complete_lesson("u1", "l1", 85, 0)
        assert again.overall_metrics.total_lessons_completed == 1
        assert again.xp == first.xp

    def test_retried_completion_adds_study_time(self, engine):
        engine.start_lesson("u1", "l1")
        engine.complete_lesson("u1", "l1", 85, 20)
        agg = engine.complete_lesson("u1", "l1", 85, 20)
        assert agg.overall_metrics.total_study_time == 40
        assert agg.get_lesson("l1").time_spent == 40
        assert agg.overall_metrics.total_lessons_completed == 1

    def test_invalid_payload_writes_nothing(self, engine):
        engine.start_lesson("u1", "l1")
        before = engine.get_progress("u1")
        with pytest.raises(InvalidScore):
            engine.complete_lesson("u1", "l1", -3, 10)
        after = engine.get_progress("u1")
        assert after.version == before.version
        assert after.get_lesson("l1").status == ProgressStatus.IN_PROGRESS

    def test_infinite_time_is_a_typed_error(self, engine):
        engine.start_lesson("u1", "l1")
        with pytest.raises(InvalidTimeSpent):
            engine.complete_lesson("u1", "l1", 90, float("inf"))
        with pytest.raises(InvalidTimeSpent):
            engine.submit_quiz("u1", "q1", 90, float("inf"))
        assert engine.get_progress("u1").overall_metrics.total_study_time == 0

    def test_get_lesson_progress(self, engine):
        engine.start_lesson("u1", "l1")
        assert engine.get_lesson_progress("u1", "l1").status == ProgressStatus.IN_PROGRESS
        with pytest.raises(NotFound):
            engine.get_lesson_progress("u1", "l9")


@pytest.mark.unit
class TestCounterMonotonicity:
    def test_counters_never_decrease(self, engine):
        tracked = (
            "total_lessons_started",
            "total_lessons_completed",
            "total_courses_enrolled",
            "total_courses_completed",
            "total_study_time",
            "longest_streak",
        )
        steps = [
            lambda: engine.start_lesson("u1", "l1"),
            lambda: engine.enroll_in_course("u1", "c1", 1),
            lambda: engine.complete_lesson("u1", "l1", 60, 5),
            lambda: engine.recompute_course("u1", "c1", ["l1"]),
            lambda: engine.reset_lesson("u1", "l1"),
            lambda: engine.use_hint("u1", "l1"),
            lambda: engine.update_lesson_progress("u1", "l1", {"notes": "again"}),
            lambda: engine.submit_quiz("u1", "q1", 55, 3),
        ]
        previous = None
        for step in steps:
            om = step().overall_metrics
            current = {name: getattr(om, name) for name in tracked}
            if previous:
                for name in tracked:
                    assert current[name] >= previous[name], name
            previous = current
        assert previous["total_courses_completed"] == 1


@pytest.mark.unit
class TestStreaks:
    def test_consecutive_days(self, engine, clock):
        engine.start_lesson("u1", "l1")
        clock.advance(days=1)
        engine.update_streak("u1")
        clock.advance(days=1)
        agg = engine.update_streak("u1")
        assert agg.overall_metrics.current_streak == 3
        assert agg.overall_metrics.longest_streak == 3

    def test_week_streak_milestone(self, engine, clock):
        engine.start_lesson("u1", "l1")
        for _ in range(6):
            clock.advance(days=1)
            engine.update_streak("u1")
        agg = engine.start_lesson("u1", "l2")
        assert agg.overall_metrics.longest_streak == 7
        assert "week_streak" in agg.achievements
        assert agg.xp == 100

    def test_gap_resets_streak(self, engine, clock):
        engine.start_lesson("u1", "l1")
        clock.advance(days=3)
        agg = engine.update_streak("u1")
        assert agg.overall_metrics.current_streak == 1


@pytest.mark.unit
class TestCoursesAndGoals:
    def test_course_completion(self, engine):
        engine.enroll_in_course("u1", "c1", 2)
        for lesson_id in ("l1", "l2"):
            engine.start_lesson("u1", lesson_id)
            engine.complete_lesson("u1", lesson_id, 90, 10)
        agg = engine.recompute_course("u1", "c1", ["l1", "l2"])
        assert agg.get_course("c1").status == ProgressStatus.COMPLETED
        agg = engine.recompute_course("u1", "c1", ["l1", "l2"])
        assert agg.overall_metrics.total_courses_completed == 1
        assert engine.get_course_progress("u1", "c1").overall_progress == 100

    def test_update_goals(self, engine):
        engine.get_or_create_progress("u1")
        agg = engine.update_learning_goals("u1", {"weekly_goal": 3, "priority_subjects": ["ml"]})
        assert agg.learning_goals.weekly_goal == 3
        assert agg.learning_goals.daily_study_time == 60
        assert agg.learning_goals.priority_subjects == ["ml"]

    def test_statistics(self, engine, clock):
        engine.start_lesson("u1", "l1")
        engine.complete_lesson("u1", "l1", 100, 30)
        stats = engine.get_statistics("u1")
        assert stats["completion_rate"] == 100
        assert stats["average_daily_study_time"] == 30
        assert stats["lesson_stats"]["mastered"] == 1
        assert stats["xp_to_next_level"] == 75
        assert stats["streak_active"] is True
        clock.advance(days=2)
        assert engine.get_statistics("u1")["streak_active"] is False


@pytest.mark.unit
class TestGamificationHooks:
    def test_award_badge_and_achievement(self, engine):
        engine.get_or_create_progress("u1")
        engine.award_badge("u1", "Early Bird")
        agg = engine.award_badge("u1", "Early Bird")
        assert agg.badges == ["Early Bird"]
        agg = engine.award_achievement("u1", "beta_tester")
        assert agg.achievements == ["beta_tester"]


@pytest.mark.unit
class TestConcurrency:
    def test_parallel_commands_for_one_user_are_serialized(self, engine):
        engine.get_or_create_progress("u1")
        engine.start_lesson("u1", "l1")

        def hint():
            for _ in range(10):
                engine.use_hint("u1", "l1")

        threads = [threading.Thread(target=hint) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert engine.get_lesson_progress("u1", "l1").hints_used == 40

    def test_lock_registry_is_emptied_after_commands(self, engine):
        engine.start_lesson("u1", "l1")
        engine.start_lesson("u2", "l1")
        engine.delete_progress("u2")
        assert len(engine._locks) == 0

    def test_lock_registry_is_emptied_after_failed_command(self, engine):
        with pytest.raises(NotFound):
            engine.use_hint("u1", "l1")
        assert len(engine._locks) == 0

    def test_second_engine_loses_race_with_conflict(self, clock):
        store = _InterleavingStore()
        first = ProgressEngine(store=store, clock=clock)
        second = ProgressEngine(store=store, clock=clock)
        first.start_lesson("u1", "l1")

        # first engine commits while second is between load and save
        store.before_next_save = lambda: first.use_hint("u1", "l1")
        with pytest.raises(Conflict):
            second.use_hint("u1", "l1")

        agg = first.get_progress("u1")
        assert agg.version == 2
        assert agg.get_lesson("l1").hints_used == 1


class _InterleavingStore(InMemoryProgressStore):
    """Runs `before_next_save` once, right before the next save lands."""

    def __init__(self):
        super().__init__()
        self.before_next_save = None

    def save(self, aggregate):
        hook, self.before_next_save = self.before_next_save, None
        if hook is not None:
            hook()
        return super().save(aggregate)


@pytest.mark.unit
class TestDelete:
    def test_delete_progress(self, engine):
        engine.start_lesson("u1", "l1")
        engine.delete_progress("u1")
        with pytest.raises(NotFound):
            engine.get_progress("u1")
