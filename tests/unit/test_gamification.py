"""Unit tests for xp, levels and milestones."""
import pytest

from progress_engine import gamification
from progress_engine.gamification import GamificationLedger, Milestone, level_from_xp, xp_for_level
from progress_engine.types import LessonProgress, ProgressStatus, XpSource


@pytest.mark.unit
class TestLevels:
    def test_table_boundaries(self):
        assert level_from_xp(0) == 1
        assert level_from_xp(99) == 1
        assert level_from_xp(100) == 2
        assert level_from_xp(249) == 2
        assert level_from_xp(3199) == 9
        assert level_from_xp(3200) == 10

    def test_beyond_table(self):
        assert level_from_xp(3999) == 10
        assert level_from_xp(4000) == 11
        assert xp_for_level(11) == 4000

    def test_monotonic(self):
        levels = [level_from_xp(x) for x in range(0, 6000, 7)]
        assert levels == sorted(levels)

    def test_xp_for_level_roundtrips_thresholds(self):
        for level in range(1, 14):
            assert level_from_xp(xp_for_level(level)) == level


@pytest.mark.unit
class TestXpRules:
    def test_lesson_xp(self):
        assert gamification.xp_for_lesson(75) == 17
        assert gamification.xp_for_lesson(80) == 23
        assert gamification.xp_for_lesson(0) == 10

    def test_quiz_xp(self):
        assert gamification.xp_for_quiz(95) == 9


@pytest.mark.unit
class TestLedger:
    def test_record_xp_appends_event(self, ledger, aggregate, now):
        ledger.record_xp(aggregate, XpSource.LESSON, "l1", 120, now)
        assert aggregate.xp == 120
        assert aggregate.level == 2
        assert len(aggregate.xp_events) == 1
        assert ledger.has_awarded(aggregate, XpSource.LESSON, "l1")
        assert not ledger.has_awarded(aggregate, XpSource.QUIZ, "l1")

    def test_zero_xp_is_not_recorded(self, ledger, aggregate, now):
        ledger.record_xp(aggregate, XpSource.QUIZ, "q1", 0, now)
        assert aggregate.xp_events == []

    def test_replay_matches_totals(self, ledger, aggregate, now):
        ledger.record_xp(aggregate, XpSource.LESSON, "l1", 60, now)
        ledger.record_xp(aggregate, XpSource.QUIZ, "q1", 50, now)
        assert gamification.replay(aggregate.xp_events) == (aggregate.xp, aggregate.level)

    def test_badges_have_set_semantics(self, ledger, aggregate):
        assert ledger.award_badge(aggregate, "Night Owl") is True
        assert ledger.award_badge(aggregate, "Night Owl") is False
        assert aggregate.badges == ["Night Owl"]

    def test_first_lesson_milestone(self, ledger, aggregate, now):
        aggregate.overall_metrics.total_lessons_completed = 1
        assert ledger.evaluate(aggregate, now) == ["first_lesson"]
        assert "First Steps" in aggregate.badges
        assert ledger.evaluate(aggregate, now) == []

    def test_week_streak_grants_xp_once(self, ledger, aggregate, now):
        aggregate.overall_metrics.longest_streak = 7
        ledger.evaluate(aggregate, now)
        ledger.evaluate(aggregate, now)
        assert aggregate.xp == 100
        assert ledger.has_awarded(aggregate, XpSource.MILESTONE, "week_streak")

    def test_topic_master_counts_mastered_lessons(self, ledger, aggregate, now):
        aggregate.lesson_progress = [
            LessonProgress(f"l{i}", status=ProgressStatus.MASTERED, score=90) for i in range(5)
        ]
        assert "topic_master" in ledger.evaluate(aggregate, now)
        assert "Topic Master" in aggregate.badges

    def test_custom_milestones(self, aggregate, now):
        ledger = GamificationLedger(
            milestones=[Milestone("quiz_fan", "Take a quiz", 1, lambda agg: len(agg.quiz_progress), xp=5)]
        )
        assert ledger.evaluate(aggregate, now) == []
