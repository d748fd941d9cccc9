"""Unit tests for quiz submissions."""
import pytest

from progress_engine.errors import InvalidScore
from progress_engine.quiz_tracker import QuizProgressTracker
from progress_engine.types import XpSource


@pytest.fixture
def quizzes(streak, ledger):
    return QuizProgressTracker(streak, ledger)


@pytest.mark.unit
class TestSubmitQuiz:
    def test_each_submission_is_an_attempt(self, quizzes, aggregate, now):
        quizzes.submit_quiz(aggregate, "q1", 40, 5, now)
        qp = quizzes.submit_quiz(aggregate, "q1", 70, 5, now)
        assert qp.attempts == 2
        assert qp.score == 70
        assert qp.time_spent == 10
        assert aggregate.overall_metrics.total_study_time == 10

    def test_xp_only_on_first_pass(self, quizzes, aggregate, now):
        quizzes.submit_quiz(aggregate, "q1", 40, 0, now)
        assert aggregate.xp == 0
        quizzes.submit_quiz(aggregate, "q1", 90, 0, now)
        quizzes.submit_quiz(aggregate, "q1", 100, 0, now)
        assert aggregate.xp == 9
        assert len([e for e in aggregate.xp_events if e.source == XpSource.QUIZ]) == 1

    def test_invalid_score_creates_nothing(self, quizzes, aggregate, now):
        with pytest.raises(InvalidScore):
            quizzes.submit_quiz(aggregate, "q1", 150, 0, now)
        assert aggregate.quiz_progress == []
