"""Quiz submissions."""

from __future__ import annotations

from datetime import datetime

from progress_engine.gamification import QUIZ_PASS_SCORE, GamificationLedger, xp_for_quiz
from progress_engine.streak import StreakCalculator
from progress_engine.types import ProgressAggregate, QuizProgress, XpSource
from progress_engine.validation import validate_score, validate_time_spent
from progress_api.utils.logger import configure_logging

logger = configure_logging()


class QuizProgressTracker:
    def __init__(self, streak: StreakCalculator, ledger: GamificationLedger):
        self.streak = streak
        self.ledger = ledger

    def submit_quiz(
        self,
        aggregate: ProgressAggregate,
        quiz_id: str,
        score: float,
        time_spent: int,
        now: datetime,
    ) -> QuizProgress:
        """
        Record one attempt. Each call is a new attempt, so this is not safe to
        retry. Quiz xp is granted the first time the quiz is passed.
        """
        score = validate_score(score)
        time_spent = validate_time_spent(time_spent)

        qp = aggregate.get_quiz(quiz_id)
        if qp is None:
            qp = QuizProgress(quiz_id=quiz_id)
            aggregate.quiz_progress.append(qp)
        qp.attempts += 1
        qp.score = score
        qp.completed_at = now
        qp.time_spent += time_spent

        aggregate.overall_metrics.total_study_time += time_spent
        self.streak.touch(aggregate.overall_metrics, now)
        logger.info(
            "quiz submitted user=%s quiz=%s score=%s attempt=%s",
            aggregate.user_id, quiz_id, score, qp.attempts,
        )

        if score >= QUIZ_PASS_SCORE and not self.ledger.has_awarded(aggregate, XpSource.QUIZ, quiz_id):
            self.ledger.on_quiz_passed(aggregate, xp_for_quiz(score), quiz_id, now)
        else:
            self.ledger.evaluate(aggregate, now)
        return qp
