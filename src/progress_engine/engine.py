"""
Progress engine facade.

Every mutating operation runs as one command under a per-user boundary:

    lock(user) -> load -> validate + mutate -> recompute -> save(version check)

Commands for the same user are serialized by an in-process lock; commands
coming from other processes are caught by the store's optimistic version
check and surface as `Conflict`. The engine never retries: retry policy
belongs to the caller. `start_lesson` is idempotent. A retried
`complete_lesson` leaves counters and xp alone but adds its `time_spent` to the
lesson and to total study time again. `submit_quiz`, `use_hint` and counter
updates are not idempotent.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from progress_engine import metrics
from progress_engine.course_aggregator import CourseProgressAggregator
from progress_engine.errors import NotFound, ProgressError
from progress_engine.gamification import GamificationLedger
from progress_engine.lesson_tracker import LessonProgressTracker
from progress_engine.quiz_tracker import QuizProgressTracker
from progress_engine.store import ProgressStore
from progress_engine.streak import StreakCalculator
from progress_engine.types import (
    CompletionType,
    CourseProgress,
    LessonProgress,
    ProgressAggregate,
    utcnow,
)
from progress_engine.validation import validate_goals, validate_id
from progress_api.utils.logger import configure_logging, log_request

logger = configure_logging()

Command = Callable[[ProgressAggregate, datetime], Any]


class _UserLocks:
    """
    Lazily created lock per user id. An entry lives only while some thread
    holds or waits for it, so the registry does not grow with every user seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # user_id -> [lock, holders and waiters]
        self._locks: Dict[str, List[Any]] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[user_id]


class ProgressEngine:
    def __init__(
        self,
        store: ProgressStore,
        streak_timezone: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
        ledger: Optional[GamificationLedger] = None,
    ):
        self.store = store
        self.clock = clock
        self.streak = StreakCalculator(streak_timezone)
        self.ledger = ledger or GamificationLedger()
        self.lessons = LessonProgressTracker(self.streak, self.ledger)
        self.quizzes = QuizProgressTracker(self.streak, self.ledger)
        self.courses = CourseProgressAggregator(self.ledger)
        self._locks = _UserLocks()

    # ----- command plumbing -----

    def _load(self, user_id: str, create: bool, now: datetime) -> ProgressAggregate:
        try:
            return self.store.load(user_id)
        except NotFound:
            if not create:
                raise
            logger.info("creating progress user=%s", user_id)
            return ProgressAggregate(user_id=user_id, created_at=now, updated_at=now)

    def _run(self, name: str, user_id: str, command: Command, create: bool = False) -> ProgressAggregate:
        user_id = validate_id("user_id", user_id)
        with log_request(logger, f"{name} user={user_id}", expected=(ProgressError,)):
            with self._locks.hold(user_id):
                now = self.clock()
                aggregate = self._load(user_id, create, now)
                command(aggregate, now)
                metrics.recompute(aggregate)
                aggregate.updated_at = now
                self.store.save(aggregate)
                return aggregate

    # ----- reads -----

    def get_progress(self, user_id: str) -> ProgressAggregate:
        return self.store.load(validate_id("user_id", user_id))

    def get_or_create_progress(self, user_id: str) -> ProgressAggregate:
        user_id = validate_id("user_id", user_id)
        try:
            return self.store.load(user_id)
        except NotFound:
            return self._run("create_progress", user_id, lambda agg, now: None, create=True)

    def get_lesson_progress(self, user_id: str, lesson_id: str) -> LessonProgress:
        aggregate = self.get_progress(user_id)
        return self.lessons.require_lesson(aggregate, validate_id("lesson_id", lesson_id))

    def get_course_progress(self, user_id: str, course_id: str) -> CourseProgress:
        aggregate = self.get_progress(user_id)
        return self.courses.require_course(aggregate, validate_id("course_id", course_id))

    def get_statistics(self, user_id: str) -> Dict[str, Any]:
        aggregate = self.get_progress(user_id)
        now = self.clock()
        stats = metrics.progress_statistics(aggregate, now, self.streak.tz)
        stats["streak_active"] = self.streak.is_active(aggregate.overall_metrics, now)
        return stats

    # ----- lessons -----

    def start_lesson(self, user_id: str, lesson_id: str) -> ProgressAggregate:
        lesson_id = validate_id("lesson_id", lesson_id)
        return self._run(
            "start_lesson", user_id,
            lambda agg, now: self.lessons.start_lesson(agg, lesson_id, now),
            create=True,
        )

    def complete_lesson(
        self,
        user_id: str,
        lesson_id: str,
        score: float,
        time_spent: int,
        completion_type: CompletionType | str = CompletionType.MANUAL,
    ) -> ProgressAggregate:
        lesson_id = validate_id("lesson_id", lesson_id)
        return self._run(
            "complete_lesson", user_id,
            lambda agg, now: self.lessons.complete_lesson(
                agg, lesson_id, score, time_spent, now, completion_type
            ),
        )

    def update_lesson_progress(self, user_id: str, lesson_id: str, partial: Dict[str, Any]) -> ProgressAggregate:
        lesson_id = validate_id("lesson_id", lesson_id)
        return self._run(
            "update_lesson_progress", user_id,
            lambda agg, now: self.lessons.update_lesson_progress(agg, lesson_id, dict(partial), now),
        )

    def use_hint(self, user_id: str, lesson_id: str) -> ProgressAggregate:
        lesson_id = validate_id("lesson_id", lesson_id)
        return self._run("use_hint", user_id, lambda agg, now: self.lessons.use_hint(agg, lesson_id, now))

    def reset_lesson(self, user_id: str, lesson_id: str) -> ProgressAggregate:
        lesson_id = validate_id("lesson_id", lesson_id)
        return self._run("reset_lesson", user_id, lambda agg, now: self.lessons.reset_lesson(agg, lesson_id, now))

    # ----- courses -----

    def enroll_in_course(self, user_id: str, course_id: str, total_lessons: int = 0) -> ProgressAggregate:
        course_id = validate_id("course_id", course_id)
        return self._run(
            "enroll_in_course", user_id,
            lambda agg, now: self.courses.enroll_in_course(agg, course_id, total_lessons, now),
            create=True,
        )

    def recompute_course(self, user_id: str, course_id: str, course_lesson_ids: Iterable[str]) -> ProgressAggregate:
        course_id = validate_id("course_id", course_id)
        lesson_ids = list(course_lesson_ids)
        return self._run(
            "recompute_course", user_id,
            lambda agg, now: self.courses.recompute(agg, course_id, lesson_ids, now),
        )

    # ----- quizzes -----

    def submit_quiz(self, user_id: str, quiz_id: str, score: float, time_spent: int) -> ProgressAggregate:
        quiz_id = validate_id("quiz_id", quiz_id)
        return self._run(
            "submit_quiz", user_id,
            lambda agg, now: self.quizzes.submit_quiz(agg, quiz_id, score, time_spent, now),
            create=True,
        )

    # ----- goals, streak, gamification hooks -----

    def update_learning_goals(self, user_id: str, goals: Dict[str, Any]) -> ProgressAggregate:
        changes = validate_goals(dict(goals))

        def apply(agg: ProgressAggregate, now: datetime) -> None:
            for name, value in changes.items():
                setattr(agg.learning_goals, name, value)

        return self._run("update_learning_goals", user_id, apply)

    def update_streak(self, user_id: str) -> ProgressAggregate:
        def touch(agg: ProgressAggregate, now: datetime) -> None:
            if self.streak.touch(agg.overall_metrics, now):
                self.ledger.evaluate(agg, now)

        return self._run("update_streak", user_id, touch)

    def award_badge(self, user_id: str, badge: str) -> ProgressAggregate:
        badge = validate_id("badge", badge)
        return self._run("award_badge", user_id, lambda agg, now: self.ledger.award_badge(agg, badge))

    def award_achievement(self, user_id: str, achievement_id: str) -> ProgressAggregate:
        achievement_id = validate_id("achievement_id", achievement_id)
        return self._run(
            "award_achievement", user_id,
            lambda agg, now: self.ledger.award_achievement(agg, achievement_id),
        )

    def delete_progress(self, user_id: str) -> None:
        """Drop the aggregate together with the owning account."""
        user_id = validate_id("user_id", user_id)
        with self._locks.hold(user_id):
            self.store.delete(user_id)
        logger.info("progress deleted user=%s", user_id)
