"""
Course-level roll-up of lesson progress.

Which lessons belong to a course is a catalog concern: callers pass the lesson
id set in, and only lesson entries inside that set count towards the course.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from progress_engine.errors import NotFound
from progress_engine.gamification import GamificationLedger
from progress_engine.metrics import mean_score, round_half_up
from progress_engine.types import CourseProgress, ProgressAggregate, ProgressStatus
from progress_engine.validation import validate_count, validate_id
from progress_api.utils.logger import configure_logging

logger = configure_logging()


def overall_progress(lessons_completed: int, total_lessons: int) -> int:
    if total_lessons <= 0:
        return 0
    pct = round_half_up(lessons_completed / total_lessons * 100)
    return max(0, min(100, pct))


class CourseProgressAggregator:
    def __init__(self, ledger: GamificationLedger):
        self.ledger = ledger

    def require_course(self, aggregate: ProgressAggregate, course_id: str) -> CourseProgress:
        cp = aggregate.get_course(course_id)
        if cp is None:
            raise NotFound(
                f"User is not enrolled in course {course_id}", user_id=aggregate.user_id, course_id=course_id
            )
        return cp

    def enroll_in_course(
        self, aggregate: ProgressAggregate, course_id: str, total_lessons: int, now: datetime
    ) -> CourseProgress:
        total_lessons = validate_count("total_lessons", total_lessons)
        cp = aggregate.get_course(course_id)
        if cp is None:
            cp = CourseProgress(
                course_id=course_id,
                total_lessons=total_lessons,
                enrolled_at=now,
                last_accessed_at=now,
            )
            aggregate.course_progress.append(cp)
            aggregate.overall_metrics.total_courses_enrolled += 1
            logger.info("course enrolled user=%s course=%s lessons=%s", aggregate.user_id, course_id, total_lessons)
        else:
            if total_lessons and total_lessons != cp.total_lessons:
                cp.total_lessons = total_lessons
            cp.last_accessed_at = now
        return cp

    def recompute(
        self,
        aggregate: ProgressAggregate,
        course_id: str,
        course_lesson_ids: Iterable[str],
        now: datetime,
    ) -> CourseProgress:
        member_ids = {validate_id("lesson_id", x) for x in course_lesson_ids}
        cp = self.require_course(aggregate, course_id)

        lessons = [lp for lp in aggregate.lesson_progress if lp.lesson_id in member_ids]
        done = [lp for lp in lessons if lp.is_done]

        cp.lessons_completed = len(done)
        cp.overall_progress = overall_progress(cp.lessons_completed, cp.total_lessons)
        cp.average_score = mean_score(lp.score for lp in lessons)
        cp.total_time_spent = sum(lp.time_spent for lp in lessons)
        cp.last_accessed_at = now

        touched = any(lp.status != ProgressStatus.NOT_STARTED or lp.started_at for lp in lessons)
        if cp.status == ProgressStatus.NOT_STARTED and touched:
            cp.status = ProgressStatus.IN_PROGRESS
            cp.started_at = cp.started_at or now

        if cp.overall_progress == 100 and cp.status != ProgressStatus.COMPLETED:
            cp.status = ProgressStatus.COMPLETED
            cp.started_at = cp.started_at or now
            cp.completed_at = now
            aggregate.overall_metrics.total_courses_completed += 1
            logger.info("course completed user=%s course=%s", aggregate.user_id, course_id)
            self.ledger.evaluate(aggregate, now)
        return cp
