"""
Derived progress metrics.

Everything here is a pure projection of source fields. `recompute` is called
after every mutating command so the persisted `average_score` can never drift
from the lesson entries it is computed from.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from progress_engine.gamification import xp_for_level
from progress_engine.types import (
    DONE_STATUSES,
    LessonProgress,
    OverallMetrics,
    ProgressAggregate,
    ProgressStatus,
)

RECENT_ACTIVITY_LIMIT = 10


def round_half_up(value: float) -> int:
    """Round .5 away from zero (77.5 -> 78), unlike Python's banker's rounding."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def mean_score(scores: Iterable[Optional[float]]) -> int:
    """Rounded mean of defined scores; missing scores are skipped, not zeroed."""
    defined = [float(s) for s in scores if s is not None]
    if not defined:
        return 0
    return round_half_up(sum(defined) / len(defined))


def average_score(lessons: Iterable[LessonProgress]) -> int:
    return mean_score(lp.score for lp in lessons)


def completion_rate(metrics: OverallMetrics) -> int:
    if metrics.total_lessons_started <= 0:
        return 0
    return round_half_up(metrics.total_lessons_completed / metrics.total_lessons_started * 100)


def _local_date(value: datetime, tz: tzinfo) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


def days_since(created_at: datetime, now: datetime, tz: tzinfo = timezone.utc) -> int:
    """
    Calendar days the account has existed in, counting the creation day and
    today, at least 1. 23:00 on day one read at 01:00 on day two is 2 days.
    """
    started = (_local_date(now, tz) - _local_date(created_at, tz)).days + 1
    return max(1, started)


def average_daily_study_time(
    metrics: OverallMetrics, created_at: datetime, now: datetime, tz: tzinfo = timezone.utc
) -> int:
    return round_half_up(metrics.total_study_time / days_since(created_at, now, tz))


def recompute(aggregate: ProgressAggregate) -> ProgressAggregate:
    """Refresh the persisted derived fields of `aggregate` in place."""
    aggregate.overall_metrics.average_score = average_score(aggregate.lesson_progress)
    return aggregate


def _count(items: List[Any], *statuses: ProgressStatus) -> int:
    return sum(1 for x in items if x.status in statuses)


def progress_statistics(
    aggregate: ProgressAggregate, now: datetime, tz: tzinfo = timezone.utc
) -> Dict[str, Any]:
    """Read-side summary of one learner's progress."""
    lessons = aggregate.lesson_progress
    courses = aggregate.course_progress
    quizzes = aggregate.quiz_progress
    recent = sorted(
        (lp for lp in lessons if lp.last_accessed_at is not None),
        key=lambda lp: lp.last_accessed_at,
        reverse=True,
    )[:RECENT_ACTIVITY_LIMIT]

    return {
        "overall_metrics": aggregate.overall_metrics.to_dict(),
        "completion_rate": completion_rate(aggregate.overall_metrics),
        "average_daily_study_time": average_daily_study_time(
            aggregate.overall_metrics, aggregate.created_at, now, tz
        ),
        "lesson_stats": {
            "total": len(lessons),
            "completed": _count(lessons, *DONE_STATUSES),
            "mastered": _count(lessons, ProgressStatus.MASTERED),
            "in_progress": _count(lessons, ProgressStatus.IN_PROGRESS),
        },
        "course_stats": {
            "total": len(courses),
            "completed": _count(courses, ProgressStatus.COMPLETED),
            "in_progress": _count(courses, ProgressStatus.IN_PROGRESS),
        },
        "quiz_stats": {
            "total": len(quizzes),
            "attempts": sum(q.attempts for q in quizzes),
            "average_score": mean_score(q.score for q in quizzes),
        },
        "learning_goals": aggregate.learning_goals.to_dict(),
        "xp": aggregate.xp,
        "level": aggregate.level,
        "xp_to_next_level": max(0, xp_for_level(aggregate.level + 1) - aggregate.xp),
        "recent_activity": [lp.to_dict() for lp in recent],
    }
