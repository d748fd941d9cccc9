"""
Per-lesson state machine.

    not_started -> in_progress -> completed -> mastered

Status only moves forward; `reset_lesson` is the single way back. Only
`start_lesson` and `complete_lesson` touch the aggregate counters, and each
increments them at most once per lesson id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from progress_engine import metrics
from progress_engine.errors import NotFound, ValidationError
from progress_engine.gamification import GamificationLedger, xp_for_lesson
from progress_engine.streak import StreakCalculator
from progress_engine.types import (
    MASTERY_SCORE,
    STATUS_RANK,
    CompletionType,
    LessonProgress,
    ProgressAggregate,
    ProgressStatus,
    XpSource,
)
from progress_engine.validation import (
    validate_completion_type,
    validate_count,
    validate_notes,
    validate_score,
    validate_time_spent,
)
from progress_api.utils.logger import configure_logging

logger = configure_logging()

UPDATABLE_FIELDS = ("time_spent", "score", "attempts", "hints_used", "bookmarked", "notes")


def status_for_score(score: float) -> ProgressStatus:
    return ProgressStatus.MASTERED if score >= MASTERY_SCORE else ProgressStatus.COMPLETED


class LessonProgressTracker:
    def __init__(self, streak: StreakCalculator, ledger: GamificationLedger):
        self.streak = streak
        self.ledger = ledger

    def require_lesson(self, aggregate: ProgressAggregate, lesson_id: str) -> LessonProgress:
        lp = aggregate.get_lesson(lesson_id)
        if lp is None:
            raise NotFound(
                f"No progress for lesson {lesson_id}", user_id=aggregate.user_id, lesson_id=lesson_id
            )
        return lp

    def start_lesson(self, aggregate: ProgressAggregate, lesson_id: str, now: datetime) -> LessonProgress:
        lp = aggregate.get_lesson(lesson_id)
        if lp is None:
            lp = LessonProgress(
                lesson_id=lesson_id,
                status=ProgressStatus.IN_PROGRESS,
                started_at=now,
                last_accessed_at=now,
            )
            aggregate.lesson_progress.append(lp)
            aggregate.overall_metrics.total_lessons_started += 1
            logger.info("lesson started user=%s lesson=%s", aggregate.user_id, lesson_id)
        else:
            if STATUS_RANK[lp.status] < STATUS_RANK[ProgressStatus.IN_PROGRESS]:
                lp.status = ProgressStatus.IN_PROGRESS
            lp.started_at = lp.started_at or now
            lp.last_accessed_at = now
        if self.streak.touch(aggregate.overall_metrics, now):
            self.ledger.evaluate(aggregate, now)
        return lp

    def complete_lesson(
        self,
        aggregate: ProgressAggregate,
        lesson_id: str,
        score: float,
        time_spent: int,
        now: datetime,
        completion_type: CompletionType | str = CompletionType.MANUAL,
    ) -> LessonProgress:
        score = validate_score(score)
        time_spent = validate_time_spent(time_spent)
        completion_type = validate_completion_type(completion_type)
        lp = self.require_lesson(aggregate, lesson_id)

        first_completion = lp.first_completed_at is None and not lp.is_done
        # best score wins, so a mastered lesson is never downgraded by a weaker retry
        best = score if lp.score is None or not lp.is_done else max(lp.score, score)
        new_status = status_for_score(best)
        if STATUS_RANK[new_status] > STATUS_RANK[lp.status]:
            lp.status = new_status

        lp.score = best
        lp.completed_at = now
        lp.last_accessed_at = now
        lp.started_at = lp.started_at or now
        lp.time_spent += time_spent
        lp.completion_type = completion_type

        om = aggregate.overall_metrics
        om.total_study_time += time_spent
        if first_completion:
            lp.first_completed_at = now
            om.total_lessons_completed += 1
            logger.info(
                "lesson completed user=%s lesson=%s status=%s score=%s",
                aggregate.user_id, lesson_id, lp.status.value, score,
            )

        metrics.recompute(aggregate)
        self.streak.touch(om, now)

        if not self.ledger.has_awarded(aggregate, XpSource.LESSON, lesson_id):
            self.ledger.on_lesson_completed(aggregate, xp_for_lesson(best), lesson_id, now)
        else:
            self.ledger.evaluate(aggregate, now)
        return lp

    def update_lesson_progress(
        self, aggregate: ProgressAggregate, lesson_id: str, partial: Dict[str, Any], now: datetime
    ) -> LessonProgress:
        """
        Apply a partial update. Counter fields are taken as absolute values,
        so replaying the same payload is harmless, but callers sending
        read-modify-write deltas (attempts + 1) must not retry blindly.
        """
        unknown = sorted(set(partial) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}", fields=unknown)
        lp = self.require_lesson(aggregate, lesson_id)

        changes: Dict[str, Any] = {}
        if partial.get("time_spent") is not None:
            value = validate_time_spent(partial["time_spent"])
            if value < lp.time_spent:
                raise ValidationError(
                    f"time_spent cannot decrease (current {lp.time_spent}, got {value})", field="time_spent"
                )
            changes["time_spent"] = value
        if partial.get("score") is not None:
            value = validate_score(partial["score"])
            if lp.status == ProgressStatus.MASTERED and value < MASTERY_SCORE:
                raise ValidationError(
                    f"Mastered lessons need a score of at least {MASTERY_SCORE}", field="score"
                )
            changes["score"] = value
        for name in ("attempts", "hints_used"):
            if partial.get(name) is not None:
                changes[name] = validate_count(name, partial[name])
        if partial.get("bookmarked") is not None:
            if not isinstance(partial["bookmarked"], bool):
                raise ValidationError("bookmarked must be a boolean", field="bookmarked")
            changes["bookmarked"] = partial["bookmarked"]
        if "notes" in partial:
            changes["notes"] = validate_notes(partial["notes"])

        for name, value in changes.items():
            setattr(lp, name, value)
        lp.last_accessed_at = now
        if "score" in changes:
            metrics.recompute(aggregate)
        return lp

    def use_hint(self, aggregate: ProgressAggregate, lesson_id: str, now: datetime) -> LessonProgress:
        """Not idempotent: every call counts one more hint."""
        lp = self.require_lesson(aggregate, lesson_id)
        lp.hints_used += 1
        lp.last_accessed_at = now
        return lp

    def reset_lesson(self, aggregate: ProgressAggregate, lesson_id: str, now: datetime) -> LessonProgress:
        """
        Send a lesson back to not_started. Aggregate counters and time spent
        are kept: they are monotonic and were already earned.
        """
        lp = self.require_lesson(aggregate, lesson_id)
        lp.status = ProgressStatus.NOT_STARTED
        lp.score = None
        lp.completed_at = None
        lp.completion_type = None
        lp.last_accessed_at = now
        metrics.recompute(aggregate)
        logger.info("lesson reset user=%s lesson=%s", aggregate.user_id, lesson_id)
        return lp
