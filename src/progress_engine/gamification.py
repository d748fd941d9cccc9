"""
XP, levels, badges and achievements.

Every xp change goes through `record_xp`, which appends an `XpEvent` to the
aggregate's ledger. `replay` rebuilds xp and level from that ledger alone, so
the totals are auditable and there are no hidden bonuses.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Tuple

from progress_engine.types import (
    MASTERY_SCORE,
    ProgressAggregate,
    ProgressStatus,
    XpEvent,
    XpSource,
)
from progress_api.utils.logger import configure_logging

logger = configure_logging()

# xp needed to reach level N is LEVEL_THRESHOLDS[N - 1]
LEVEL_THRESHOLDS: Tuple[int, ...] = (0, 100, 250, 450, 700, 1000, 1400, 1900, 2500, 3200)
XP_PER_LEVEL_AFTER_TABLE = 800

LESSON_BASE_XP = 10
MASTERY_BONUS_XP = 5
QUIZ_PASS_SCORE = 50


def level_from_xp(xp: int) -> int:
    """Monotonic non-decreasing in xp."""
    xp = max(0, int(xp))
    top = LEVEL_THRESHOLDS[-1]
    if xp < top:
        return bisect_right(LEVEL_THRESHOLDS, xp)
    return len(LEVEL_THRESHOLDS) + (xp - top) // XP_PER_LEVEL_AFTER_TABLE


def xp_for_level(level: int) -> int:
    if level <= 1:
        return 0
    if level <= len(LEVEL_THRESHOLDS):
        return LEVEL_THRESHOLDS[level - 1]
    return LEVEL_THRESHOLDS[-1] + (level - len(LEVEL_THRESHOLDS)) * XP_PER_LEVEL_AFTER_TABLE


def xp_for_lesson(score: float) -> int:
    xp = LESSON_BASE_XP + int(score) // 10
    if score >= MASTERY_SCORE:
        xp += MASTERY_BONUS_XP
    return xp


def xp_for_quiz(score: float) -> int:
    return int(score) // 10


def replay(events: Iterable[XpEvent]) -> Tuple[int, int]:
    """(xp, level) reconstructed purely from ledger events."""
    xp = sum(e.xp for e in events)
    return xp, level_from_xp(xp)


@dataclass(frozen=True)
class Milestone:
    id: str
    description: str
    target: int
    measure: Callable[[ProgressAggregate], int]
    badge: str = ""
    xp: int = 0


def _mastered_lessons(agg: ProgressAggregate) -> int:
    return sum(1 for lp in agg.lesson_progress if lp.status == ProgressStatus.MASTERED)


MILESTONES: Tuple[Milestone, ...] = (
    Milestone(
        id="first_lesson",
        description="Complete your first lesson",
        target=1,
        measure=lambda agg: agg.overall_metrics.total_lessons_completed,
        badge="First Steps",
    ),
    Milestone(
        id="week_streak",
        description="Study for 7 consecutive days",
        target=7,
        measure=lambda agg: agg.overall_metrics.longest_streak,
        xp=100,
    ),
    Milestone(
        id="topic_master",
        description="Master 5 lessons",
        target=5,
        measure=_mastered_lessons,
        badge="Topic Master",
    ),
    Milestone(
        id="course_finisher",
        description="Complete your first course",
        target=1,
        measure=lambda agg: agg.overall_metrics.total_courses_completed,
        badge="Course Finisher",
    ),
)


class GamificationLedger:
    def __init__(self, milestones: Iterable[Milestone] = MILESTONES):
        self.milestones = tuple(milestones)

    def record_xp(
        self, aggregate: ProgressAggregate, source: XpSource, ref_id: str, xp: int, at: datetime
    ) -> int:
        """Append a ledger event and refresh xp/level. Returns the new level."""
        if xp <= 0:
            return aggregate.level
        aggregate.xp_events.append(XpEvent(source=source, ref_id=ref_id, xp=int(xp), awarded_at=at))
        previous = aggregate.level
        aggregate.xp += int(xp)
        aggregate.level = max(aggregate.level, level_from_xp(aggregate.xp))
        if aggregate.level > previous:
            logger.info("level up user=%s level=%s xp=%s", aggregate.user_id, aggregate.level, aggregate.xp)
        return aggregate.level

    def has_awarded(self, aggregate: ProgressAggregate, source: XpSource, ref_id: str) -> bool:
        return any(e.source == source and e.ref_id == ref_id for e in aggregate.xp_events)

    def on_lesson_completed(
        self, aggregate: ProgressAggregate, xp_awarded: int, lesson_id: str, at: datetime
    ) -> List[str]:
        self.record_xp(aggregate, XpSource.LESSON, lesson_id, xp_awarded, at)
        return self.evaluate(aggregate, at)

    def on_quiz_passed(
        self, aggregate: ProgressAggregate, xp_awarded: int, quiz_id: str, at: datetime
    ) -> List[str]:
        self.record_xp(aggregate, XpSource.QUIZ, quiz_id, xp_awarded, at)
        return self.evaluate(aggregate, at)

    def award_badge(self, aggregate: ProgressAggregate, badge: str) -> bool:
        if not badge or badge in aggregate.badges:
            return False
        aggregate.badges.append(badge)
        return True

    def award_achievement(self, aggregate: ProgressAggregate, achievement_id: str) -> bool:
        if not achievement_id or achievement_id in aggregate.achievements:
            return False
        aggregate.achievements.append(achievement_id)
        return True

    def evaluate(self, aggregate: ProgressAggregate, at: datetime) -> List[str]:
        """Grant every milestone whose target is reached. Returns newly earned ids."""
        earned: List[str] = []
        for m in self.milestones:
            if m.id in aggregate.achievements or m.measure(aggregate) < m.target:
                continue
            self.award_achievement(aggregate, m.id)
            if m.badge:
                self.award_badge(aggregate, m.badge)
            if m.xp:
                self.record_xp(aggregate, XpSource.MILESTONE, m.id, m.xp, at)
            earned.append(m.id)
        if earned:
            logger.info("milestones earned user=%s ids=%s", aggregate.user_id, earned)
        return earned
