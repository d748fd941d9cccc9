"""
Learner progress engine: lesson/course/quiz tracking, derived metrics,
study streaks and xp/level/badge progression for one user aggregate.

Import surface:
- ProgressEngine (engine facade, per-user command boundary)
- ProgressStore, InMemoryProgressStore (persistence contract)
- ProgressAggregate and entry types
- Typed errors
"""

from progress_engine.engine import ProgressEngine
from progress_engine.errors import (
    Conflict,
    InvalidScore,
    InvalidTimeSpent,
    NotFound,
    ProgressError,
    StoreUnavailable,
    ValidationError,
)
from progress_engine.store import InMemoryProgressStore, ProgressStore
from progress_engine.types import (
    CompletionType,
    CourseProgress,
    LearningGoals,
    LessonProgress,
    OverallMetrics,
    ProgressAggregate,
    ProgressStatus,
    QuizProgress,
    XpEvent,
    XpSource,
)

__all__ = [
    "ProgressEngine",
    "ProgressStore",
    "InMemoryProgressStore",
    # errors
    "ProgressError",
    "NotFound",
    "ValidationError",
    "InvalidScore",
    "InvalidTimeSpent",
    "Conflict",
    "StoreUnavailable",
    # data model
    "ProgressAggregate",
    "LessonProgress",
    "CourseProgress",
    "QuizProgress",
    "OverallMetrics",
    "LearningGoals",
    "XpEvent",
    "XpSource",
    "ProgressStatus",
    "CompletionType",
]
