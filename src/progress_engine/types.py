"""
Progress aggregate data model.

One `ProgressAggregate` per user holds every lesson, course and quiz entry plus
the overall metrics, learning goals and gamification state. Entries reference
catalog items by id only; the catalog itself is never owned here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ProgressStatus(str, Enum):
    """Completion state of a lesson or course."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MASTERED = "mastered"


class CompletionType(str, Enum):
    """How a lesson was marked complete."""
    TIME_BASED = "time_based"
    SCORE_BASED = "score_based"
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class XpSource(str, Enum):
    LESSON = "lesson"
    QUIZ = "quiz"
    MILESTONE = "milestone"


STATUS_RANK: Dict[ProgressStatus, int] = {
    ProgressStatus.NOT_STARTED: 0,
    ProgressStatus.IN_PROGRESS: 1,
    ProgressStatus.COMPLETED: 2,
    ProgressStatus.MASTERED: 3,
}

DONE_STATUSES = (ProgressStatus.COMPLETED, ProgressStatus.MASTERED)

MASTERY_SCORE = 80
NOTES_MAX_LENGTH = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    # Stored values are always UTC; legacy naive values are read as UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


@dataclass
class LessonProgress:
    lesson_id: str
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    # set once, survives reset_lesson; guards the completion counter
    first_completed_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    time_spent: int = 0  # cumulative minutes
    score: Optional[float] = None
    attempts: int = 0
    hints_used: int = 0
    bookmarked: bool = False
    notes: Optional[str] = None
    completion_type: Optional[CompletionType] = None

    @property
    def is_done(self) -> bool:
        return self.status in DONE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lesson_id": self.lesson_id,
            "status": self.status.value,
            "started_at": _dt(self.started_at),
            "completed_at": _dt(self.completed_at),
            "first_completed_at": _dt(self.first_completed_at),
            "last_accessed_at": _dt(self.last_accessed_at),
            "time_spent": self.time_spent,
            "score": self.score,
            "attempts": self.attempts,
            "hints_used": self.hints_used,
            "bookmarked": self.bookmarked,
            "notes": self.notes,
            "completion_type": self.completion_type.value if self.completion_type else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LessonProgress":
        ctype = data.get("completion_type")
        return cls(
            lesson_id=str(data["lesson_id"]),
            status=ProgressStatus(data.get("status") or ProgressStatus.NOT_STARTED.value),
            started_at=_parse_dt(data.get("started_at")),
            completed_at=_parse_dt(data.get("completed_at")),
            first_completed_at=_parse_dt(data.get("first_completed_at")),
            last_accessed_at=_parse_dt(data.get("last_accessed_at")),
            time_spent=int(data.get("time_spent") or 0),
            score=data.get("score"),
            attempts=int(data.get("attempts") or 0),
            hints_used=int(data.get("hints_used") or 0),
            bookmarked=bool(data.get("bookmarked", False)),
            notes=data.get("notes"),
            completion_type=CompletionType(ctype) if ctype else None,
        )


@dataclass
class CourseProgress:
    course_id: str
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    enrolled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    total_lessons: int = 0
    lessons_completed: int = 0
    overall_progress: int = 0  # percent, 0-100
    average_score: int = 0
    total_time_spent: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course_id": self.course_id,
            "status": self.status.value,
            "enrolled_at": _dt(self.enrolled_at),
            "started_at": _dt(self.started_at),
            "completed_at": _dt(self.completed_at),
            "last_accessed_at": _dt(self.last_accessed_at),
            "total_lessons": self.total_lessons,
            "lessons_completed": self.lessons_completed,
            "overall_progress": self.overall_progress,
            "average_score": self.average_score,
            "total_time_spent": self.total_time_spent,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CourseProgress":
        return cls(
            course_id=str(data["course_id"]),
            status=ProgressStatus(data.get("status") or ProgressStatus.NOT_STARTED.value),
            enrolled_at=_parse_dt(data.get("enrolled_at")),
            started_at=_parse_dt(data.get("started_at")),
            completed_at=_parse_dt(data.get("completed_at")),
            last_accessed_at=_parse_dt(data.get("last_accessed_at")),
            total_lessons=int(data.get("total_lessons") or 0),
            lessons_completed=int(data.get("lessons_completed") or 0),
            overall_progress=int(data.get("overall_progress") or 0),
            average_score=int(data.get("average_score") or 0),
            total_time_spent=int(data.get("total_time_spent") or 0),
        )


@dataclass
class QuizProgress:
    quiz_id: str
    score: Optional[float] = None
    completed_at: Optional[datetime] = None
    time_spent: int = 0
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quiz_id": self.quiz_id,
            "score": self.score,
            "completed_at": _dt(self.completed_at),
            "time_spent": self.time_spent,
            "attempts": self.attempts,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizProgress":
        return cls(
            quiz_id=str(data["quiz_id"]),
            score=data.get("score"),
            completed_at=_parse_dt(data.get("completed_at")),
            time_spent=int(data.get("time_spent") or 0),
            attempts=int(data.get("attempts") or 0),
        )


@dataclass
class OverallMetrics:
    total_lessons_started: int = 0
    total_lessons_completed: int = 0
    total_courses_enrolled: int = 0
    total_courses_completed: int = 0
    total_study_time: int = 0
    average_score: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_study_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_lessons_started": self.total_lessons_started,
            "total_lessons_completed": self.total_lessons_completed,
            "total_courses_enrolled": self.total_courses_enrolled,
            "total_courses_completed": self.total_courses_completed,
            "total_study_time": self.total_study_time,
            "average_score": self.average_score,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_study_date": self.last_study_date.isoformat() if self.last_study_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverallMetrics":
        return cls(
            total_lessons_started=int(data.get("total_lessons_started") or 0),
            total_lessons_completed=int(data.get("total_lessons_completed") or 0),
            total_courses_enrolled=int(data.get("total_courses_enrolled") or 0),
            total_courses_completed=int(data.get("total_courses_completed") or 0),
            total_study_time=int(data.get("total_study_time") or 0),
            average_score=int(data.get("average_score") or 0),
            current_streak=int(data.get("current_streak") or 0),
            longest_streak=int(data.get("longest_streak") or 0),
            last_study_date=_parse_date(data.get("last_study_date")),
        )


@dataclass
class LearningGoals:
    daily_study_time: int = 60  # minutes
    weekly_goal: int = 5  # lessons
    target_completion_date: Optional[date] = None
    priority_subjects: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "daily_study_time": self.daily_study_time,
            "weekly_goal": self.weekly_goal,
            "target_completion_date": (
                self.target_completion_date.isoformat() if self.target_completion_date else None
            ),
            "priority_subjects": list(self.priority_subjects),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningGoals":
        return cls(
            daily_study_time=int(data.get("daily_study_time") or 60),
            weekly_goal=int(data.get("weekly_goal") or 5),
            target_completion_date=_parse_date(data.get("target_completion_date")),
            priority_subjects=list(data.get("priority_subjects") or []),
        )


@dataclass
class XpEvent:
    """One entry of the xp ledger. xp and level are replayed from these."""
    source: XpSource
    ref_id: str
    xp: int
    awarded_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "ref_id": self.ref_id,
            "xp": self.xp,
            "awarded_at": _dt(self.awarded_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "XpEvent":
        return cls(
            source=XpSource(data["source"]),
            ref_id=str(data["ref_id"]),
            xp=int(data["xp"]),
            awarded_at=_parse_dt(data["awarded_at"]) or utcnow(),
        )


@dataclass
class ProgressAggregate:
    """
    Root per-user container for all learning progress and gamification state.

    `version` is the optimistic lock counter owned by the store: 0 means the
    aggregate has never been saved.
    """
    user_id: str
    lesson_progress: List[LessonProgress] = field(default_factory=list)
    course_progress: List[CourseProgress] = field(default_factory=list)
    quiz_progress: List[QuizProgress] = field(default_factory=list)
    overall_metrics: OverallMetrics = field(default_factory=OverallMetrics)
    learning_goals: LearningGoals = field(default_factory=LearningGoals)
    xp: int = 0
    level: int = 1
    badges: List[str] = field(default_factory=list)
    achievements: List[str] = field(default_factory=list)
    xp_events: List[XpEvent] = field(default_factory=list)
    is_active: bool = True
    version: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_sync_at: Optional[datetime] = None

    def get_lesson(self, lesson_id: str) -> Optional[LessonProgress]:
        for lp in self.lesson_progress:
            if lp.lesson_id == lesson_id:
                return lp
        return None

    def get_course(self, course_id: str) -> Optional[CourseProgress]:
        for cp in self.course_progress:
            if cp.course_id == course_id:
                return cp
        return None

    def get_quiz(self, quiz_id: str) -> Optional[QuizProgress]:
        for qp in self.quiz_progress:
            if qp.quiz_id == quiz_id:
                return qp
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "lesson_progress": [lp.to_dict() for lp in self.lesson_progress],
            "course_progress": [cp.to_dict() for cp in self.course_progress],
            "quiz_progress": [qp.to_dict() for qp in self.quiz_progress],
            "overall_metrics": self.overall_metrics.to_dict(),
            "learning_goals": self.learning_goals.to_dict(),
            "xp": self.xp,
            "level": self.level,
            "badges": list(self.badges),
            "achievements": list(self.achievements),
            "xp_events": [e.to_dict() for e in self.xp_events],
            "is_active": self.is_active,
            "version": self.version,
            "created_at": _dt(self.created_at),
            "updated_at": _dt(self.updated_at),
            "last_sync_at": _dt(self.last_sync_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressAggregate":
        return cls(
            user_id=str(data["user_id"]),
            lesson_progress=[LessonProgress.from_dict(x) for x in data.get("lesson_progress") or []],
            course_progress=[CourseProgress.from_dict(x) for x in data.get("course_progress") or []],
            quiz_progress=[QuizProgress.from_dict(x) for x in data.get("quiz_progress") or []],
            overall_metrics=OverallMetrics.from_dict(data.get("overall_metrics") or {}),
            learning_goals=LearningGoals.from_dict(data.get("learning_goals") or {}),
            xp=int(data.get("xp") or 0),
            level=int(data.get("level") or 1),
            badges=list(data.get("badges") or []),
            achievements=list(data.get("achievements") or []),
            xp_events=[XpEvent.from_dict(x) for x in data.get("xp_events") or []],
            is_active=bool(data.get("is_active", True)),
            version=int(data.get("version") or 0),
            created_at=_parse_dt(data.get("created_at")) or utcnow(),
            updated_at=_parse_dt(data.get("updated_at")) or utcnow(),
            last_sync_at=_parse_dt(data.get("last_sync_at")),
        )
