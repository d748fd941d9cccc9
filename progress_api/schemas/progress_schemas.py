"""
Learner progress schemas (requests and aggregate responses).
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from progress_engine.types import CompletionType, ProgressStatus


# ----- requests -----

class CompleteLessonRequest(BaseModel):
    score: float = Field(allow_inf_nan=False)
    time_spent: int = 0  # minutes spent in this session
    completion_type: CompletionType = CompletionType.MANUAL


class UpdateLessonProgressRequest(BaseModel):
    """Partial update; omitted fields are left untouched."""
    model_config = ConfigDict(extra="forbid")

    time_spent: Optional[int] = None  # absolute cumulative minutes
    score: Optional[float] = None
    attempts: Optional[int] = None
    hints_used: Optional[int] = None
    bookmarked: Optional[bool] = None
    notes: Optional[str] = None


class EnrollCourseRequest(BaseModel):
    total_lessons: int = 0


class RecomputeCourseRequest(BaseModel):
    """Lesson ids that belong to the course, resolved by the catalog."""
    lesson_ids: list[str]


class SubmitQuizRequest(BaseModel):
    score: float = Field(allow_inf_nan=False)
    time_spent: int = 0


class LearningGoalsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    daily_study_time: Optional[int] = None
    weekly_goal: Optional[int] = None
    target_completion_date: Optional[str] = None  # ISO date
    priority_subjects: Optional[list[str]] = None


class AwardBadgeRequest(BaseModel):
    badge: str


# ----- responses -----

class LessonProgressResponse(BaseModel):
    lesson_id: str
    status: ProgressStatus
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    first_completed_at: Optional[str] = None
    last_accessed_at: Optional[str] = None
    time_spent: int
    score: Optional[float] = None
    attempts: int
    hints_used: int
    bookmarked: bool
    notes: Optional[str] = None
    completion_type: Optional[CompletionType] = None


class CourseProgressResponse(BaseModel):
    course_id: str
    status: ProgressStatus
    enrolled_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    last_accessed_at: Optional[str] = None
    total_lessons: int
    lessons_completed: int
    overall_progress: int
    average_score: int
    total_time_spent: int


class QuizProgressResponse(BaseModel):
    quiz_id: str
    score: Optional[float] = None
    completed_at: Optional[str] = None
    time_spent: int
    attempts: int


class OverallMetricsResponse(BaseModel):
    total_lessons_started: int
    total_lessons_completed: int
    total_courses_enrolled: int
    total_courses_completed: int
    total_study_time: int
    average_score: int
    current_streak: int
    longest_streak: int
    last_study_date: Optional[str] = None


class LearningGoalsResponse(BaseModel):
    daily_study_time: int
    weekly_goal: int
    target_completion_date: Optional[str] = None
    priority_subjects: list[str] = []


class XpEventResponse(BaseModel):
    source: str
    ref_id: str
    xp: int
    awarded_at: str


class ProgressResponse(BaseModel):
    """Full per-user aggregate plus read-time projections."""
    user_id: str
    lesson_progress: list[LessonProgressResponse]
    course_progress: list[CourseProgressResponse]
    quiz_progress: list[QuizProgressResponse]
    overall_metrics: OverallMetricsResponse
    learning_goals: LearningGoalsResponse
    xp: int
    level: int
    badges: list[str]
    achievements: list[str]
    xp_events: list[XpEventResponse]
    is_active: bool
    version: int
    created_at: str
    updated_at: str
    last_sync_at: Optional[str] = None
    completion_rate: int
    average_daily_study_time: int


class LessonStats(BaseModel):
    total: int
    completed: int
    mastered: int
    in_progress: int


class CourseStats(BaseModel):
    total: int
    completed: int
    in_progress: int


class QuizStats(BaseModel):
    total: int
    attempts: int
    average_score: int


class ProgressStatisticsResponse(BaseModel):
    overall_metrics: OverallMetricsResponse
    completion_rate: int
    average_daily_study_time: int
    lesson_stats: LessonStats
    course_stats: CourseStats
    quiz_stats: QuizStats
    learning_goals: LearningGoalsResponse
    xp: int
    level: int
    xp_to_next_level: int
    streak_active: bool
    recent_activity: list[LessonProgressResponse] = Field(default_factory=list)
