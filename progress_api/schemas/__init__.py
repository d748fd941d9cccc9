"""
API schemas package. Import from submodules or from this package.

Example:
    from progress_api.schemas import ProgressResponse, CompleteLessonRequest
    from progress_api.schemas.progress_schemas import ProgressResponse
"""

from progress_api.schemas.progress_schemas import (
    AwardBadgeRequest,
    CompleteLessonRequest,
    CourseProgressResponse,
    EnrollCourseRequest,
    LearningGoalsRequest,
    LessonProgressResponse,
    ProgressResponse,
    ProgressStatisticsResponse,
    RecomputeCourseRequest,
    SubmitQuizRequest,
    UpdateLessonProgressRequest,
)

__all__ = [
    # requests
    "CompleteLessonRequest",
    "UpdateLessonProgressRequest",
    "EnrollCourseRequest",
    "RecomputeCourseRequest",
    "SubmitQuizRequest",
    "LearningGoalsRequest",
    "AwardBadgeRequest",
    # responses
    "ProgressResponse",
    "ProgressStatisticsResponse",
    "LessonProgressResponse",
    "CourseProgressResponse",
]
