"""
Learner progress endpoints.

Engine errors are not caught here: the app-level ProgressError handler maps
them to 404/409/422/503. Handlers are plain `def` so the per-user locks and
blocking DB calls run in the threadpool.
"""

from fastapi import APIRouter, Depends, Response, status

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
from progress_api.services.progress_service import get_engine, progress_payload
from progress_api.utils.common import get_user_id
from progress_engine.engine import ProgressEngine

progress_routes = APIRouter()


@progress_routes.get("/progress", response_model=ProgressResponse)
def get_progress(
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """Current user's progress, created on first access."""
    return progress_payload(engine, engine.get_or_create_progress(user_id))


@progress_routes.get("/progress/statistics", response_model=ProgressStatisticsResponse)
def get_statistics(
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    return engine.get_statistics(user_id)


@progress_routes.delete("/progress", status_code=status.HTTP_204_NO_CONTENT)
def delete_progress(
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> Response:
    """Called by the account service when the account is deleted."""
    engine.delete_progress(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----- lessons -----

@progress_routes.post("/progress/lessons/{lesson_id}/start", response_model=ProgressResponse)
def start_lesson(
    lesson_id: str,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """Idempotent: starting an already started lesson only refreshes its access time."""
    return progress_payload(engine, engine.start_lesson(user_id, lesson_id))


@progress_routes.post("/progress/lessons/{lesson_id}/complete", response_model=ProgressResponse)
def complete_lesson(
    lesson_id: str,
    body: CompleteLessonRequest,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """
    Complete a started lesson. Score >= 80 marks it mastered.
    Retrying leaves counters and xp alone, but time_spent is added to the
    lesson and to total study time on every call.
    """
    aggregate = engine.complete_lesson(
        user_id, lesson_id, body.score, body.time_spent, body.completion_type
    )
    return progress_payload(engine, aggregate)


@progress_routes.patch("/progress/lessons/{lesson_id}", response_model=ProgressResponse)
def update_lesson_progress(
    lesson_id: str,
    body: UpdateLessonProgressRequest,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """Partial lesson update (bookmark, notes, attempts...). Does not move counters."""
    partial = body.model_dump(exclude_unset=True)
    return progress_payload(engine, engine.update_lesson_progress(user_id, lesson_id, partial))


@progress_routes.post("/progress/lessons/{lesson_id}/hints", response_model=ProgressResponse)
def use_hint(
    lesson_id: str,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """Count one hint. Not idempotent."""
    return progress_payload(engine, engine.use_hint(user_id, lesson_id))


@progress_routes.post("/progress/lessons/{lesson_id}/reset", response_model=ProgressResponse)
def reset_lesson(
    lesson_id: str,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    return progress_payload(engine, engine.reset_lesson(user_id, lesson_id))


@progress_routes.get("/progress/lessons/{lesson_id}", response_model=LessonProgressResponse)
def get_lesson_progress(
    lesson_id: str,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    return engine.get_lesson_progress(user_id, lesson_id).to_dict()


# ----- courses -----

@progress_routes.post("/progress/courses/{course_id}/enroll", response_model=ProgressResponse)
def enroll_in_course(
    course_id: str,
    body: EnrollCourseRequest,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    return progress_payload(engine, engine.enroll_in_course(user_id, course_id, body.total_lessons))


@progress_routes.post("/progress/courses/{course_id}/recompute", response_model=ProgressResponse)
def recompute_course(
    course_id: str,
    body: RecomputeCourseRequest,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """Roll lesson progress up into the course. Lesson membership comes from the caller."""
    return progress_payload(engine, engine.recompute_course(user_id, course_id, body.lesson_ids))


@progress_routes.get("/progress/courses/{course_id}", response_model=CourseProgressResponse)
def get_course_progress(
    course_id: str,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    return engine.get_course_progress(user_id, course_id).to_dict()


# ----- quizzes, goals, streak, badges -----

@progress_routes.post("/progress/quizzes/{quiz_id}/submit", response_model=ProgressResponse)
def submit_quiz(
    quiz_id: str,
    body: SubmitQuizRequest,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """Record a quiz attempt. Not idempotent: every call is a new attempt."""
    return progress_payload(engine, engine.submit_quiz(user_id, quiz_id, body.score, body.time_spent))


@progress_routes.put("/progress/goals", response_model=ProgressResponse)
def update_learning_goals(
    body: LearningGoalsRequest,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    goals = body.model_dump(exclude_unset=True)
    return progress_payload(engine, engine.update_learning_goals(user_id, goals))


@progress_routes.post("/progress/streak", response_model=ProgressResponse)
def update_streak(
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    return progress_payload(engine, engine.update_streak(user_id))


@progress_routes.post("/progress/badges", response_model=ProgressResponse)
def award_badge(
    body: AwardBadgeRequest,
    user_id: str = Depends(get_user_id),
    engine: ProgressEngine = Depends(get_engine),
) -> dict:
    """Gamification hook for badges granted by other services (set semantics)."""
    return progress_payload(engine, engine.award_badge(user_id, body.badge))
