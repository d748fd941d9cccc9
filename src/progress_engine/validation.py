"""Payload checks run before any mutation."""

import math
from datetime import date, datetime
from numbers import Real
from typing import Any, Dict, Optional

from progress_engine.errors import InvalidScore, InvalidTimeSpent, ValidationError
from progress_engine.types import NOTES_MAX_LENGTH, CompletionType


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_score(score: Any) -> float:
    if not _is_number(score) or score != score or not 0 <= score <= 100:
        raise InvalidScore(score)
    return score


def validate_time_spent(time_spent: Any) -> int:
    """Whole, finite, non-negative minutes."""
    if not _is_number(time_spent) or not math.isfinite(time_spent) or time_spent < 0:
        raise InvalidTimeSpent(time_spent)
    # fractional minutes are rejected, not truncated
    if time_spent != int(time_spent):
        raise InvalidTimeSpent(time_spent)
    return int(time_spent)


def validate_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer, got {value!r}", field=name)
    return value


def validate_id(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string", field=name)
    return value.strip()


def validate_completion_type(value: Any) -> CompletionType:
    try:
        return CompletionType(value)
    except ValueError:
        allowed = ", ".join(c.value for c in CompletionType)
        raise ValidationError(
            f"{value!r} is not a valid completion type (expected one of {allowed})",
            field="completion_type",
        ) from None


def validate_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationError("notes must be a string", field="notes")
    if len(notes) > NOTES_MAX_LENGTH:
        raise ValidationError(f"Notes cannot exceed {NOTES_MAX_LENGTH} characters", field="notes")
    return notes


GOAL_FIELDS = ("daily_study_time", "weekly_goal", "target_completion_date", "priority_subjects")


def validate_goals(goals: Dict[str, Any]) -> Dict[str, Any]:
    """Check a partial learning-goals payload; returns the normalized changes."""
    unknown = sorted(set(goals) - set(GOAL_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown learning goal fields: {', '.join(unknown)}", fields=unknown)

    changes: Dict[str, Any] = {}
    for name, label in (("daily_study_time", "minute"), ("weekly_goal", "lesson")):
        if goals.get(name) is None:
            continue
        value = goals[name]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(f"{name} must be at least 1 {label}", field=name)
        changes[name] = value

    if "target_completion_date" in goals:
        value = goals["target_completion_date"]
        if isinstance(value, str):
            try:
                value = date.fromisoformat(value)
            except ValueError:
                raise ValidationError(
                    "target_completion_date must be an ISO date", field="target_completion_date"
                ) from None
        elif isinstance(value, datetime):
            value = value.date()
        elif value is not None and not isinstance(value, date):
            raise ValidationError("target_completion_date must be a date", field="target_completion_date")
        changes["target_completion_date"] = value

    if goals.get("priority_subjects") is not None:
        subjects = goals["priority_subjects"]
        if not isinstance(subjects, list) or not all(isinstance(s, str) for s in subjects):
            raise ValidationError("priority_subjects must be a list of strings", field="priority_subjects")
        # keep first occurrence order, drop blanks and duplicates
        changes["priority_subjects"] = list(dict.fromkeys(s.strip() for s in subjects if s.strip()))
    return changes
