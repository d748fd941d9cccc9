"""Unit tests for payload validation."""
from datetime import date

import pytest

from progress_engine.errors import InvalidScore, InvalidTimeSpent, ValidationError
from progress_engine.types import CompletionType
from progress_engine.validation import (
    validate_completion_type,
    validate_goals,
    validate_id,
    validate_notes,
    validate_score,
    validate_time_spent,
)


@pytest.mark.unit
class TestScalars:
    @pytest.mark.parametrize("score", [-1, 100.5, "80", None, True, float("nan")])
    def test_invalid_scores(self, score):
        with pytest.raises(InvalidScore):
            validate_score(score)

    def test_score_bounds_inclusive(self):
        assert validate_score(0) == 0
        assert validate_score(100) == 100

    @pytest.mark.parametrize(
        "time_spent", [-5, float("inf"), float("-inf"), float("nan"), 1.9, "10", None, True]
    )
    def test_invalid_time_spent(self, time_spent):
        with pytest.raises(InvalidTimeSpent):
            validate_time_spent(time_spent)

    def test_whole_float_minutes_accepted(self):
        assert validate_time_spent(12.0) == 12
        assert validate_time_spent(0) == 0

    def test_id_is_stripped(self):
        assert validate_id("lesson_id", "  l1 ") == "l1"
        with pytest.raises(ValidationError):
            validate_id("lesson_id", "   ")

    def test_completion_type(self):
        assert validate_completion_type("score_based") is CompletionType.SCORE_BASED
        with pytest.raises(ValidationError):
            validate_completion_type("magic")

    def test_notes_length(self):
        assert validate_notes(None) is None
        with pytest.raises(ValidationError):
            validate_notes("x" * 1001)


@pytest.mark.unit
class TestGoals:
    def test_normalizes_payload(self):
        changes = validate_goals({
            "daily_study_time": 30,
            "target_completion_date": "2025-12-31",
            "priority_subjects": ["ml", " ml", "stats", ""],
        })
        assert changes == {
            "daily_study_time": 30,
            "target_completion_date": date(2025, 12, 31),
            "priority_subjects": ["ml", "stats"],
        }

    @pytest.mark.parametrize(
        "payload",
        [
            {"weekly_goal": 0},
            {"daily_study_time": "60"},
            {"target_completion_date": "next week"},
            {"priority_subjects": "ml"},
            {"favorite_color": "blue"},
        ],
    )
    def test_rejects_bad_goals(self, payload):
        with pytest.raises(ValidationError):
            validate_goals(payload)
