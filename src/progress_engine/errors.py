"""
Typed errors raised by the progress engine.

Every error carries a stable `kind` so callers (HTTP shell, workers) can map it
without parsing messages. Human readable text is informational only.
"""

from typing import Any, Dict, Optional


class ProgressError(Exception):
    """Base class for all engine errors."""

    kind = "progress_error"
    retryable = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.context:
            out["context"] = dict(self.context)
        return out


class NotFound(ProgressError):
    """Unknown user aggregate, lesson, course or quiz reference."""

    kind = "not_found"


class ValidationError(ProgressError):
    """Payload rejected before any mutation happened."""

    kind = "validation_error"


class InvalidScore(ValidationError):
    def __init__(self, score: Any):
        super().__init__(f"Score must be between 0 and 100, got {score!r}", score=score)


class InvalidTimeSpent(ValidationError):
    def __init__(self, time_spent: Any):
        super().__init__(f"Time spent must be a whole, non-negative number of minutes, got {time_spent!r}", time_spent=time_spent)


class Conflict(ProgressError):
    """Optimistic version check failed: someone else saved this aggregate first."""

    kind = "conflict"

    def __init__(self, user_id: str, expected_version: int, actual_version: Optional[int] = None):
        super().__init__(
            f"Progress for user {user_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            user_id=user_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )


class StoreUnavailable(ProgressError):
    """Transient persistence failure. Safe to retry from the caller."""

    kind = "store_unavailable"
    retryable = True
