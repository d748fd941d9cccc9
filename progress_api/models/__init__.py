"""
API data models. Single import surface for DB entities.

DB entities (progress_api.models.models):
- UserProgressRecord
"""

from progress_api.models.models import UserProgressRecord

__all__ = [
    "UserProgressRecord",
]
