"""
Progress service wiring: builds the engine on top of the SQL store and turns
aggregates into response payloads.
"""

from functools import lru_cache
from typing import Any, Dict

from progress_api.config import SessionLocal, settings
from progress_api.services.progress_store import SqlProgressStore
from progress_engine.engine import ProgressEngine
from progress_engine.metrics import average_daily_study_time, completion_rate
from progress_engine.types import ProgressAggregate


def build_engine(session_factory=SessionLocal, streak_timezone: str = settings.streak_timezone) -> ProgressEngine:
    return ProgressEngine(store=SqlProgressStore(session_factory), streak_timezone=streak_timezone)


@lru_cache(maxsize=1)
def get_engine() -> ProgressEngine:
    """FastAPI dependency. One engine per process so per-user locks are shared."""
    return build_engine()


def progress_payload(engine: ProgressEngine, aggregate: ProgressAggregate) -> Dict[str, Any]:
    """Aggregate document plus the read-time projections (never persisted)."""
    data = aggregate.to_dict()
    data["completion_rate"] = completion_rate(aggregate.overall_metrics)
    data["average_daily_study_time"] = average_daily_study_time(
        aggregate.overall_metrics, aggregate.created_at, engine.clock(), engine.streak.tz
    )
    return data
