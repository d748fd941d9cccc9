"""
Unit test fixtures. Pure engine objects; no DB.
"""
from datetime import datetime, timezone

import pytest

from progress_engine.gamification import GamificationLedger
from progress_engine.streak import StreakCalculator
from progress_engine.types import ProgressAggregate


@pytest.fixture
def now():
    return datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def aggregate(now):
    return ProgressAggregate(user_id="user-1", created_at=now, updated_at=now)


@pytest.fixture
def streak():
    return StreakCalculator("UTC")


@pytest.fixture
def ledger():
    return GamificationLedger()
