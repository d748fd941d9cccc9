from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from typing import Dict

from progress_engine.errors import Conflict, NotFound
from progress_engine.types import ProgressAggregate, utcnow


class ProgressStore(ABC):
    """
    Persistence contract for progress aggregates, one record per user.

    `save` is atomic per user and uses optimistic versioning: it only succeeds
    when the stored version equals `aggregate.version`, and bumps the version
    on success. A mismatch raises `Conflict`; transient I/O failures raise
    `StoreUnavailable`. Implementations never retry.
    """

    @abstractmethod
    def load(self, user_id: str) -> ProgressAggregate:
        """Return a private copy of the user's aggregate or raise NotFound."""
        raise NotImplementedError

    @abstractmethod
    def save(self, aggregate: ProgressAggregate) -> int:
        """Persist `aggregate`, returning the new version."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, user_id: str) -> None:
        raise NotImplementedError


class InMemoryProgressStore(ProgressStore):
    """Dict-backed store. Hands out deep copies so callers never share state."""

    def __init__(self):
        self._records: Dict[str, ProgressAggregate] = {}
        self._lock = threading.Lock()

    def load(self, user_id: str) -> ProgressAggregate:
        with self._lock:
            stored = self._records.get(user_id)
            if stored is None:
                raise NotFound(f"No progress for user {user_id}", user_id=user_id)
            return copy.deepcopy(stored)

    def save(self, aggregate: ProgressAggregate) -> int:
        with self._lock:
            stored = self._records.get(aggregate.user_id)
            current = stored.version if stored is not None else 0
            if current != aggregate.version:
                raise Conflict(aggregate.user_id, aggregate.version, current)
            aggregate.version = current + 1
            aggregate.last_sync_at = utcnow()
            self._records[aggregate.user_id] = copy.deepcopy(aggregate)
            return aggregate.version

    def delete(self, user_id: str) -> None:
        with self._lock:
            if self._records.pop(user_id, None) is None:
                raise NotFound(f"No progress for user {user_id}", user_id=user_id)
