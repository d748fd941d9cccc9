"""
SQLAlchemy-backed ProgressStore.

The aggregate is stored as one JSON document per user. Saves are guarded by a
conditional UPDATE on the version column, so two writers that loaded the same
version cannot both win: the second one gets `Conflict` instead of silently
overwriting the first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from progress_api.models.models import UserProgressRecord
from progress_api.utils.logger import configure_logging
from progress_engine.errors import Conflict, NotFound, StoreUnavailable
from progress_engine.store import ProgressStore
from progress_engine.types import ProgressAggregate

logger = configure_logging()

TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError)


class SqlProgressStore(ProgressStore):
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def load(self, user_id: str) -> ProgressAggregate:
        db = self.session_factory()
        try:
            row = db.query(UserProgressRecord).filter(UserProgressRecord.user_id == user_id).first()
            if row is None:
                raise NotFound(f"No progress for user {user_id}", user_id=user_id)
            aggregate = ProgressAggregate.from_dict(dict(row.data))
            aggregate.version = int(row.version)
            return aggregate
        except TRANSIENT_ERRORS as e:
            logger.warning("progress load failed user=%s error=%s", user_id, e)
            raise StoreUnavailable(f"Progress store unavailable: {e}", user_id=user_id) from e
        finally:
            db.close()

    def save(self, aggregate: ProgressAggregate) -> int:
        now = datetime.now(timezone.utc)
        expected = aggregate.version
        new_version = expected + 1
        payload = aggregate.to_dict()
        payload["version"] = new_version
        payload["last_sync_at"] = now.isoformat()

        db = self.session_factory()
        try:
            if expected == 0:
                db.add(
                    UserProgressRecord(
                        user_id=aggregate.user_id,
                        version=new_version,
                        data=payload,
                        is_active=aggregate.is_active,
                        created_at=aggregate.created_at,
                        updated_at=aggregate.updated_at,
                        last_sync_at=now,
                    )
                )
                db.commit()
            else:
                result = db.execute(
                    update(UserProgressRecord)
                    .where(
                        UserProgressRecord.user_id == aggregate.user_id,
                        UserProgressRecord.version == expected,
                    )
                    .values(
                        version=new_version,
                        data=payload,
                        is_active=aggregate.is_active,
                        updated_at=aggregate.updated_at,
                        last_sync_at=now,
                    )
                )
                if result.rowcount != 1:
                    db.rollback()
                    actual = (
                        db.query(UserProgressRecord.version)
                        .filter(UserProgressRecord.user_id == aggregate.user_id)
                        .scalar()
                    )
                    logger.warning(
                        "progress save conflict user=%s expected=%s actual=%s",
                        aggregate.user_id, expected, actual,
                    )
                    raise Conflict(aggregate.user_id, expected, actual)
                db.commit()
        except IntegrityError as e:
            # a concurrent first save created the row
            db.rollback()
            logger.warning("progress create conflict user=%s", aggregate.user_id)
            raise Conflict(aggregate.user_id, expected) from e
        except TRANSIENT_ERRORS as e:
            db.rollback()
            logger.warning("progress save failed user=%s error=%s", aggregate.user_id, e)
            raise StoreUnavailable(f"Progress store unavailable: {e}", user_id=aggregate.user_id) from e
        finally:
            db.close()

        aggregate.version = new_version
        aggregate.last_sync_at = now
        return new_version

    def delete(self, user_id: str) -> None:
        db = self.session_factory()
        try:
            deleted = db.query(UserProgressRecord).filter(UserProgressRecord.user_id == user_id).delete()
            if not deleted:
                db.rollback()
                raise NotFound(f"No progress for user {user_id}", user_id=user_id)
            db.commit()
        except TRANSIENT_ERRORS as e:
            db.rollback()
            raise StoreUnavailable(f"Progress store unavailable: {e}", user_id=user_id) from e
        finally:
            db.close()
