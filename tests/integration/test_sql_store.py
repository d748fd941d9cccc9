"""
SqlProgressStore against an in-memory SQLite database.
"""
import pytest
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from progress_api.models.models import UserProgressRecord
from progress_api.services.progress_store import SqlProgressStore
from progress_engine.engine import ProgressEngine
from progress_engine.errors import Conflict, NotFound, StoreUnavailable
from progress_engine.types import ProgressAggregate, ProgressStatus


@pytest.mark.integration
class TestSqlProgressStore:
    def test_load_missing(self, sql_store):
        with pytest.raises(NotFound):
            sql_store.load("nobody")

    def test_insert_then_update(self, sql_store, session_factory):
        agg = ProgressAggregate(user_id="u1")
        assert sql_store.save(agg) == 1
        agg.badges.append("First Steps")
        assert sql_store.save(agg) == 2

        loaded = sql_store.load("u1")
        assert loaded.version == 2
        assert loaded.badges == ["First Steps"]

        db = session_factory()
        try:
            row = db.query(UserProgressRecord).filter(UserProgressRecord.user_id == "u1").one()
            assert row.version == 2
            assert row.data["version"] == 2
        finally:
            db.close()

    def test_stale_writer_gets_conflict(self, sql_store):
        sql_store.save(ProgressAggregate(user_id="u1"))
        a = sql_store.load("u1")
        b = sql_store.load("u1")
        sql_store.save(a)
        with pytest.raises(Conflict) as exc_info:
            sql_store.save(b)
        assert exc_info.value.context["actual_version"] == 2
        assert sql_store.load("u1").version == 2

    def test_concurrent_create_conflicts(self, sql_store):
        sql_store.save(ProgressAggregate(user_id="u1"))
        with pytest.raises(Conflict):
            sql_store.save(ProgressAggregate(user_id="u1"))

    def test_delete(self, sql_store):
        sql_store.save(ProgressAggregate(user_id="u1"))
        sql_store.delete("u1")
        with pytest.raises(NotFound):
            sql_store.load("u1")
        with pytest.raises(NotFound):
            sql_store.delete("u1")

    def test_engine_round_trip(self, sql_store, clock):
        engine = ProgressEngine(store=sql_store, clock=clock)
        engine.start_lesson("u1", "l1")
        engine.complete_lesson("u1", "l1", 82.5, 12)
        agg = engine.get_progress("u1")
        assert agg.get_lesson("l1").status == ProgressStatus.MASTERED
        assert agg.overall_metrics.average_score == 83
        assert agg.overall_metrics.last_study_date == clock.now.date()
        assert agg.get_lesson("l1").completed_at == clock.now


@pytest.mark.integration
class TestSqlProgressStoreUnavailable:
    def test_load_maps_operational_error(self, unreachable_session_factory):
        store = SqlProgressStore(unreachable_session_factory)
        with pytest.raises(StoreUnavailable) as exc_info:
            store.load("u1")
        assert exc_info.value.retryable is True
        assert exc_info.value.kind == "store_unavailable"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_save_maps_operational_error(self, unreachable_session_factory):
        store = SqlProgressStore(unreachable_session_factory)
        agg = ProgressAggregate(user_id="u1")
        with pytest.raises(StoreUnavailable):
            store.save(agg)
        assert agg.version == 0

    def test_update_maps_pool_timeout(self):
        store = SqlProgressStore(lambda: _TimeoutSession())
        with pytest.raises(StoreUnavailable):
            store.save(ProgressAggregate(user_id="u1", version=3))

    def test_delete_maps_operational_error(self, unreachable_session_factory):
        store = SqlProgressStore(unreachable_session_factory)
        with pytest.raises(StoreUnavailable):
            store.delete("u1")


class _TimeoutSession:
    def execute(self, *args, **kwargs):
        raise PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached")

    def rollback(self):
        pass

    def close(self):
        pass
