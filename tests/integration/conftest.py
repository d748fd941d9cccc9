"""
Integration test fixtures. Overrides get_engine for API tests with in-memory DB.
"""
import pytest


@pytest.fixture
def sql_store(session_factory):
    from progress_api.services.progress_store import SqlProgressStore
    return SqlProgressStore(session_factory)


@pytest.fixture
def api_client(session_factory):
    """FastAPI TestClient with the engine bound to an in-memory DB."""
    from fastapi.testclient import TestClient
    from progress_api.api import app
    from progress_api.services.progress_service import build_engine, get_engine
    test_engine = build_engine(session_factory=session_factory, streak_timezone="UTC")
    app.dependency_overrides[get_engine] = lambda: test_engine
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    return {"X-User-Id": "learner-42"}


class _UnreachableSession:
    """Session whose every DB call fails the way a dropped connection does."""

    def __init__(self, error):
        self.error = error

    def _fail(self, *args, **kwargs):
        raise self.error

    query = execute = add = commit = _fail

    def rollback(self):
        pass

    def close(self):
        pass


@pytest.fixture
def operational_error():
    from sqlalchemy.exc import OperationalError
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


@pytest.fixture
def unreachable_session_factory(operational_error):
    return lambda: _UnreachableSession(operational_error)


@pytest.fixture
def unreachable_api_client(unreachable_session_factory):
    """TestClient whose engine sits on a database that cannot be reached."""
    from fastapi.testclient import TestClient
    from progress_api.api import app
    from progress_api.services.progress_service import build_engine, get_engine
    test_engine = build_engine(session_factory=unreachable_session_factory, streak_timezone="UTC")
    app.dependency_overrides[get_engine] = lambda: test_engine
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
