import os
import tempfile

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Must be set before meetball.database builds its engine on import.
os.environ.setdefault("MEETBALL_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MEETBALL_LOG_DIR", tempfile.mkdtemp(prefix="meetball-logs-"))

from meetball.database import Base, get_db  # noqa: E402
from meetball.main import app  # noqa: E402
import meetball.models  # noqa: E402,F401


def _memory_engine() -> Engine:
    # StaticPool keeps one connection so every thread sees the same database.
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


shared_engine = _memory_engine()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def schema():
    Base.metadata.create_all(bind=shared_engine)
    yield
    Base.metadata.drop_all(bind=shared_engine)


@pytest.fixture
def db_session(schema):
    """
    Session inside an outer transaction that is rolled back after the test.
    The app's ``get_db`` dependency is pointed at it for the duration.
    """
    connection = shared_engine.connect()
    outer = connection.begin()
    db = sessionmaker(autocommit=False, autoflush=False)(bind=connection)

    previous = app.dependency_overrides.get(get_db)
    app.dependency_overrides[get_db] = lambda: db
    try:
        yield db
    finally:
        db.close()
        outer.rollback()
        connection.close()
        if previous is None:
            app.dependency_overrides.pop(get_db, None)
        else:
            app.dependency_overrides[get_db] = previous


@pytest.fixture
def client(db_session):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def isolated_session_factory():
    """Own database for adapters that open a session per call."""
    engine = _memory_engine()
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()
