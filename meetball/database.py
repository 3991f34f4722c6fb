import logging
import sqlite3
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from meetball.config.loader import get_database_url, get_sqlite_settings

logger = logging.getLogger("meetball.database")

T = TypeVar("T")

DATABASE_URL = get_database_url()
IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _prepare_sqlite_file(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    database = make_url(database_url).database
    if not database or database == ":memory:":
        return
    path = Path(database)
    if not path.is_absolute():
        path = Path.cwd() / path
    path.parent.mkdir(parents=True, exist_ok=True)


def _build_engine(database_url: str, sqlite_settings: Optional[Dict[str, Any]]) -> Engine:
    connect_args: Dict[str, Any] = {}
    if sqlite_settings is not None:
        _prepare_sqlite_file(database_url)
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = max(1, sqlite_settings["busy_timeout_ms"] / 1000)
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


_sqlite_settings = get_sqlite_settings() if IS_SQLITE else None
engine = _build_engine(DATABASE_URL, _sqlite_settings)


def _is_locked(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return "database is locked" in message or "database table is locked" in message


if _sqlite_settings is not None:
    # One writer at a time inside this process; SQLite handles other processes.
    _WRITE_LOCK = threading.RLock()

    @event.listens_for(engine, "connect")
    def _apply_sqlite_pragmas(dbapi_connection, _connection_record) -> None:
        if not isinstance(dbapi_connection, sqlite3.Connection):
            return
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"PRAGMA journal_mode={_sqlite_settings['journal_mode']}")
            cursor.execute(f"PRAGMA synchronous={_sqlite_settings['synchronous']}")
            cursor.execute(f"PRAGMA busy_timeout={_sqlite_settings['busy_timeout_ms']}")
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    class SerializedWriteSession(Session):
        """Session whose commits take the process write lock and retry on lock errors."""

        def _with_retry(self, operation: Callable[[], T]) -> T:
            attempts = max(1, _sqlite_settings["write_retries"])
            delay = max(1, _sqlite_settings["retry_backoff_ms"]) / 1000
            attempt = 1
            while True:
                try:
                    return operation()
                except OperationalError as exc:
                    if not _is_locked(exc) or attempt >= attempts:
                        raise
                    super().rollback()
                    logger.warning(
                        "SQLite busy on commit, retry %s of %s", attempt, attempts - 1
                    )
                    time.sleep(delay * attempt)
                    attempt += 1

        def commit(self) -> None:
            with _WRITE_LOCK:
                self._with_retry(super().commit)

        def flush(self, objects=None) -> None:
            with _WRITE_LOCK:
                super().flush(objects)

    _session_class = SerializedWriteSession
else:
    _session_class = Session


SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, class_=_session_class
)

Base = declarative_base()


def get_db():
    """FastAPI dependency yielding one session per request."""
    request_id = uuid.uuid4().hex[:8]
    db = SessionLocal()
    logger.debug("[%s] session opened", request_id)
    try:
        yield db
    finally:
        db.close()
        logger.debug("[%s] session closed", request_id)
