"""Database management for BlogDB.

This module provides:
- Engine creation with a pooled set of connections
- SQLite tuning (foreign keys, WAL mode, busy timeout, Unicode-aware
  lower()) on every connection
- Schema and index creation
- Transactional units of work with retry on transient storage errors

Example:
    >>> from blogdb.database import DatabaseManager
    >>>
    >>> db = DatabaseManager()
    >>> db.initialize()
    >>>
    >>> with db.transaction() as session:
    ...     session.add(TagRow(name="python"))
    >>>
    >>> count = db.run_in_transaction(lambda s: len(s.exec(select(TagRow)).all()))
    >>>
    >>> db.close()
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from sqlalchemy import event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from blogdb import models  # noqa: F401  (registers tables on SQLModel.metadata)
from blogdb.config import settings
from blogdb.logging import logger

R = TypeVar("R")

# Composite indexes backing the listing, bookmark and comment queries
INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_posts_status_created "
    "ON posts (status, created_at DESC, uid DESC)",
    "CREATE INDEX IF NOT EXISTS idx_posts_author_created "
    "ON posts (author_uid, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_bookmarks_user_created "
    "ON bookmarks (user_uid, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_comments_post_created "
    "ON comments (post_uid, created_at)",
)


def _log_retry(retry_state: RetryCallState) -> None:
    """Log a transient failure before tenacity sleeps."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"⚠️ Transient storage error (attempt {retry_state.attempt_number}), "
        f"retrying: {exc}"
    )


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class DatabaseManager:
    """Manages the SQLAlchemy engine and transactional sessions.

    Each unit of work gets its own short-lived ``Session`` drawn from the
    engine's connection pool; nothing is shared between calls except the
    pool itself.

    Args:
        database_url: SQLAlchemy URL (defaults to settings.sqlalchemy_url)
        retry_attempts: Attempts per transaction on transient errors
            (defaults to settings.db_retry_attempts)
    """

    def __init__(
        self,
        database_url: str | None = None,
        retry_attempts: int | None = None,
    ):
        self.database_url = database_url or settings.sqlalchemy_url
        self.retry_attempts = retry_attempts or settings.db_retry_attempts
        self.engine: Engine | None = None

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    @property
    def is_memory(self) -> bool:
        database = make_url(self.database_url).database
        return self.is_sqlite and database in (None, "", ":memory:")

    @property
    def dialect_name(self) -> str:
        """Dialect of the live engine (e.g. ``sqlite``, ``postgresql``)."""
        if self.engine is None:
            raise RuntimeError("Database not initialized")
        return self.engine.dialect.name

    def initialize(self) -> None:
        """Create the engine, the tables and the indexes.

        Safe to call on an existing database: tables and indexes are only
        created when missing.
        """
        kwargs: dict[str, Any] = {"echo": settings.db_echo, "pool_pre_ping": True}

        if self.is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False}
            if self.is_memory:
                # One shared connection, otherwise each checkout sees an empty database
                kwargs["poolclass"] = StaticPool
            else:
                database = make_url(self.database_url).database
                Path(database).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(self.database_url, **kwargs)

        if self.is_sqlite:
            event.listen(self.engine, "connect", self._configure_sqlite_connection)

        self.create_schema()

        logger.info(f"✅ Database initialized at {self.engine.url.render_as_string()}")

    def _configure_sqlite_connection(self, dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.execute(f"PRAGMA busy_timeout = {int(settings.db_busy_timeout_ms)}")
        if not self.is_memory:
            cursor.execute("PRAGMA journal_mode = WAL")
            cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.close()
        # Built-in lower() folds ASCII only; ilike() compiles to lower(x) LIKE lower(y)
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    def create_schema(self) -> None:
        """Create missing tables and indexes."""
        if self.engine is None:
            raise RuntimeError("Database not initialized")
        SQLModel.metadata.create_all(self.engine)
        self.create_indexes()

    def drop_schema(self) -> None:
        """Drop every BlogDB table, losing all data."""
        if self.engine is None:
            raise RuntimeError("Database not initialized")
        SQLModel.metadata.drop_all(self.engine)
        logger.warning("⚠️ All BlogDB tables dropped")

    def create_indexes(self) -> None:
        """Create composite indexes for the listing queries."""
        if self.engine is None:
            raise RuntimeError("Database not initialized")

        with self.engine.begin() as conn:
            for statement in INDEX_STATEMENTS:
                conn.execute(text(statement))

        logger.debug("✅ Database indexes created")

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a session whose work commits on success and rolls back on error.

        Objects stay readable after commit (``expire_on_commit=False``).
        """
        if self.engine is None:
            raise RuntimeError("Database not initialized")

        session = Session(self.engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def run_in_transaction(self, work: Callable[[Session], R]) -> R:
        """Run ``work`` in one transaction, retrying transient failures.

        ``OperationalError`` (e.g. SQLite "database is locked", dropped
        connections) restarts the whole unit of work with exponential
        backoff. Any other exception propagates on the first attempt.

        Args:
            work: Callable receiving the session; its return value is returned

        Returns:
            Whatever ``work`` returns, after a successful commit
        """
        for attempt in Retrying(
            reraise=True,
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.05, min=0.05, max=1.0),
            retry=retry_if_exception_type(OperationalError),
            before_sleep=_log_retry,
        ):
            with attempt:
                with self.transaction() as session:
                    return work(session)
        raise RuntimeError("unreachable")  # pragma: no cover


__all__ = ["DatabaseManager", "INDEX_STATEMENTS"]
