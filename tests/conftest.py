"""Pytest configuration and shared fixtures for BlogDB tests."""

import sys
from collections.abc import Callable, Generator, Sequence
from pathlib import Path

import pytest
from loguru import logger

from blogdb.config import TagPolicy
from blogdb.database import DatabaseManager
from blogdb.engine import PostEngine
from blogdb.logging import clear_request_context
from blogdb.models import Actor, PostRow, PostStatus, PostTagLink

# Base timestamp for posts inserted with explicit creation times
T0 = 1_700_000_000


# =============================================================================
# Test Configuration
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_loguru():
    """Reset loguru handlers before each test to prevent I/O errors."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
    )
    yield
    logger.remove()
    clear_request_context()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a per-test SQLite database file."""
    return tmp_path / "blog.db"


@pytest.fixture
def db(db_path: Path) -> Generator[DatabaseManager, None, None]:
    """Initialized database manager on a temporary SQLite file."""
    manager = DatabaseManager(f"sqlite:///{db_path}")
    manager.initialize()

    yield manager

    manager.close()


@pytest.fixture
def engine(db: DatabaseManager) -> PostEngine:
    """Engine with the lenient tag policy and default paging."""
    return PostEngine(
        db,
        tag_policy=TagPolicy.ACCEPT,
        default_page_size=10,
        max_page_limit=100,
        max_clap_increment=1000,
    )


@pytest.fixture
def strict_engine(db: DatabaseManager) -> PostEngine:
    """Engine that rejects unknown tag ids."""
    return PostEngine(db, tag_policy=TagPolicy.REJECT, default_page_size=10, max_page_limit=100)


# =============================================================================
# Seed Data Fixtures
# =============================================================================


@pytest.fixture
def users(engine: PostEngine) -> dict[str, str]:
    """Seed an author, a reader and an admin."""
    engine.create_user("Alice Author", "alice@example.com", uid="alice", profile_image="https://img/alice.png")
    engine.create_user("Bob Reader", "bob@example.com", uid="bob", bio="Reads a lot")
    engine.create_user("Ada Admin", "admin@example.com", uid="admin", is_admin=True)
    return {"alice": "alice", "bob": "bob", "admin": "admin"}


@pytest.fixture
def tags(engine: PostEngine) -> dict[str, str]:
    """Seed three tags with readable ids."""
    for name in ("python", "sql", "rust"):
        engine.create_tag(name, uid=f"t-{name}")
    return {"python": "t-python", "sql": "t-sql", "rust": "t-rust"}


@pytest.fixture
def alice() -> Actor:
    return Actor(user_id="alice")


@pytest.fixture
def bob() -> Actor:
    return Actor(user_id="bob")


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin", is_admin=True)


@pytest.fixture
def make_post(db: DatabaseManager, users: dict[str, str]) -> Callable[..., str]:
    """Insert a post row directly, with a controlled creation time.

    Returns:
        Factory ``make_post(uid, title=..., content=..., author_uid=...,
        status=..., created_at=..., tags=[...]) -> uid``
    """

    def _make(
        uid: str,
        *,
        title: str | None = None,
        content: str = "Body text",
        author_uid: str = "alice",
        status: PostStatus = PostStatus.PUBLISHED,
        created_at: int = T0,
        tags: Sequence[str] = (),
    ) -> str:
        with db.transaction() as session:
            session.add(
                PostRow(
                    uid=uid,
                    title=title or f"Post {uid}",
                    content=content,
                    author_uid=author_uid,
                    status=status.value,
                    created_at=created_at,
                    updated_at=created_at,
                )
            )
            session.flush()
            for tag_uid in tags:
                session.add(PostTagLink(post_uid=uid, tag_uid=tag_uid))
        return uid

    return _make
