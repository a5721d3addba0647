"""Protocol interfaces for dependency injection.

``@runtime_checkable`` Protocols let callers (an HTTP layer, the CLI, tests)
depend on the shape of the engine and the database manager rather than the
concrete classes, and substitute fakes without inheritance.

Example:
    >>> from blogdb.interfaces import IPostEngine
    >>> from blogdb.engine import PostEngine
    >>> isinstance(PostEngine(db), IPostEngine)
    True
"""

from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy.engine import Engine
from sqlmodel import Session

from blogdb.models import BookmarkResult, ClapResult, PostListItem

R = TypeVar("R")


@runtime_checkable
class IDatabaseManager(Protocol):
    """Database lifecycle and transactional units of work.

    Implementations own a pooled engine and hand out short-lived sessions;
    the engine never holds a session across operations.
    """

    database_url: str
    engine: Engine | None

    def initialize(self) -> None:
        """Create the engine and schema. Idempotent."""
        ...

    def close(self) -> None:
        """Dispose of pooled connections."""
        ...

    def transaction(self) -> AbstractContextManager[Session]:
        """Session that commits on success and rolls back on error."""
        ...

    def run_in_transaction(self, work: Callable[[Session], R]) -> R:
        """Run ``work`` in one transaction, retrying transient failures."""
        ...


@runtime_checkable
class IPostEngine(Protocol):
    """Post query, tagging and engagement operations.

    This is the surface an HTTP layer maps to routes. Every method raises
    :class:`blogdb.errors.BlogDBError` subclasses only.
    """

    def list_posts(
        self,
        search: str | None = None,
        tag: str | None = None,
        page: Any = 1,
        limit: Any = None,
        author_uid: str | None = None,
    ) -> list[PostListItem]:
        """Ordered page of published posts with author summary and tags."""
        ...

    def set_post_tags(
        self,
        post_uid: str,
        tag_uids: Sequence[str] | None = None,
        actor: Any = None,
    ) -> list[str]:
        """Replace the post's tag set; ``None`` leaves it unchanged."""
        ...

    def add_clap(self, user_uid: str, post_uid: str, increment: int = 1) -> ClapResult:
        """Accumulate claps of a user on a post."""
        ...

    def add_bookmark(self, user_uid: str, post_uid: str) -> BookmarkResult:
        """Idempotently bookmark a post."""
        ...

    def remove_bookmark(self, user_uid: str, post_uid: str) -> BookmarkResult:
        """Idempotently remove a bookmark."""
        ...


__all__ = ["IDatabaseManager", "IPostEngine"]
