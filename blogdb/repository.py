"""Generic repository pattern for type-safe entity access.

This module provides a Generic ``Repository[T]`` for SQLModel entities bound
to a session that is owned by the caller's unit of work
(:meth:`blogdb.database.DatabaseManager.transaction`). Repositories
``flush`` rather than ``commit``, so everything done inside one transaction
commits or rolls back together.

Reference:
    - Repository Pattern: https://martinfowler.com/eaaCatalog/repository.html

Example:
    >>> with db.transaction() as session:
    ...     repos = RepositoryFactory(session)
    ...     tags = repos.for_entity(TagRow)
    ...     python = tags.add(TagRow(name="python"))
    ...     assert tags.get(python.uid) is python
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from blogdb.errors import NotFoundError

# =============================================================================
# Type Variables
# =============================================================================

T = TypeVar("T", bound=SQLModel)


# =============================================================================
# Generic Repository
# =============================================================================


class Repository(Generic[T]):
    """Session-bound repository for one SQLModel entity.

    Type Parameter:
        T: SQLModel table type (PostRow, TagRow, CommentRow, ...)

    Args:
        session: Session of the enclosing transaction
        model: SQLModel class
        entity_name: Name used in ``NotFoundError`` messages
            (defaults to the table name without a trailing "s")
    """

    def __init__(self, session: Session, model: type[T], entity_name: str | None = None):
        self.session = session
        self.model = model
        self.entity_name = entity_name or str(model.__tablename__).rstrip("s")

    def get(self, entity_id: Any) -> T | None:
        """Get entity by primary key, or None."""
        return self.session.get(self.model, entity_id)

    def require(self, entity_id: Any) -> T:
        """Get entity by primary key.

        Raises:
            NotFoundError: If no row has this key
        """
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, str(entity_id))
        return entity

    def exists(self, entity_id: Any) -> bool:
        return self.get(entity_id) is not None

    def find_by(
        self,
        *order_by: Any,
        limit: int | None = None,
        offset: int = 0,
        **filters: Any,
    ) -> Sequence[T]:
        """List entities matching equality filters.

        Args:
            *order_by: Column expressions to sort by
            limit: Maximum number of results (None for all)
            offset: Number of results to skip
            **filters: attribute=value equality filters

        Example:
            >>> comments.find_by(CommentRow.created_at, post_uid="p1")
        """
        stmt = select(self.model)
        for key, value in filters.items():
            if not hasattr(self.model, key):
                raise AttributeError(f"{self.model.__name__} has no attribute {key!r}")
            stmt = stmt.where(getattr(self.model, key) == value)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        return self.session.exec(stmt).all()

    def find_one(self, **filters: Any) -> T | None:
        """First entity matching equality filters, or None."""
        found = self.find_by(limit=1, **filters)
        return found[0] if found else None

    def count(self) -> int:
        """Count all rows of the entity."""
        stmt = select(func.count()).select_from(self.model)
        return self.session.exec(stmt).one()

    def add(self, entity: T) -> T:
        """Stage a new entity and flush so database defaults are visible."""
        self.session.add(entity)
        self.session.flush()
        self.session.refresh(entity)
        return entity

    def save(self, entity: T) -> T:
        """Flush changes made to a loaded entity."""
        self.session.add(entity)
        self.session.flush()
        return entity

    def remove(self, entity: T) -> None:
        """Delete a loaded entity."""
        self.session.delete(entity)
        self.session.flush()


# =============================================================================
# Repository Factory Helper
# =============================================================================


class RepositoryFactory:
    """Creates repositories sharing one session.

    Example:
        >>> repos = RepositoryFactory(session)
        >>> posts = repos.for_entity(PostRow)
        >>> users = repos.for_entity(UserRow, "user")
    """

    def __init__(self, session: Session):
        self.session = session

    def for_entity(self, model: type[T], entity_name: str | None = None) -> Repository[T]:
        return Repository(self.session, model, entity_name)


__all__ = ["Repository", "RepositoryFactory"]
