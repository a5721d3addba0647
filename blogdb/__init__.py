"""BlogDB - post query, tagging and engagement engine for a blogging platform.

This package composes post listings (search, tag and author filters with
stable pagination), maintains post tag sets, and records claps and bookmarks
with atomic, idempotent writes on top of SQLModel/SQLAlchemy.

Example:
    >>> from blogdb import Actor, PostEngine
    >>>
    >>> engine = PostEngine()
    >>> author = Actor(user_id="u1")
    >>> post = engine.create_post(author, {"title": "Hi", "content": "...", "status": "published"})
    >>> engine.add_clap("u2", post.uid, increment=5).post_total
    5
    >>> engine.close()
"""

from blogdb.config import TagPolicy, settings
from blogdb.database import DatabaseManager
from blogdb.engine import PostEngine
from blogdb.errors import (
    AuthorizationError,
    BlogDBError,
    InputValidationError,
    NotFoundError,
    StorageError,
    UnknownTagsError,
)
from blogdb.models import (
    Actor,
    BookmarkResult,
    ClapResult,
    CommentRead,
    PostCreate,
    PostDetail,
    PostListItem,
    PostStatus,
    PostUpdate,
    ReportRead,
    ReportType,
    TagRead,
)

__version__ = "0.1.0"

__all__ = [
    # Main components
    "PostEngine",
    "DatabaseManager",
    # Configuration
    "settings",
    "TagPolicy",
    # Errors
    "BlogDBError",
    "InputValidationError",
    "NotFoundError",
    "UnknownTagsError",
    "AuthorizationError",
    "StorageError",
    # Pydantic models
    "Actor",
    "PostCreate",
    "PostUpdate",
    "PostStatus",
    "PostListItem",
    "PostDetail",
    "TagRead",
    "ClapResult",
    "BookmarkResult",
    "CommentRead",
    "ReportRead",
    "ReportType",
]
