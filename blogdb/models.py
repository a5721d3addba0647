"""Data models for BlogDB.

This module defines both SQLModel ORM tables (for persistence) and Pydantic
models (for validated engine input and shaped engine output).

Models are organized into three sections:
1. SQLModel tables for entities
2. Association tables keyed by composite primary keys
3. Pydantic models for engine input/output
"""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from sqlmodel import Field, SQLModel

from blogdb.utils import dedupe, new_uid, unix_now


class PostStatus(StrEnum):
    """Visibility state of a post."""

    DRAFT = "draft"
    PUBLISHED = "published"


class ReportType(StrEnum):
    """Kinds of content that can be reported for moderation."""

    POST = "post"
    COMMENT = "comment"


# =============================================================================
# Section 1: SQLModel Tables
# =============================================================================


class UserRow(SQLModel, table=True):
    """Persisted user account.

    Users are created by the authentication collaborator; the engine reads
    them for author display fields and existence checks.

    Attributes:
        uid: User ID (primary key)
        name: Display name
        email: Unique email address
        profile_image: Avatar URL
        bio: Short biography
        is_admin: Moderation rights over all content
        created_at: Unix seconds
    """

    __tablename__ = "users"  # type: ignore[assignment]

    uid: str = Field(default_factory=new_uid, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    is_admin: bool = False
    created_at: int = Field(default_factory=unix_now)


class PostRow(SQLModel, table=True):
    """Persisted blog post.

    Attributes:
        uid: Post ID (primary key)
        title: Title
        content: Rich text / HTML body
        author_uid: FK to UserRow.uid (indexed)
        status: ``draft`` or ``published`` (indexed)
        featured_image: Optional header image URL
        created_at: Unix seconds (indexed, listing sort key)
        updated_at: Unix seconds
    """

    __tablename__ = "posts"  # type: ignore[assignment]

    uid: str = Field(default_factory=new_uid, primary_key=True)
    title: str
    content: str
    author_uid: str = Field(foreign_key="users.uid", index=True)
    status: str = Field(default=PostStatus.DRAFT.value, index=True)
    featured_image: Optional[str] = None
    created_at: int = Field(default_factory=unix_now, index=True)
    updated_at: int = Field(default_factory=unix_now)


class TagRow(SQLModel, table=True):
    """Named label shared by many posts.

    Attributes:
        uid: Tag ID (primary key)
        name: Unique display name
    """

    __tablename__ = "tags"  # type: ignore[assignment]

    uid: str = Field(default_factory=new_uid, primary_key=True)
    name: str = Field(unique=True, index=True)


class CommentRow(SQLModel, table=True):
    """Comment on a post, optionally replying to another comment.

    Attributes:
        uid: Comment ID (primary key)
        post_uid: FK to PostRow.uid (indexed)
        user_uid: FK to UserRow.uid (comment author)
        content: Body text
        parent_comment_uid: Comment being replied to, if threaded
        created_at: Unix seconds
        updated_at: Unix seconds
    """

    __tablename__ = "comments"  # type: ignore[assignment]

    uid: str = Field(default_factory=new_uid, primary_key=True)
    post_uid: str = Field(foreign_key="posts.uid", index=True)
    user_uid: str = Field(foreign_key="users.uid")
    content: str
    parent_comment_uid: Optional[str] = Field(default=None, index=True)
    created_at: int = Field(default_factory=unix_now)
    updated_at: int = Field(default_factory=unix_now)


class ReportRow(SQLModel, table=True):
    """Moderation report against a post or a comment.

    Attributes:
        uid: Report ID (primary key)
        report_type: ``post`` or ``comment``
        object_uid: Reported post/comment ID
        reported_by_uid: FK to UserRow.uid of the reporter
        reason: Free-text reason
        created_at: Unix seconds
    """

    __tablename__ = "reports"  # type: ignore[assignment]

    uid: str = Field(default_factory=new_uid, primary_key=True)
    report_type: str
    object_uid: str = Field(index=True)
    reported_by_uid: str = Field(foreign_key="users.uid")
    reason: Optional[str] = None
    created_at: int = Field(default_factory=unix_now)


# =============================================================================
# Section 2: Association Tables
# =============================================================================


class PostTagLink(SQLModel, table=True):
    """Post ↔ Tag association.

    The composite primary key makes a (post, tag) pair unique. ``tag_uid``
    carries no foreign key so that the lenient tag policy can store links to
    tags that do not (yet) exist.
    """

    __tablename__ = "posts_tags"  # type: ignore[assignment]

    post_uid: str = Field(primary_key=True, foreign_key="posts.uid")
    tag_uid: str = Field(primary_key=True, index=True)


class ClapRow(SQLModel, table=True):
    """Accumulated claps of one user on one post.

    Attributes:
        user_uid: FK to UserRow.uid (composite PK)
        post_uid: FK to PostRow.uid (composite PK, indexed)
        clap_count: Running total, always >= 1
        updated_at: Unix seconds of the latest clap
    """

    __tablename__ = "claps"  # type: ignore[assignment]

    user_uid: str = Field(primary_key=True, foreign_key="users.uid")
    post_uid: str = Field(primary_key=True, foreign_key="posts.uid", index=True)
    clap_count: int = 1
    updated_at: int = Field(default_factory=unix_now)


class BookmarkRow(SQLModel, table=True):
    """Set membership of a post in a user's bookmarks."""

    __tablename__ = "bookmarks"  # type: ignore[assignment]

    user_uid: str = Field(primary_key=True, foreign_key="users.uid")
    post_uid: str = Field(primary_key=True, foreign_key="posts.uid", index=True)
    created_at: int = Field(default_factory=unix_now)


# =============================================================================
# Section 3: Pydantic Models for Engine Input/Output
# =============================================================================


class Actor(BaseModel):
    """Verified identity supplied by the authentication collaborator.

    The engine trusts this value and performs no verification of its own.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    is_admin: bool = False

    def can_modify(self, owner_uid: str) -> bool:
        """Owners and admins may modify a resource."""
        return self.is_admin or self.user_id == owner_uid


def _require_text(value: Optional[str], field: str) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError(f"{field} must not be blank")
    return value


class PostCreate(BaseModel):
    """Input for creating a post."""

    model_config = ConfigDict(extra="ignore")

    title: str
    content: str
    status: PostStatus = PostStatus.DRAFT
    featured_image: Optional[str] = None
    tags: list[str] = []

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v: str, info: ValidationInfo) -> str:
        return _require_text(v, info.field_name)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return dedupe(tag.strip() for tag in v if tag.strip())


class PostUpdate(BaseModel):
    """Partial update of a post.

    Fields left out (or None) keep their stored value. ``tags`` is special:
    a list, even an empty one, replaces the tag set; leaving it out leaves
    the tags untouched.
    """

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    content: Optional[str] = None
    status: Optional[PostStatus] = None
    featured_image: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _require_text(v, info.field_name)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return None
        return dedupe(tag.strip() for tag in v if tag.strip())

    @property
    def replaces_tags(self) -> bool:
        """True when the update carries an authoritative tag list."""
        return "tags" in self.model_fields_set and self.tags is not None


class AuthorSummary(BaseModel):
    """Minimal author display fields used in listings."""

    uid: str
    name: str
    profile_image: Optional[str] = None


class AuthorDetail(AuthorSummary):
    """Author fields shown on a single post."""

    email: Optional[str] = None
    bio: Optional[str] = None


class PostListItem(BaseModel):
    """A post as returned by listings."""

    uid: str
    title: str
    content: str
    author_uid: str
    status: PostStatus
    featured_image: Optional[str] = None
    created_at: int
    updated_at: int
    clap_count: int = 0
    tags: list[str] = []
    author: AuthorSummary


class PostDetail(PostListItem):
    """A single post with full author details."""

    author: AuthorDetail


class TagRead(BaseModel):
    """Tag as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    name: str


class ClapResult(BaseModel):
    """Outcome of a clap: the user's running total and the post's total."""

    user_uid: str
    post_uid: str
    clap_count: int
    post_total: int
    updated_at: int


class BookmarkResult(BaseModel):
    """Outcome of a bookmark add/remove.

    Attributes:
        bookmarked: Membership after the call
        changed: False when the call was an idempotent no-op
    """

    user_uid: str
    post_uid: str
    bookmarked: bool
    changed: bool


class CommentRead(BaseModel):
    """Comment as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    post_uid: str
    user_uid: str
    content: str
    parent_comment_uid: Optional[str] = None
    created_at: int
    updated_at: int


class ReportRead(BaseModel):
    """Report as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    report_type: ReportType
    object_uid: str
    reported_by_uid: str
    reason: Optional[str] = None
    created_at: int


__all__ = [
    "PostStatus",
    "ReportType",
    "UserRow",
    "PostRow",
    "TagRow",
    "CommentRow",
    "ReportRow",
    "PostTagLink",
    "ClapRow",
    "BookmarkRow",
    "Actor",
    "PostCreate",
    "PostUpdate",
    "AuthorSummary",
    "AuthorDetail",
    "PostListItem",
    "PostDetail",
    "TagRead",
    "ClapResult",
    "BookmarkResult",
    "CommentRead",
    "ReportRead",
]
