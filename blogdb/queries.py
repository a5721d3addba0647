"""Query composition for post listings, tag sets and engagement counters.

Statements here are pure builders (no I/O) except the ``fetch_*``/``apply_*``
helpers, which take the session of the caller's transaction.

Listing rows are ``(PostRow, author_name, author_profile_image, clap_count)``
tuples; :func:`fetch_tag_map` resolves the tags of a whole page in one
round trip.
"""

from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, col, select

from blogdb.models import (
    BookmarkRow,
    ClapRow,
    CommentRow,
    PostRow,
    PostStatus,
    PostTagLink,
    TagRow,
    UserRow,
)
from blogdb.utils import LIKE_ESCAPE, MAX_SQL_INTEGER, escape_like, unix_now

# Dialects with INSERT ... ON CONFLICT support
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def clap_total_column() -> Any:
    """Correlated ``SUM(clap_count)`` for the post in the outer query (0 if none)."""
    return (
        select(func.coalesce(func.sum(ClapRow.clap_count), 0))
        .where(ClapRow.post_uid == PostRow.uid)
        .correlate(PostRow)
        .scalar_subquery()
        .label("clap_count")
    )


def _post_with_author() -> Any:
    return select(
        PostRow,
        UserRow.name,
        UserRow.profile_image,
        clap_total_column(),
    ).join(UserRow, col(PostRow.author_uid) == col(UserRow.uid))


def build_post_listing(
    *,
    search: str | None = None,
    tag: str | None = None,
    author_uid: str | None = None,
    limit: int,
    offset: int,
) -> Any:
    """Build the published-post listing statement.

    Filters are ANDed:
    - ``search``: case-insensitive substring of title or content
    - ``tag``: at least one PostTag row links the post to this tag
    - ``author_uid``: posts written by this user

    Ordering is newest first with the post uid as tie-break, so pages of
    equal timestamps stay disjoint.
    """
    stmt = _post_with_author().where(col(PostRow.status) == PostStatus.PUBLISHED.value)

    if search:
        pattern = f"%{escape_like(search)}%"
        stmt = stmt.where(
            or_(
                col(PostRow.title).ilike(pattern, escape=LIKE_ESCAPE),
                col(PostRow.content).ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    if tag:
        tagged = select(PostTagLink.post_uid).where(col(PostTagLink.tag_uid) == tag)
        stmt = stmt.where(col(PostRow.uid).in_(tagged))

    if author_uid:
        stmt = stmt.where(col(PostRow.author_uid) == author_uid)

    return (
        stmt.order_by(col(PostRow.created_at).desc(), col(PostRow.uid).desc())
        .limit(limit)
        .offset(offset)
    )


def build_bookmark_listing(user_uid: str, *, limit: int, offset: int) -> Any:
    """Build the statement listing a user's bookmarked posts, newest bookmark first.

    Drafts only appear when the user wrote them.
    """
    return (
        _post_with_author()
        .join(BookmarkRow, col(BookmarkRow.post_uid) == col(PostRow.uid))
        .where(col(BookmarkRow.user_uid) == user_uid)
        .where(
            or_(
                col(PostRow.status) == PostStatus.PUBLISHED.value,
                col(PostRow.author_uid) == user_uid,
            )
        )
        .order_by(col(BookmarkRow.created_at).desc(), col(PostRow.uid).desc())
        .limit(limit)
        .offset(offset)
    )


def build_post_detail(post_uid: str) -> Any:
    """Build the statement for a single post with author fields and clap total."""
    return select(
        PostRow,
        UserRow,
        clap_total_column(),
    ).join(UserRow, col(PostRow.author_uid) == col(UserRow.uid)).where(
        col(PostRow.uid) == post_uid
    )


# =============================================================================
# Tag Sets
# =============================================================================


def fetch_tag_map(session: Session, post_uids: Sequence[str]) -> dict[str, list[str]]:
    """Resolve the tag uids of many posts in one query.

    Posts without tags are absent from the map.
    """
    if not post_uids:
        return {}

    stmt = (
        select(PostTagLink.post_uid, PostTagLink.tag_uid)
        .where(col(PostTagLink.post_uid).in_(list(post_uids)))
        .order_by(col(PostTagLink.post_uid), col(PostTagLink.tag_uid))
    )
    tag_map: dict[str, list[str]] = defaultdict(list)
    for post_uid, tag_uid in session.exec(stmt):
        tag_map[post_uid].append(tag_uid)
    return dict(tag_map)


def fetch_post_tags(session: Session, post_uid: str) -> list[str]:
    return fetch_tag_map(session, [post_uid]).get(post_uid, [])


def find_unknown_tags(session: Session, tag_uids: Sequence[str]) -> list[str]:
    """Return the given tag uids that match no Tag row, in input order."""
    if not tag_uids:
        return []
    stmt = select(TagRow.uid).where(col(TagRow.uid).in_(list(tag_uids)))
    known = set(session.exec(stmt).all())
    return [uid for uid in tag_uids if uid not in known]


def replace_post_tags(session: Session, post_uid: str, tag_uids: Sequence[str]) -> None:
    """Delete every PostTag row of the post, then link ``tag_uids``.

    Runs inside the caller's transaction, so readers never observe the
    intermediate empty set.
    """
    session.exec(delete(PostTagLink).where(col(PostTagLink.post_uid) == post_uid))  # type: ignore[call-overload]
    session.add_all(PostTagLink(post_uid=post_uid, tag_uid=tag_uid) for tag_uid in tag_uids)
    session.flush()


# =============================================================================
# Engagement
# =============================================================================


def _dialect_insert(session: Session, model: Any) -> Any:
    dialect = session.get_bind().dialect.name
    try:
        return _UPSERT_INSERTS[dialect](model)
    except KeyError:
        raise NotImplementedError(f"Upserts are not supported on {dialect!r}") from None


def apply_clap(
    session: Session, user_uid: str, post_uid: str, increment: int
) -> tuple[int, int] | None:
    """Add ``increment`` to the user's clap row in a single upsert.

    The update is skipped when the sum would not fit in a 64-bit integer.

    Returns:
        (user's new clap_count, updated_at), or None when the existing count
        is too large to take ``increment`` more
    """
    now = unix_now()
    insert = _dialect_insert(session, ClapRow)
    stmt = insert.values(
        user_uid=user_uid,
        post_uid=post_uid,
        clap_count=increment,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_uid", "post_uid"],
        set_={
            "clap_count": ClapRow.clap_count + stmt.excluded.clap_count,
            "updated_at": stmt.excluded.updated_at,
        },
        where=col(ClapRow.clap_count) <= MAX_SQL_INTEGER - stmt.excluded.clap_count,
    ).returning(ClapRow.clap_count, ClapRow.updated_at)
    row = session.exec(stmt).first()  # type: ignore[call-overload]
    if row is None:
        return None
    clap_count, updated_at = row
    return clap_count, updated_at


def fetch_clap_total(session: Session, post_uid: str) -> int:
    stmt = select(func.coalesce(func.sum(ClapRow.clap_count), 0)).where(
        col(ClapRow.post_uid) == post_uid
    )
    return int(session.exec(stmt).one())


def insert_bookmark(session: Session, user_uid: str, post_uid: str) -> bool:
    """Insert a bookmark unless it exists.

    Returns:
        True when a row was inserted, False when it already existed
    """
    insert = _dialect_insert(session, BookmarkRow)
    stmt = insert.values(
        user_uid=user_uid,
        post_uid=post_uid,
        created_at=unix_now(),
    ).on_conflict_do_nothing(index_elements=["user_uid", "post_uid"])
    result = session.exec(stmt)  # type: ignore[call-overload]
    return result.rowcount == 1


def delete_bookmark(session: Session, user_uid: str, post_uid: str) -> bool:
    """Delete a bookmark; returns whether a row existed."""
    stmt = delete(BookmarkRow).where(
        col(BookmarkRow.user_uid) == user_uid,
        col(BookmarkRow.post_uid) == post_uid,
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    return result.rowcount > 0


# =============================================================================
# Cascades
# =============================================================================

# Rows that reference a post and go away with it
POST_DEPENDENTS = (PostTagLink, ClapRow, BookmarkRow, CommentRow)


def purge_post_dependents(session: Session, post_uid: str) -> None:
    """Delete every tag link, clap, bookmark and comment of a post."""
    for model in POST_DEPENDENTS:
        session.exec(delete(model).where(col(model.post_uid) == post_uid))  # type: ignore[call-overload]


def collect_comment_thread(session: Session, comment_uid: str) -> list[str]:
    """Return ``comment_uid`` followed by the uids of all replies below it."""
    thread = [comment_uid]
    frontier = [comment_uid]
    while frontier:
        stmt = select(CommentRow.uid).where(col(CommentRow.parent_comment_uid).in_(frontier))
        frontier = [uid for uid in session.exec(stmt).all() if uid not in thread]
        thread.extend(frontier)
    return thread


__all__ = [
    "build_post_listing",
    "build_bookmark_listing",
    "build_post_detail",
    "clap_total_column",
    "fetch_tag_map",
    "fetch_post_tags",
    "find_unknown_tags",
    "replace_post_tags",
    "apply_clap",
    "fetch_clap_total",
    "insert_bookmark",
    "delete_bookmark",
    "POST_DEPENDENTS",
    "purge_post_dependents",
    "collect_comment_thread",
]
