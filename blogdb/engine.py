"""Post query, tagging and engagement engine for BlogDB.

``PostEngine`` is the single entry point an HTTP layer or the CLI talks to.
Every operation:
1. Validates its input (``InputValidationError`` before any storage access)
2. Runs as one transactional unit of work with retry on transient errors
3. Maps storage failures to ``StorageError`` after logging the detail
4. Records ``blogdb_operations_total`` / ``blogdb_operation_duration_seconds``

Example:
    >>> engine = PostEngine()
    >>> page = engine.list_posts(search="python", page=1, limit=10)
    >>> engine.add_clap(user_uid="u1", post_uid=page[0].uid, increment=3)
    >>> engine.add_bookmark("u1", page[0].uid).changed
    True
"""

import time
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col

from blogdb.config import TagPolicy, settings
from blogdb.database import DatabaseManager
from blogdb.errors import (
    AuthorizationError,
    BlogDBError,
    InputValidationError,
    NotFoundError,
    StorageError,
    UnknownTagsError,
)
from blogdb.interfaces import IDatabaseManager
from blogdb.logging import clear_request_context, logger, set_request_context
from blogdb.metrics import record_claps, record_operation
from blogdb.models import (
    Actor,
    AuthorDetail,
    AuthorSummary,
    BookmarkResult,
    BookmarkRow,
    ClapResult,
    ClapRow,
    CommentRead,
    CommentRow,
    PostCreate,
    PostDetail,
    PostListItem,
    PostRow,
    PostStatus,
    PostTagLink,
    PostUpdate,
    ReportRead,
    ReportRow,
    ReportType,
    TagRead,
    TagRow,
    UserRow,
)
from blogdb.queries import (
    apply_clap,
    build_bookmark_listing,
    build_post_detail,
    build_post_listing,
    collect_comment_thread,
    delete_bookmark,
    fetch_clap_total,
    fetch_post_tags,
    fetch_tag_map,
    find_unknown_tags,
    insert_bookmark,
    purge_post_dependents,
    replace_post_tags,
)
from blogdb.repository import RepositoryFactory
from blogdb.utils import MAX_SQL_INTEGER, coerce_positive_int, dedupe, unix_now

M = TypeVar("M", bound=BaseModel)

STATISTICS_TABLES = (UserRow, PostRow, TagRow, PostTagLink, ClapRow, BookmarkRow, CommentRow, ReportRow)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def _to_list_item(row: Any, tags: list[str]) -> PostListItem:
    """Shape a ``(PostRow, author_name, author_image, clap_count)`` row."""
    post, author_name, author_image, clap_count = row
    return PostListItem(
        **post.model_dump(),
        clap_count=int(clap_count or 0),
        tags=tags,
        author=AuthorSummary(uid=post.author_uid, name=author_name, profile_image=author_image),
    )


def _is_visible(post: PostRow, viewer: Optional[Actor]) -> bool:
    """Published posts are public; drafts are seen by their author and admins."""
    if post.status == PostStatus.PUBLISHED.value:
        return True
    return viewer is not None and viewer.can_modify(post.author_uid)


class PostEngine:
    """Post listing, tag assignment, claps, bookmarks, comments and reports.

    The engine holds no per-request state: each call opens its own session
    from the database manager's pool, so one instance may serve concurrent
    callers.

    Args:
        db: Database manager (creates and initializes a new one if None)
        tag_policy: Treatment of unknown tag ids
            (defaults to settings.unknown_tag_policy)
        default_page_size: Listing page size used when none is given
        max_page_limit: Upper bound for any requested page size
        max_clap_increment: Upper bound for one add_clap increment
    """

    def __init__(
        self,
        db: Optional[IDatabaseManager] = None,
        tag_policy: Optional[TagPolicy] = None,
        default_page_size: Optional[int] = None,
        max_page_limit: Optional[int] = None,
        max_clap_increment: Optional[int] = None,
    ):
        self.db = db or DatabaseManager()
        if self.db.engine is None:
            self.db.initialize()
        self.tag_policy = TagPolicy(tag_policy or settings.unknown_tag_policy)
        self.default_page_size = default_page_size or settings.default_page_size
        self.max_page_limit = max_page_limit or settings.max_page_limit
        self.max_clap_increment = max_clap_increment or settings.max_clap_increment

    def close(self) -> None:
        """Release pooled database connections."""
        self.db.close()

    # =========================================================================
    # Operation plumbing
    # =========================================================================

    @contextmanager
    def _operation(self, name: str, user_id: Optional[str] = None) -> Iterator[None]:
        """Wrap one engine operation with log context, error mapping and metrics."""
        set_request_context(request_id=uuid.uuid4().hex[:12], user_id=user_id, operation=name)
        started = time.perf_counter()
        status = "success"
        try:
            yield
        except BlogDBError as exc:
            status = exc.status
            logger.debug(f"{name} failed: {exc}")
            raise
        except SQLAlchemyError as exc:
            status = StorageError.status
            logger.exception(f"❌ Storage failure during {name}")
            raise StorageError(name) from exc
        except Exception:
            status = BlogDBError.status
            raise
        finally:
            record_operation(name, status, time.perf_counter() - started)
            clear_request_context()

    @staticmethod
    def _validate(model_cls: type[M], data: Any) -> M:
        if isinstance(data, model_cls):
            return data
        try:
            return model_cls.model_validate(data)
        except ValidationError as exc:
            raise InputValidationError(_format_validation_error(exc)) from exc

    @staticmethod
    def _require_fields(**fields: Any) -> None:
        missing = [name for name, value in fields.items() if not isinstance(value, str) or not value.strip()]
        if missing:
            raise InputValidationError(f"Missing required field(s): {', '.join(missing)}")

    @staticmethod
    def _authorize(actor: Actor, owner_uid: str, entity: str, uid: str) -> None:
        if not actor.can_modify(owner_uid):
            raise AuthorizationError(actor.user_id, entity, uid)

    def _page_window(self, page: Any, limit: Any) -> tuple[int, int]:
        """Coerce page/limit input into ``(limit, offset)``.

        The offset is clamped to the largest storable integer; a page that far
        out is past the end of any table and comes back empty.
        """
        size = min(coerce_positive_int(limit, self.default_page_size), self.max_page_limit)
        number = coerce_positive_int(page, 1)
        return size, min((number - 1) * size, MAX_SQL_INTEGER)

    def _check_tags(self, session: Session, tag_uids: Sequence[str]) -> None:
        if self.tag_policy == TagPolicy.REJECT:
            unknown = find_unknown_tags(session, tag_uids)
            if unknown:
                raise UnknownTagsError(unknown)

    @staticmethod
    def _visible_post(session: Session, post_uid: str, viewer: Optional[Actor]) -> PostRow:
        """Load a post, hiding drafts from everyone but their author and admins."""
        post = RepositoryFactory(session).for_entity(PostRow, "post").require(post_uid)
        if not _is_visible(post, viewer):
            raise NotFoundError("post", post_uid)
        return post

    @staticmethod
    def _load_detail(session: Session, post_uid: str, viewer: Optional[Actor]) -> PostDetail:
        row = session.exec(build_post_detail(post_uid)).first()
        if row is None:
            raise NotFoundError("post", post_uid)

        post, author, clap_count = row
        if not _is_visible(post, viewer):
            raise NotFoundError("post", post_uid)

        return PostDetail(
            **post.model_dump(),
            clap_count=int(clap_count or 0),
            tags=fetch_post_tags(session, post.uid),
            author=AuthorDetail(
                uid=author.uid,
                name=author.name,
                email=author.email,
                profile_image=author.profile_image,
                bio=author.bio,
            ),
        )

    # =========================================================================
    # Posts
    # =========================================================================

    def list_posts(
        self,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        page: Any = 1,
        limit: Any = None,
        author_uid: Optional[str] = None,
    ) -> list[PostListItem]:
        """List published posts, newest first.

        Args:
            search: Case-insensitive substring of title or content
            tag: Tag uid the post must carry
            page: 1-based page number (invalid values mean page 1)
            limit: Page size (invalid values mean the default, capped at
                max_page_limit)
            author_uid: Restrict to posts by this author

        Returns:
            Posts with author summary, clap total and tag uids. An empty list
            when nothing matches or the page is past the end.
        """
        with self._operation("list_posts"):
            size, offset = self._page_window(page, limit)
            stmt = build_post_listing(
                search=search or None,
                tag=tag or None,
                author_uid=author_uid or None,
                limit=size,
                offset=offset,
            )

            def work(session: Session) -> list[PostListItem]:
                rows = session.exec(stmt).all()
                tag_map = fetch_tag_map(session, [row[0].uid for row in rows])
                return [_to_list_item(row, tag_map.get(row[0].uid, [])) for row in rows]

            posts = self.db.run_in_transaction(work)
            logger.debug(f"Listed {len(posts)} posts (limit={size}, offset={offset})")
            return posts

    def get_post(self, post_uid: str, viewer: Optional[Actor] = None) -> PostDetail:
        """Get a single post with author details, tags and clap total.

        Unlike the REST backend this replaces, which served drafts to any
        caller of ``GET /api/posts/:uid``, a draft is only returned to its
        author or an admin; everyone else gets ``NotFoundError`` as if the
        post did not exist.

        Raises:
            NotFoundError: If the post does not exist, or is a draft and the
                viewer is neither its author nor an admin
        """
        with self._operation("get_post", viewer.user_id if viewer else None):
            self._require_fields(post_uid=post_uid)
            return self.db.run_in_transaction(
                lambda session: self._load_detail(session, post_uid, viewer)
            )

    def create_post(self, actor: Actor, data: PostCreate | dict[str, Any]) -> PostDetail:
        """Create a post authored by ``actor`` with its tag links.

        The post row and its PostTag rows are written in one transaction.
        """
        with self._operation("create_post", actor.user_id):
            post_in = self._validate(PostCreate, data)

            def work(session: Session) -> PostDetail:
                repos = RepositoryFactory(session)
                repos.for_entity(UserRow, "user").require(actor.user_id)
                self._check_tags(session, post_in.tags)

                now = unix_now()
                post = repos.for_entity(PostRow, "post").add(
                    PostRow(
                        title=post_in.title,
                        content=post_in.content,
                        author_uid=actor.user_id,
                        status=post_in.status.value,
                        featured_image=post_in.featured_image,
                        created_at=now,
                        updated_at=now,
                    )
                )
                replace_post_tags(session, post.uid, post_in.tags)
                return self._load_detail(session, post.uid, actor)

            post = self.db.run_in_transaction(work)
            logger.info(f"✅ Created post {post.uid} ({post.status}) with {len(post.tags)} tags")
            return post

    def update_post(
        self,
        actor: Actor,
        post_uid: str,
        data: PostUpdate | dict[str, Any],
    ) -> PostDetail:
        """Apply a partial update to a post.

        Scalar fields that are absent or None keep their stored value. A
        ``tags`` list (even empty) replaces the tag set; no ``tags`` key
        leaves it untouched.

        Raises:
            NotFoundError: If the post does not exist
            AuthorizationError: If the actor is neither the author nor an admin
        """
        with self._operation("update_post", actor.user_id):
            self._require_fields(post_uid=post_uid)
            changes_in = self._validate(PostUpdate, data)

            def work(session: Session) -> PostDetail:
                posts = RepositoryFactory(session).for_entity(PostRow, "post")
                post = posts.require(post_uid)
                self._authorize(actor, post.author_uid, "post", post_uid)

                tags = changes_in.tags if changes_in.replaces_tags else None
                if tags is not None:
                    self._check_tags(session, tags)

                changes = changes_in.model_dump(mode="json", exclude_none=True, exclude={"tags"})
                for field, value in changes.items():
                    setattr(post, field, value)
                post.updated_at = unix_now()
                posts.save(post)

                if tags is not None:
                    replace_post_tags(session, post_uid, tags)
                return self._load_detail(session, post_uid, actor)

            post = self.db.run_in_transaction(work)
            logger.info(f"✅ Updated post {post_uid}")
            return post

    def delete_post(self, actor: Actor, post_uid: str) -> None:
        """Delete a post with its tag links, claps, bookmarks and comments."""
        with self._operation("delete_post", actor.user_id):
            self._require_fields(post_uid=post_uid)

            def work(session: Session) -> None:
                posts = RepositoryFactory(session).for_entity(PostRow, "post")
                post = posts.require(post_uid)
                self._authorize(actor, post.author_uid, "post", post_uid)
                purge_post_dependents(session, post_uid)
                posts.remove(post)

            self.db.run_in_transaction(work)
            logger.info(f"🗑️ Deleted post {post_uid}")

    # =========================================================================
    # Tags
    # =========================================================================

    def set_post_tags(
        self,
        post_uid: str,
        tag_uids: Optional[Sequence[str]] = None,
        actor: Optional[Actor] = None,
    ) -> list[str]:
        """Replace the tag set of a post.

        Args:
            post_uid: Post to retag
            tag_uids: Authoritative tag set; duplicates collapse. ``None``
                leaves the tags unchanged, ``[]`` clears them.
            actor: When given, must be the author or an admin

        Returns:
            Tag uids of the post after the call, sorted

        Raises:
            UnknownTagsError: Under the reject policy, if any id matches no
                tag (nothing is written)
        """
        with self._operation("set_post_tags", actor.user_id if actor else None):
            self._require_fields(post_uid=post_uid)
            cleaned: Optional[list[str]] = None
            if tag_uids is not None:
                if isinstance(tag_uids, str) or not all(isinstance(t, str) for t in tag_uids):
                    raise InputValidationError("tags must be a list of tag identifiers")
                cleaned = dedupe(t.strip() for t in tag_uids if t.strip())

            def work(session: Session) -> list[str]:
                post = RepositoryFactory(session).for_entity(PostRow, "post").require(post_uid)
                if actor is not None:
                    self._authorize(actor, post.author_uid, "post", post_uid)
                if cleaned is not None:
                    self._check_tags(session, cleaned)
                    replace_post_tags(session, post_uid, cleaned)
                    post.updated_at = unix_now()
                    session.add(post)
                return fetch_post_tags(session, post_uid)

            tags = self.db.run_in_transaction(work)
            if cleaned is not None:
                logger.info(f"🏷️ Post {post_uid} now has {len(tags)} tags")
            return tags

    def list_tags(self) -> list[TagRead]:
        """List all tags by name."""
        with self._operation("list_tags"):

            def work(session: Session) -> list[TagRead]:
                tags = RepositoryFactory(session).for_entity(TagRow).find_by(col(TagRow.name))
                return [TagRead.model_validate(tag) for tag in tags]

            return self.db.run_in_transaction(work)

    def create_tag(self, name: str, uid: Optional[str] = None) -> TagRead:
        """Create a tag with a unique name.

        Raises:
            InputValidationError: If the name is blank or already taken
        """
        with self._operation("create_tag"):
            self._require_fields(name=name)
            name = name.strip()

            def work(session: Session) -> TagRead:
                tags = RepositoryFactory(session).for_entity(TagRow)
                if tags.find_one(name=name) is not None:
                    raise InputValidationError(f"Tag {name!r} already exists")
                if uid is not None and tags.exists(uid):
                    raise InputValidationError(f"Tag id {uid!r} already exists")
                tag = TagRow(name=name) if uid is None else TagRow(uid=uid, name=name)
                return TagRead.model_validate(tags.add(tag))

            tag = self.db.run_in_transaction(work)
            logger.info(f"🏷️ Created tag {tag.name!r} ({tag.uid})")
            return tag

    # =========================================================================
    # Claps
    # =========================================================================

    def add_clap(self, user_uid: str, post_uid: str, increment: int = 1) -> ClapResult:
        """Add ``increment`` claps of a user to a post.

        The user's running total is updated with one atomic upsert, so
        concurrent claps never lose updates.

        Returns:
            The user's new clap count and the post's new total

        Raises:
            InputValidationError: If increment is not a positive integer, is
                above max_clap_increment, or would overflow the stored count
            NotFoundError: If the user or the post does not exist
        """
        with self._operation("add_clap", user_uid):
            self._require_fields(user_uid=user_uid, post_uid=post_uid)
            if isinstance(increment, bool) or not isinstance(increment, int) or increment < 1:
                raise InputValidationError(f"increment must be a positive integer, got {increment!r}")
            if increment > self.max_clap_increment:
                raise InputValidationError(
                    f"increment must be at most {self.max_clap_increment}, got {increment}"
                )

            def work(session: Session) -> ClapResult:
                repos = RepositoryFactory(session)
                repos.for_entity(UserRow, "user").require(user_uid)
                repos.for_entity(PostRow, "post").require(post_uid)
                applied = apply_clap(session, user_uid, post_uid, increment)
                if applied is None:
                    raise InputValidationError(
                        f"clap count of {user_uid!r} on {post_uid!r} cannot grow by {increment}"
                    )
                clap_count, updated_at = applied
                return ClapResult(
                    user_uid=user_uid,
                    post_uid=post_uid,
                    clap_count=clap_count,
                    post_total=fetch_clap_total(session, post_uid),
                    updated_at=updated_at,
                )

            result = self.db.run_in_transaction(work)
            record_claps(increment)
            logger.info(
                f"👏 {user_uid} clapped {post_uid} +{increment} "
                f"(user={result.clap_count}, post={result.post_total})"
            )
            return result

    def get_clap_total(self, post_uid: str) -> int:
        """Sum of all users' claps on a post (0 when none)."""
        with self._operation("get_clap_total"):
            self._require_fields(post_uid=post_uid)

            def work(session: Session) -> int:
                RepositoryFactory(session).for_entity(PostRow, "post").require(post_uid)
                return fetch_clap_total(session, post_uid)

            return self.db.run_in_transaction(work)

    # =========================================================================
    # Bookmarks
    # =========================================================================

    def add_bookmark(self, user_uid: str, post_uid: str) -> BookmarkResult:
        """Bookmark a post. Bookmarking twice is a successful no-op."""
        with self._operation("add_bookmark", user_uid):
            self._require_fields(user_uid=user_uid, post_uid=post_uid)

            def work(session: Session) -> bool:
                repos = RepositoryFactory(session)
                repos.for_entity(UserRow, "user").require(user_uid)
                repos.for_entity(PostRow, "post").require(post_uid)
                return insert_bookmark(session, user_uid, post_uid)

            created = self.db.run_in_transaction(work)
            logger.info(f"🔖 {user_uid} bookmarked {post_uid} (new={created})")
            return BookmarkResult(user_uid=user_uid, post_uid=post_uid, bookmarked=True, changed=created)

    def remove_bookmark(self, user_uid: str, post_uid: str) -> BookmarkResult:
        """Remove a bookmark. Succeeds whether or not it existed."""
        with self._operation("remove_bookmark", user_uid):
            self._require_fields(user_uid=user_uid, post_uid=post_uid)
            removed = self.db.run_in_transaction(
                lambda session: delete_bookmark(session, user_uid, post_uid)
            )
            logger.info(f"🔖 {user_uid} removed bookmark {post_uid} (existed={removed})")
            return BookmarkResult(user_uid=user_uid, post_uid=post_uid, bookmarked=False, changed=removed)

    def list_bookmarks(self, user_uid: str, page: Any = 1, limit: Any = None) -> list[PostListItem]:
        """List a user's bookmarked posts, most recently bookmarked first.

        Drafts appear only when the user wrote them.
        """
        with self._operation("list_bookmarks", user_uid):
            self._require_fields(user_uid=user_uid)
            size, offset = self._page_window(page, limit)
            stmt = build_bookmark_listing(user_uid, limit=size, offset=offset)

            def work(session: Session) -> list[PostListItem]:
                rows = session.exec(stmt).all()
                tag_map = fetch_tag_map(session, [row[0].uid for row in rows])
                return [_to_list_item(row, tag_map.get(row[0].uid, [])) for row in rows]

            return self.db.run_in_transaction(work)

    # =========================================================================
    # Comments
    # =========================================================================

    def add_comment(
        self,
        actor: Actor,
        post_uid: str,
        content: str,
        parent_comment_uid: Optional[str] = None,
    ) -> CommentRead:
        """Comment on a post, optionally as a reply to another comment.

        Raises:
            NotFoundError: If the post is missing or hidden from the actor, or
                the parent comment does not belong to the post
        """
        with self._operation("add_comment", actor.user_id):
            self._require_fields(post_uid=post_uid, content=content)

            def work(session: Session) -> CommentRead:
                repos = RepositoryFactory(session)
                repos.for_entity(UserRow, "user").require(actor.user_id)
                self._visible_post(session, post_uid, actor)
                comments = repos.for_entity(CommentRow, "comment")
                if parent_comment_uid is not None:
                    parent = comments.get(parent_comment_uid)
                    if parent is None or parent.post_uid != post_uid:
                        raise NotFoundError("comment", parent_comment_uid)

                now = unix_now()
                comment = comments.add(
                    CommentRow(
                        post_uid=post_uid,
                        user_uid=actor.user_id,
                        content=content,
                        parent_comment_uid=parent_comment_uid,
                        created_at=now,
                        updated_at=now,
                    )
                )
                return CommentRead.model_validate(comment)

            comment = self.db.run_in_transaction(work)
            logger.info(f"💬 Comment {comment.uid} added to post {post_uid}")
            return comment

    def update_comment(self, actor: Actor, comment_uid: str, content: str) -> CommentRead:
        """Replace the text of a comment (author or admin only)."""
        with self._operation("update_comment", actor.user_id):
            self._require_fields(comment_uid=comment_uid, content=content)

            def work(session: Session) -> CommentRead:
                comments = RepositoryFactory(session).for_entity(CommentRow, "comment")
                comment = comments.require(comment_uid)
                self._authorize(actor, comment.user_uid, "comment", comment_uid)
                comment.content = content
                comment.updated_at = unix_now()
                return CommentRead.model_validate(comments.save(comment))

            return self.db.run_in_transaction(work)

    def delete_comment(self, actor: Actor, comment_uid: str) -> int:
        """Delete a comment and every reply below it.

        Returns:
            Number of comments deleted
        """
        with self._operation("delete_comment", actor.user_id):
            self._require_fields(comment_uid=comment_uid)

            def work(session: Session) -> int:
                comment = RepositoryFactory(session).for_entity(CommentRow, "comment").require(comment_uid)
                self._authorize(actor, comment.user_uid, "comment", comment_uid)
                thread = collect_comment_thread(session, comment_uid)
                session.exec(delete(CommentRow).where(col(CommentRow.uid).in_(thread)))  # type: ignore[call-overload]
                return len(thread)

            deleted = self.db.run_in_transaction(work)
            logger.info(f"🗑️ Deleted comment {comment_uid} and {deleted - 1} replies")
            return deleted

    def list_comments(self, post_uid: str, viewer: Optional[Actor] = None) -> list[CommentRead]:
        """List the comments of a post, oldest first."""
        with self._operation("list_comments", viewer.user_id if viewer else None):
            self._require_fields(post_uid=post_uid)

            def work(session: Session) -> list[CommentRead]:
                self._visible_post(session, post_uid, viewer)
                comments = RepositoryFactory(session).for_entity(CommentRow).find_by(
                    col(CommentRow.created_at),
                    col(CommentRow.uid),
                    post_uid=post_uid,
                )
                return [CommentRead.model_validate(c) for c in comments]

            return self.db.run_in_transaction(work)

    # =========================================================================
    # Reports & Users
    # =========================================================================

    def create_report(
        self,
        actor: Actor,
        report_type: ReportType | str,
        object_uid: str,
        reason: Optional[str] = None,
    ) -> ReportRead:
        """Report a post or a comment for moderation.

        Raises:
            InputValidationError: If report_type is not "post" or "comment"
            NotFoundError: If the reported object does not exist
        """
        with self._operation("create_report", actor.user_id):
            self._require_fields(object_uid=object_uid)
            try:
                kind = ReportType(report_type)
            except ValueError as exc:
                raise InputValidationError(
                    f"report_type must be one of {[t.value for t in ReportType]}, got {report_type!r}"
                ) from exc

            def work(session: Session) -> ReportRead:
                repos = RepositoryFactory(session)
                repos.for_entity(UserRow, "user").require(actor.user_id)
                target = PostRow if kind == ReportType.POST else CommentRow
                repos.for_entity(target, kind.value).require(object_uid)
                report = repos.for_entity(ReportRow, "report").add(
                    ReportRow(
                        report_type=kind.value,
                        object_uid=object_uid,
                        reported_by_uid=actor.user_id,
                        reason=reason,
                    )
                )
                return ReportRead.model_validate(report)

            report = self.db.run_in_transaction(work)
            logger.info(f"🚩 {actor.user_id} reported {kind.value} {object_uid}")
            return report

    def create_user(
        self,
        name: str,
        email: str,
        uid: Optional[str] = None,
        is_admin: bool = False,
        profile_image: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> AuthorDetail:
        """Insert a user row.

        Accounts normally come from the authentication service; this is for
        seeding and local tooling.
        """
        with self._operation("create_user"):
            self._require_fields(name=name, email=email)

            def work(session: Session) -> AuthorDetail:
                users = RepositoryFactory(session).for_entity(UserRow, "user")
                if users.find_one(email=email) is not None:
                    raise InputValidationError(f"Email {email!r} is already registered")
                if uid is not None and users.exists(uid):
                    raise InputValidationError(f"User id {uid!r} already exists")
                fields: dict[str, Any] = {
                    "name": name,
                    "email": email,
                    "is_admin": is_admin,
                    "profile_image": profile_image,
                    "bio": bio,
                }
                if uid is not None:
                    fields["uid"] = uid
                user = users.add(UserRow(**fields))
                return AuthorDetail(
                    uid=user.uid,
                    name=user.name,
                    email=user.email,
                    profile_image=user.profile_image,
                    bio=user.bio,
                )

            user = self.db.run_in_transaction(work)
            logger.info(f"👤 Created user {user.uid}")
            return user

    def get_statistics(self) -> dict[str, int]:
        """Row counts per table.

        Returns:
            Mapping of table name to row count
        """
        with self._operation("get_statistics"):

            def work(session: Session) -> dict[str, int]:
                repos = RepositoryFactory(session)
                return {
                    str(model.__tablename__): repos.for_entity(model).count()
                    for model in STATISTICS_TABLES
                }

            return self.db.run_in_transaction(work)


__all__ = ["PostEngine"]
