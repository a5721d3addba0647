"""Tests for single-post reads and post lifecycle operations."""

import pytest

from blogdb.errors import AuthorizationError, InputValidationError, NotFoundError
from blogdb.models import Actor, PostCreate, PostStatus

T0 = 1_700_000_000


class TestGetPost:
    """get_post visibility and shape."""

    def test_published_post_detail(self, engine, make_post, tags):
        """Test detail carries full author fields, tags and claps."""
        make_post("p1", tags=[tags["python"]])
        engine.add_clap("bob", "p1", 2)

        post = engine.get_post("p1")

        assert post.author.email == "alice@example.com"
        assert post.author.profile_image == "https://img/alice.png"
        assert post.tags == ["t-python"]
        assert post.clap_count == 2

    def test_missing_post(self, engine, users):
        """Test an unknown uid raises NotFoundError."""
        with pytest.raises(NotFoundError):
            engine.get_post("missing")

    def test_draft_hidden_from_anonymous_and_others(self, engine, make_post, bob):
        """Test drafts look missing to everyone but the author and admins."""
        make_post("p1", status=PostStatus.DRAFT)

        with pytest.raises(NotFoundError):
            engine.get_post("p1")
        with pytest.raises(NotFoundError):
            engine.get_post("p1", viewer=bob)

    def test_draft_visible_to_author_and_admin(self, engine, make_post, alice, admin):
        """Test the author and admins can read drafts."""
        make_post("p1", status=PostStatus.DRAFT)

        assert engine.get_post("p1", viewer=alice).status == PostStatus.DRAFT
        assert engine.get_post("p1", viewer=admin).uid == "p1"


class TestCreatePost:
    """create_post validation and defaults."""

    def test_defaults_to_draft(self, engine, users, alice):
        """Test new posts are drafts unless published explicitly."""
        post = engine.create_post(alice, PostCreate(title="T", content="C"))

        assert post.status == PostStatus.DRAFT
        assert post.author_uid == "alice"
        assert post.created_at == post.updated_at
        assert engine.list_posts() == []

    def test_published_post_is_listed(self, engine, users, alice):
        """Test a published post shows up in the listing."""
        post = engine.create_post(alice, {"title": "T", "content": "C", "status": "published"})

        assert [item.uid for item in engine.list_posts()] == [post.uid]

    @pytest.mark.parametrize(
        "payload",
        [
            {"content": "C"},
            {"title": "   ", "content": "C"},
            {"title": "T", "content": ""},
            {"title": "T", "content": "C", "status": "archived"},
        ],
    )
    def test_invalid_input_rejected(self, engine, users, alice, payload):
        """Test missing or invalid fields raise InputValidationError."""
        with pytest.raises(InputValidationError):
            engine.create_post(alice, payload)

        assert engine.get_statistics()["posts"] == 0

    def test_unknown_author(self, engine, users):
        """Test the acting user must exist."""
        with pytest.raises(NotFoundError, match="User"):
            engine.create_post(Actor(user_id="ghost"), {"title": "T", "content": "C"})


class TestUpdatePost:
    """Partial updates."""

    def test_only_given_fields_change(self, engine, make_post, alice):
        """Test omitted fields keep their stored values."""
        make_post("p1", title="Old", content="Body", created_at=T0)

        post = engine.update_post(alice, "p1", {"content": "New body"})

        assert post.title == "Old"
        assert post.content == "New body"
        assert post.created_at == T0
        assert post.updated_at > T0

    def test_publish_draft(self, engine, make_post, alice):
        """Test status changes through update."""
        make_post("p1", status=PostStatus.DRAFT)

        engine.update_post(alice, "p1", {"status": "published"})

        assert [post.uid for post in engine.list_posts()] == ["p1"]

    def test_non_owner_rejected(self, engine, make_post, bob):
        """Test another user may not edit the post."""
        make_post("p1", title="Old")

        with pytest.raises(AuthorizationError):
            engine.update_post(bob, "p1", {"title": "Hijacked"})

        assert engine.get_post("p1").title == "Old"

    def test_admin_may_edit(self, engine, make_post, admin):
        """Test admins may edit any post."""
        make_post("p1")

        assert engine.update_post(admin, "p1", {"title": "Moderated"}).title == "Moderated"

    def test_missing_post(self, engine, users, alice):
        """Test updating a missing post raises NotFoundError."""
        with pytest.raises(NotFoundError):
            engine.update_post(alice, "missing", {"title": "X"})


class TestDeletePost:
    """delete_post cascades."""

    def test_delete_removes_dependents(self, engine, make_post, tags, alice, bob):
        """Test tag links, claps, bookmarks and comments go with the post."""
        make_post("p1", tags=[tags["python"], tags["sql"]])
        make_post("p2", tags=[tags["python"]])
        engine.add_clap("bob", "p1", 3)
        engine.add_clap("bob", "p2", 1)
        engine.add_bookmark("bob", "p1")
        comment = engine.add_comment(bob, "p1", "Nice")
        engine.add_comment(alice, "p1", "Thanks", parent_comment_uid=comment.uid)

        engine.delete_post(alice, "p1")

        stats = engine.get_statistics()
        assert stats["posts"] == 1
        assert stats["posts_tags"] == 1
        assert stats["claps"] == 1
        assert stats["bookmarks"] == 0
        assert stats["comments"] == 0
        with pytest.raises(NotFoundError):
            engine.get_post("p1")

    def test_non_owner_cannot_delete(self, engine, make_post, bob):
        """Test deletion is owner/admin only and leaves everything in place."""
        make_post("p1")

        with pytest.raises(AuthorizationError):
            engine.delete_post(bob, "p1")

        assert engine.get_post("p1").uid == "p1"

    def test_admin_can_delete(self, engine, make_post, admin):
        """Test admins may delete any post."""
        make_post("p1")

        engine.delete_post(admin, "p1")

        assert engine.get_statistics()["posts"] == 0
