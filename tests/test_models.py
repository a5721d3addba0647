"""Unit tests for Pydantic input/output models."""

import pytest
from pydantic import ValidationError

from blogdb.models import Actor, PostCreate, PostStatus, PostUpdate, ReportRead, ReportType


class TestActor:
    """Tests for Actor."""

    def test_owner_can_modify(self):
        """Test an actor may modify their own resources."""
        assert Actor(user_id="u1").can_modify("u1")

    def test_other_cannot_modify(self):
        """Test an actor may not modify someone else's resources."""
        assert not Actor(user_id="u1").can_modify("u2")

    def test_admin_can_modify_anything(self):
        """Test admins bypass ownership."""
        assert Actor(user_id="root", is_admin=True).can_modify("u2")

    def test_actor_is_frozen(self):
        """Test actors are immutable once resolved."""
        actor = Actor(user_id="u1")
        with pytest.raises(ValidationError):
            actor.is_admin = True  # type: ignore[misc]


class TestPostCreate:
    """Tests for PostCreate."""

    def test_defaults(self):
        """Test status defaults to draft and tags to empty."""
        post = PostCreate(title="T", content="C")

        assert post.status == PostStatus.DRAFT
        assert post.tags == []
        assert post.featured_image is None

    def test_tags_cleaned(self):
        """Test tags are stripped, blank ones dropped and duplicates collapsed."""
        post = PostCreate(title="T", content="C", tags=["a", " a", "", "b ", "  "])

        assert post.tags == ["a", "b"]

    @pytest.mark.parametrize("field", ["title", "content"])
    def test_blank_text_rejected(self, field):
        """Test title and content must contain text."""
        data = {"title": "T", "content": "C", field: "  "}
        with pytest.raises(ValidationError, match=field):
            PostCreate(**data)

    def test_unknown_fields_ignored(self):
        """Test extra payload keys are dropped."""
        post = PostCreate.model_validate({"title": "T", "content": "C", "author_uid": "spoofed"})

        assert not hasattr(post, "author_uid")


class TestPostUpdate:
    """Tests for PostUpdate tag presence detection."""

    def test_absent_tags_do_not_replace(self):
        """Test leaving tags out keeps the stored set."""
        assert PostUpdate(title="T").replaces_tags is False

    def test_explicit_none_does_not_replace(self):
        """Test tags=None is the same as absent."""
        assert PostUpdate(tags=None).replaces_tags is False

    def test_empty_list_replaces(self):
        """Test tags=[] is an authoritative clear."""
        update = PostUpdate.model_validate({"tags": []})

        assert update.replaces_tags is True
        assert update.tags == []

    def test_blank_title_rejected(self):
        """Test a provided title may not be blank."""
        with pytest.raises(ValidationError):
            PostUpdate(title="")


class TestReportRead:
    """Tests for ReportRead."""

    def test_report_type_coerced(self):
        """Test stored report type strings become enum members."""
        report = ReportRead(
            uid="r1",
            report_type="comment",
            object_uid="c1",
            reported_by_uid="u1",
            created_at=1,
        )

        assert report.report_type is ReportType.COMMENT
