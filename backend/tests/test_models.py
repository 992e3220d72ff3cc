"""
Daybook Backend — Document Rules & Schema Validation Tests
===========================================================

What:  Save-time computation for posts and request body validation.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from daybook.models.comment import new_comment_document
from daybook.models.post import (
    apply_save_rules,
    derive_excerpt,
    estimate_reading_time,
    new_post_document,
)
from daybook.schemas.comment import CommentCreate
from daybook.schemas.post import PostCreate, PostUpdate

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestReadingTime:

    def test_minimum_is_one_minute(self):
        assert estimate_reading_time("") == 1
        assert estimate_reading_time("just a few words") == 1

    def test_rounds_up(self):
        assert estimate_reading_time(" ".join(["word"] * 200)) == 1
        assert estimate_reading_time(" ".join(["word"] * 201)) == 2
        assert estimate_reading_time(" ".join(["word"] * 1000)) == 5

    def test_counts_single_space_splits(self):
        """Double spaces produce empty tokens that still count as words."""
        assert estimate_reading_time(" ".join(["word"] * 150)) == 1
        assert estimate_reading_time("  ".join(["word"] * 150)) == 2


class TestExcerpt:

    def test_short_body(self):
        assert derive_excerpt("Hello") == "Hello..."

    def test_long_body_truncated_to_150(self):
        excerpt = derive_excerpt("x" * 500)
        assert excerpt == "x" * 150 + "..."


class TestSaveRules:

    def test_new_post_computes_fields(self):
        doc = new_post_document(title="T", body="word " * 450, category="Travel", now=NOW)

        assert doc["created_at"] == NOW
        assert doc["updated_at"] == NOW
        assert doc["reading_time"] == 3
        assert doc["excerpt"].endswith("...")
        assert doc["author"] is None
        assert doc["tags"] == []

    def test_explicit_excerpt_is_kept(self):
        doc = new_post_document(title="T", body="body", category="C", excerpt="Mine", now=NOW)
        assert doc["excerpt"] == "Mine"

    def test_apply_save_rules_refreshes_updated_at(self):
        doc = new_post_document(title="T", body="body", category="C", now=NOW)
        later = NOW + timedelta(hours=1)

        apply_save_rules(doc, now=later)

        assert doc["created_at"] == NOW
        assert doc["updated_at"] == later

    def test_cleared_excerpt_is_derived_again(self):
        doc = new_post_document(title="T", body="new body", category="C", excerpt="old", now=NOW)
        doc["excerpt"] = ""
        apply_save_rules(doc)
        assert doc["excerpt"] == "new body..."

    def test_comment_document(self):
        doc = new_comment_document("p1", "Nice", {"user_id": "u1", "username": "ana"}, now=NOW)
        assert doc == {
            "post_id": "p1",
            "author": {"user_id": "u1", "username": "ana"},
            "content": "Nice",
            "created_at": NOW,
            "updated_at": NOW,
        }


class TestPostCreateSchema:

    def test_trims_title_and_category(self):
        data = PostCreate(title="  Hello  ", body="Body", category="  Travel ")
        assert data.title == "Hello"
        assert data.category == "Travel"

    def test_blank_title_rejected(self):
        with pytest.raises(PydanticValidationError):
            PostCreate(title="   ", body="Body")

    def test_title_too_long(self):
        with pytest.raises(PydanticValidationError):
            PostCreate(title="x" * 201, body="Body")

    def test_body_too_long(self):
        with pytest.raises(PydanticValidationError):
            PostCreate(title="T", body="x" * 10001)

    def test_tags_from_comma_string(self):
        data = PostCreate(title="T", body="B", tags=" travel, food ,, travel")
        assert data.tags == ["travel", "food"]

    def test_tag_too_long(self):
        with pytest.raises(PydanticValidationError):
            PostCreate(title="T", body="B", tags=["x" * 31])

    def test_too_many_tags(self):
        with pytest.raises(PydanticValidationError):
            PostCreate(title="T", body="B", tags=[f"t{i}" for i in range(21)])

    def test_featured_image_must_be_url_or_path(self):
        assert PostCreate(title="T", body="B", featured_image="https://img.test/a.jpg").featured_image
        assert PostCreate(title="T", body="B", featured_image="/uploads/a.jpg").featured_image
        assert PostCreate(title="T", body="B", featured_image="  ").featured_image is None
        with pytest.raises(PydanticValidationError):
            PostCreate(title="T", body="B", featured_image="javascript:alert(1)")


class TestPostUpdateSchema:

    def test_changes_only_includes_sent_fields(self):
        assert PostUpdate(title="New").changes() == {"title": "New"}

    def test_featured_image_can_be_cleared(self):
        assert PostUpdate(featured_image=None).changes() == {"featured_image": None}

    def test_title_cannot_be_cleared(self):
        with pytest.raises(PydanticValidationError):
            PostUpdate(title=None)

    def test_empty_update(self):
        assert PostUpdate().changes() == {}


class TestCommentCreateSchema:

    def test_trims_content(self):
        assert CommentCreate(content="  hi  ").content == "hi"

    def test_blank_content_rejected(self):
        with pytest.raises(PydanticValidationError):
            CommentCreate(content="   ")

    def test_content_too_long(self):
        with pytest.raises(PydanticValidationError):
            CommentCreate(content="x" * 1001)
