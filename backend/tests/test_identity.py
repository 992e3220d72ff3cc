"""
Daybook Backend — Identity & Ownership Tests
=============================================
"""

import pytest

from daybook.exceptions import ValidationError
from daybook.identity import (
    Principal,
    Role,
    can_create_post,
    can_delete_comment,
    can_modify_post,
    get_principal,
)


def owned_by(principal):
    return {"author": principal.as_author()}


class TestGetPrincipal:

    @pytest.mark.asyncio
    async def test_no_headers_is_anonymous(self):
        assert await get_principal(None, None, None) is None
        assert await get_principal("  ", "ana", "admin") is None

    @pytest.mark.asyncio
    async def test_defaults(self):
        principal = await get_principal("u1", None, None)
        assert principal == Principal(user_id="u1", username="u1", role=Role.READER)

    @pytest.mark.asyncio
    async def test_role_is_case_insensitive(self):
        principal = await get_principal("u1", "Ana", " Admin ")
        assert principal.role is Role.ADMIN
        assert principal.username == "Ana"

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            await get_principal("u1", "ana", "superuser")
        assert exc_info.value.field == "X-User-Role"


class TestPostOwnership:

    def test_who_can_create(self, author, reader, admin):
        assert can_create_post(None) is True
        assert can_create_post(author) is True
        assert can_create_post(admin) is True
        assert can_create_post(reader) is False

    def test_anonymous_posts_are_open(self, reader):
        assert can_modify_post(None, {"author": None}) is True
        assert can_modify_post(reader, {}) is True

    def test_owned_posts(self, author, stranger, admin):
        post = owned_by(author)
        assert can_modify_post(author, post) is True
        assert can_modify_post(admin, post) is True
        assert can_modify_post(stranger, post) is False
        assert can_modify_post(None, post) is False


class TestCommentOwnership:

    def test_comment_author_post_author_and_admin(self, author, stranger, reader, admin):
        post = owned_by(author)
        comment = owned_by(reader)

        assert can_delete_comment(reader, comment, post) is True
        assert can_delete_comment(author, comment, post) is True
        assert can_delete_comment(admin, comment, post) is True
        assert can_delete_comment(stranger, comment, post) is False

    def test_missing_post(self, author, reader):
        assert can_delete_comment(author, owned_by(reader), None) is False
