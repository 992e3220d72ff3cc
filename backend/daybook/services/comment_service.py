"""
Daybook Backend — Comment Service
==================================

What:  Comments on a post: list, add, delete.
How:   Same shape as PostService: stateless, storage manager passed per call.

Rules:
    - The parent post must exist for every operation.
    - Adding a comment requires a signed-in caller.
    - A comment can be deleted by its author, the post's author, or an admin.
"""

import logging
from typing import Any, Dict, Optional

from daybook.exceptions import AuthenticationRequiredError, NotFoundError, PermissionDeniedError
from daybook.identity import Principal, can_delete_comment
from daybook.models.comment import COMMENTS, new_comment_document
from daybook.models.post import POSTS
from daybook.schemas.comment import CommentCreate, CommentListResponse, CommentResponse
from daybook.storage import StorageAvailabilityManager

logger = logging.getLogger(__name__)

OLDEST_FIRST = [("created_at", 1)]


class CommentService:
    async def list_comments(
        self, storage: StorageAvailabilityManager, post_id: str
    ) -> CommentListResponse:
        await self._load_post(storage, post_id)
        records = await storage.read(COMMENTS, {"post_id": post_id}, OLDEST_FIRST)
        return CommentListResponse(
            comments=[CommentResponse.from_record(r) for r in records],
            total_count=len(records),
        )

    async def add_comment(
        self,
        storage: StorageAvailabilityManager,
        post_id: str,
        data: CommentCreate,
        principal: Optional[Principal],
    ) -> CommentResponse:
        """
        Raises:
            AuthenticationRequiredError: anonymous caller
            NotFoundError: no such post
        """
        if principal is None:
            raise AuthenticationRequiredError(message="Sign in to leave a comment")
        await self._load_post(storage, post_id)

        document = new_comment_document(
            post_id=post_id,
            content=data.content,
            author=principal.as_author(),
        )
        record = await storage.write(COMMENTS, document)
        logger.info("Comment %s added to post %s", record["id"], post_id)
        return CommentResponse.from_record(record)

    async def delete_comment(
        self,
        storage: StorageAvailabilityManager,
        post_id: str,
        comment_id: str,
        principal: Optional[Principal],
    ) -> None:
        if principal is None:
            raise AuthenticationRequiredError(message="Sign in to delete comments")

        comment = await storage.read_one(COMMENTS, comment_id)
        if comment is None or comment.get("post_id") != post_id:
            raise NotFoundError(resource="Comment", resource_id=comment_id)

        post = await storage.read_one(POSTS, post_id)
        if not can_delete_comment(principal, comment, post):
            raise PermissionDeniedError(
                message="Only the comment author, the post author or an admin can delete this comment",
                context={"comment_id": comment_id, "user_id": principal.user_id},
            )

        if await storage.remove(COMMENTS, comment_id) is None:
            raise NotFoundError(resource="Comment", resource_id=comment_id)
        logger.info("Comment %s deleted from post %s", comment_id, post_id)

    async def _load_post(self, storage: StorageAvailabilityManager, post_id: str) -> Dict[str, Any]:
        post = await storage.read_one(POSTS, post_id)
        if post is None:
            raise NotFoundError(resource="Post", resource_id=post_id)
        return post


comment_service = CommentService()
