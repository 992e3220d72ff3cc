"""
Daybook Backend — Post Service (Business Logic)
================================================

What:  Listing, retrieval, creation, editing and deletion of blog posts.
Why:   Keeps ownership rules and save-time computation out of the route
       handlers, independent of HTTP concerns.
How:   Every call receives the StorageAvailabilityManager and goes through it;
       the service never knows whether MongoDB or memory answered.
Who:   Called by the /api/posts and /api/categories route handlers.

Design Decision:
    PostService is stateless. It receives the storage manager for each call,
    the same way a request-scoped database session would be passed in, so
    tests can hand it a manager built around a fake remote store.

Search:
    `q` is a case-insensitive substring match over title, body, excerpt and
    category, applied after the storage query. Category and tag filters are
    pushed down to storage so MongoDB can use its indexes.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from daybook.config import settings
from daybook.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from daybook.identity import Principal, can_create_post, can_modify_post
from daybook.models.comment import COMMENTS
from daybook.models.post import POSTS, apply_save_rules, new_post_document
from daybook.schemas.post import (
    CategoryCount,
    CategoryListResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostSummary,
    PostUpdate,
)
from daybook.storage import StorageAvailabilityManager

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", -1)]
SEARCH_FIELDS = ("title", "body", "excerpt", "category")


def _matches_search(record: Dict[str, Any], needle: str) -> bool:
    needle = needle.lower()
    return any(needle in str(record.get(field) or "").lower() for field in SEARCH_FIELDS)


class PostService:
    """
    Business logic layer for post operations.

    Error Handling Strategy:
        Missing posts raise NotFoundError (404) and ownership violations raise
        PermissionDeniedError (403). Storage failures never surface here: the
        manager has already fallen back to memory by the time a call returns.
    """

    async def list_posts(
        self,
        storage: StorageAvailabilityManager,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        q: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> PostListResponse:
        """
        Posts newest first, optionally filtered.

        Args:
            category: exact category name
            tag: posts carrying this tag
            q: free-text search
            limit: maximum posts returned (total_count is computed before it)
        """
        query: Dict[str, Any] = {}
        if category:
            query["category"] = category
        if tag:
            query["tags"] = tag

        records = await storage.read(POSTS, query, NEWEST_FIRST)
        if q and q.strip():
            records = [r for r in records if _matches_search(r, q.strip())]

        total = len(records)
        limit = limit or settings.default_page_size
        return PostListResponse(
            posts=[PostSummary.from_record(r) for r in records[:limit]],
            total_count=total,
            storage_backend=storage.status.backend,
        )

    async def get_post(self, storage: StorageAvailabilityManager, post_id: str) -> PostResponse:
        return PostResponse.from_record(await self._load(storage, post_id))

    async def create_post(
        self,
        storage: StorageAvailabilityManager,
        data: PostCreate,
        principal: Optional[Principal] = None,
    ) -> PostResponse:
        """
        Publish a new post.

        Raises:
            PermissionDeniedError: the caller is signed in as a reader
        """
        if not can_create_post(principal):
            raise PermissionDeniedError(
                message="Readers cannot publish posts",
                context={"user_id": principal.user_id, "role": principal.role.value},
            )

        document = new_post_document(
            title=data.title,
            body=data.body,
            category=data.category or settings.default_category,
            excerpt=data.excerpt,
            tags=data.tags,
            featured_image=data.featured_image,
            author=principal.as_author() if principal else None,
        )
        record = await storage.write(POSTS, document)
        logger.info("Post %s created (backend=%s)", record["id"], storage.status.backend)
        return PostResponse.from_record(record)

    async def update_post(
        self,
        storage: StorageAvailabilityManager,
        post_id: str,
        data: PostUpdate,
        principal: Optional[Principal] = None,
    ) -> PostResponse:
        """
        Apply a partial update and re-run the save rules.

        Raises:
            ValidationError: the body carried no fields
            NotFoundError: no such post
            PermissionDeniedError: the post belongs to someone else
        """
        changes = data.changes()
        if not changes:
            raise ValidationError(message="No fields to update")

        existing = await self._load(storage, post_id)
        self._check_owner(principal, existing, "edit")

        # Save rules need the full document; only the touched fields are written back
        merged = apply_save_rules({**existing, **changes})
        patch = {key: merged[key] for key in changes}
        for computed in ("updated_at", "reading_time", "excerpt"):
            patch[computed] = merged[computed]

        record = await storage.update(POSTS, post_id, patch)
        if record is None:
            raise NotFoundError(resource="Post", resource_id=post_id)
        logger.info("Post %s updated: %s", post_id, sorted(changes))
        return PostResponse.from_record(record)

    async def delete_post(
        self,
        storage: StorageAvailabilityManager,
        post_id: str,
        principal: Optional[Principal] = None,
    ) -> None:
        """Delete a post and every comment on it."""
        existing = await self._load(storage, post_id)
        self._check_owner(principal, existing, "delete")

        if await storage.remove(POSTS, post_id) is None:
            raise NotFoundError(resource="Post", resource_id=post_id)
        removed = await storage.remove_where(COMMENTS, {"post_id": post_id})
        logger.info("Post %s deleted with %d comment(s)", post_id, removed)

    async def list_categories(self, storage: StorageAvailabilityManager) -> CategoryListResponse:
        """Distinct categories with post counts, most used first."""
        records = await storage.read(POSTS)
        counts = Counter(r.get("category") or settings.default_category for r in records)
        ordered: List[CategoryCount] = [
            CategoryCount(name=name, count=count)
            for name, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        ]
        return CategoryListResponse(categories=ordered)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _load(self, storage: StorageAvailabilityManager, post_id: str) -> Dict[str, Any]:
        record = await storage.read_one(POSTS, post_id)
        if record is None:
            raise NotFoundError(resource="Post", resource_id=post_id)
        return record

    @staticmethod
    def _check_owner(principal: Optional[Principal], post: Dict[str, Any], action: str) -> None:
        if can_modify_post(principal, post):
            return
        raise PermissionDeniedError(
            message=f"Only the author or an admin can {action} this post",
            context={
                "post_id": post.get("id"),
                "user_id": principal.user_id if principal else None,
            },
        )


# ── Module-level singleton ────────────────────────────────────────────────
post_service = PostService()
