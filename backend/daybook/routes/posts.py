"""
Daybook Backend — Post Route Handlers
======================================

What:  CRUD over /api/posts plus the category index.
How:   Resolves the caller (get_principal) and the storage manager
       (get_storage), delegates to PostService.

Caching Strategy:
    GET /api/posts sends X-Total-Count for pagination UIs. Nothing is cached:
    during an outage the same URL can answer from a different backend.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from daybook.database import get_storage
from daybook.identity import Principal, get_principal
from daybook.schemas.common import ErrorResponse
from daybook.schemas.post import (
    CategoryListResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
)
from daybook.services.post_service import post_service
from daybook.storage import StorageAvailabilityManager

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api", tags=["Posts"])


@router.get(
    "/posts",
    response_model=PostListResponse,
    summary="List posts, newest first",
)
async def list_posts(
    response: Response,
    category: Optional[str] = Query(default=None, description="Only posts in this category"),
    tag: Optional[str] = Query(default=None, description="Only posts carrying this tag"),
    q: Optional[str] = Query(default=None, max_length=200, description="Case-insensitive text search"),
    limit: Optional[int] = Query(default=None, ge=1, le=200, description="Maximum posts returned"),
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> PostListResponse:
    result = await post_service.list_posts(storage, category=category, tag=tag, q=q, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"description": "Readers cannot publish", "model": ErrorResponse}},
    summary="Publish a post",
)
async def create_post(
    data: PostCreate,
    principal: Optional[Principal] = Depends(get_principal),
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> PostResponse:
    """
    Anonymous callers may publish (the post then has no author and anyone can
    edit it). Signed-in callers need the author or admin role.
    """
    return await post_service.create_post(storage, data, principal)


@router.get(
    "/posts/{post_id}",
    response_model=PostResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Get a single post",
)
async def get_post(
    post_id: str,
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> PostResponse:
    return await post_service.get_post(storage, post_id)


@router.patch(
    "/posts/{post_id}",
    response_model=PostResponse,
    responses={
        400: {"description": "Nothing to update", "model": ErrorResponse},
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Edit a post",
)
async def update_post(
    post_id: str,
    data: PostUpdate,
    principal: Optional[Principal] = Depends(get_principal),
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> PostResponse:
    return await post_service.update_post(storage, post_id, data, principal)


@router.delete(
    "/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Delete a post and its comments",
)
async def delete_post(
    post_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> Response:
    await post_service.delete_post(storage, post_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/categories",
    response_model=CategoryListResponse,
    summary="Categories in use, with post counts",
)
async def list_categories(
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> CategoryListResponse:
    return await post_service.list_categories(storage)
