"""
Daybook Backend — Comment Route Handlers
=========================================
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from daybook.database import get_storage
from daybook.identity import Principal, get_principal
from daybook.schemas.comment import CommentCreate, CommentListResponse, CommentResponse
from daybook.schemas.common import ErrorResponse
from daybook.services.comment_service import comment_service
from daybook.storage import StorageAvailabilityManager

router = APIRouter(prefix="/api/posts/{post_id}/comments", tags=["Comments"])


@router.get(
    "",
    response_model=CommentListResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Comments on a post, oldest first",
)
async def list_comments(
    post_id: str,
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> CommentListResponse:
    return await comment_service.list_comments(storage, post_id)


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "Sign-in required", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    data: CommentCreate,
    principal: Optional[Principal] = Depends(get_principal),
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> CommentResponse:
    return await comment_service.add_comment(storage, post_id, data, principal)


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        401: {"description": "Sign-in required", "model": ErrorResponse},
        403: {"description": "Not allowed to delete", "model": ErrorResponse},
        404: {"description": "Comment not found", "model": ErrorResponse},
    },
    summary="Delete a comment",
)
async def delete_comment(
    post_id: str,
    comment_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    storage: StorageAvailabilityManager = Depends(get_storage),
) -> Response:
    await comment_service.delete_comment(storage, post_id, comment_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
