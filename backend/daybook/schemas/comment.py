"""
Daybook Backend — Comment Request/Response Schemas
===================================================
"""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

from daybook.schemas.post import AuthorInfo


class CommentCreate(BaseModel):
    """Body of POST /api/posts/{id}/comments. The author comes from the caller's identity."""

    content: str = Field(min_length=1, max_length=1000)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class CommentResponse(BaseModel):
    id: str
    post_id: str
    author: AuthorInfo
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CommentResponse":
        return cls(
            id=record["id"],
            post_id=record["post_id"],
            author=record["author"],
            content=record["content"],
            created_at=record["created_at"],
            updated_at=record.get("updated_at") or record["created_at"],
        )


class CommentListResponse(BaseModel):
    """Comments on one post, oldest first."""

    comments: List[CommentResponse]
    total_count: int
