"""
Daybook Backend — Post Request/Response Schemas
================================================

What:  Pydantic models defining the API contract for posts.
Why:   Strict input validation, automatic serialization, and OpenAPI docs.
How:   FastAPI validates request bodies against PostCreate / PostUpdate and
       serializes PostResponse / PostListResponse.

Design Decision:
    Schemas are separate from the stored documents: records are loose dicts
    that may come from MongoDB or from memory, and from_record() is the one
    place that turns either into the public shape.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

MAX_TAGS = 20
MAX_TAG_LENGTH = 30


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


def _clean_tags(v: Any) -> Any:
    """Trim tags, drop blanks and duplicates while keeping order."""
    if v is None:
        return v
    if isinstance(v, str):
        v = v.split(",")
    seen: List[str] = []
    for tag in v:
        tag = tag.strip() if isinstance(tag, str) else tag
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _check_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    if len(v) > MAX_TAGS:
        raise ValueError(f"At most {MAX_TAGS} tags are allowed")
    for tag in v:
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Tag '{tag[:10]}...' exceeds {MAX_TAG_LENGTH} characters")
    return v


def _check_image_url(v: Optional[str]) -> Optional[str]:
    if v and not v.startswith(("http://", "https://", "/")):
        raise ValueError("featured_image must be an http(s) URL or a site-relative path")
    return v or None


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class _PostInput(BaseModel):
    """Normalization shared by create and update bodies."""

    @field_validator("title", "category", "excerpt", "featured_image", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("tags", mode="before", check_fields=False)
    @classmethod
    def clean_tags(cls, v: Any) -> Any:
        return _clean_tags(v)

    @field_validator("tags", check_fields=False)
    @classmethod
    def check_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_tags(v)

    @field_validator("featured_image", check_fields=False)
    @classmethod
    def check_image(cls, v: Optional[str]) -> Optional[str]:
        return _check_image_url(v)


class PostCreate(_PostInput):
    """
    What:  Body of POST /api/posts.
    Note:  excerpt may be omitted; it is derived from the body on save.
    """

    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1, max_length=10000)
    category: Optional[str] = Field(default=None, max_length=50)
    excerpt: str = Field(default="", max_length=200)
    tags: List[str] = Field(default_factory=list)
    featured_image: Optional[str] = Field(default=None, max_length=2048)


class PostUpdate(_PostInput):
    """
    What:  Body of PATCH /api/posts/{id}. Only the fields sent are changed.
    Why:   title/body/category cannot be cleared; send featured_image=null to
           remove the header image.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    body: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    excerpt: Optional[str] = Field(default=None, max_length=200)
    tags: Optional[List[str]] = None
    featured_image: Optional[str] = Field(default=None, max_length=2048)

    @field_validator("title", "body", "category")
    @classmethod
    def not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("This field cannot be cleared")
        return v

    def changes(self) -> Dict[str, Any]:
        """The fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AuthorInfo(BaseModel):
    user_id: str
    username: str


class PostResponse(BaseModel):
    """
    What:  Full representation of a post.
    Who:   Returned by GET/POST/PATCH on a single post.

    id format:
        24 hex characters when the post lives in MongoDB, a UUID when it was
        written to the in-memory fallback during an outage.
    """

    id: str = Field(description="Post identifier")
    title: str
    body: str
    category: str
    excerpt: str
    tags: List[str] = Field(default_factory=list)
    featured_image: Optional[str] = None
    reading_time: int = Field(description="Estimated minutes to read")
    author: Optional[AuthorInfo] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PostResponse":
        return cls(
            id=record["id"],
            title=record["title"],
            body=record["body"],
            category=record.get("category") or "",
            excerpt=record.get("excerpt") or "",
            tags=record.get("tags") or [],
            featured_image=record.get("featured_image"),
            reading_time=record.get("reading_time") or 1,
            author=record.get("author"),
            created_at=record["created_at"],
            updated_at=record.get("updated_at") or record["created_at"],
        )


class PostSummary(BaseModel):
    """Compact post for the index page: no body, just the excerpt."""

    id: str
    title: str
    category: str
    excerpt: str
    tags: List[str] = Field(default_factory=list)
    featured_image: Optional[str] = None
    reading_time: int
    author: Optional[AuthorInfo] = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PostSummary":
        return cls(
            id=record["id"],
            title=record["title"],
            category=record.get("category") or "",
            excerpt=record.get("excerpt") or "",
            tags=record.get("tags") or [],
            featured_image=record.get("featured_image"),
            reading_time=record.get("reading_time") or 1,
            author=record.get("author"),
            created_at=record["created_at"],
        )


class PostListResponse(BaseModel):
    """
    What:  Response of GET /api/posts, newest first.

    storage_backend:
        "memory" tells the client that what it sees will not survive a server
        restart, so it can show a warning banner.
    """

    posts: List[PostSummary]
    total_count: int = Field(description="Posts matching the filters before the limit")
    storage_backend: str = Field(description="remote or memory")


class CategoryCount(BaseModel):
    name: str
    count: int


class CategoryListResponse(BaseModel):
    categories: List[CategoryCount]
