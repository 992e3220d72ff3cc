"""
Daybook Backend — Post Document
================================

What:  Shape and save-time rules for a blog post record.
Why:   Both backends store loosely-typed dicts; the rules that a schema-aware
       ODM would run on save (timestamps, reading time, excerpt) live here so
       they behave identically for MongoDB and the in-memory fallback.
Who:   PostService, on create and on every update.

Document fields:
    title           str, ≤200 chars, trimmed
    body            str, ≤10000 chars
    category        str, ≤50 chars, default "Daily Reflections"
    excerpt         str, ≤200 chars; derived from body when empty
    tags            list[str], each ≤30 chars
    featured_image  str | None, URL of the header image
    reading_time    int, minutes at 200 words per minute (minimum 1)
    author          {"user_id", "username"} | None for anonymous posts
    created_at      datetime (UTC)
    updated_at      datetime (UTC), refreshed on every save
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

POSTS = "posts"

WORDS_PER_MINUTE = 200
EXCERPT_SOURCE_CHARS = 150


def estimate_reading_time(body: str) -> int:
    """Minutes to read `body`; words are counted by splitting on single spaces."""
    word_count = len(body.split(" "))
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def derive_excerpt(body: str) -> str:
    return body[:EXCERPT_SOURCE_CHARS] + "..."


def apply_save_rules(document: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Refresh the computed fields of a post before it is written.

    Mutates and returns `document`. Expects `body` to be present; callers
    applying a partial update merge it with the stored post first.
    """
    document["updated_at"] = now or datetime.now(timezone.utc)
    document["reading_time"] = estimate_reading_time(document.get("body", ""))
    if not document.get("excerpt"):
        document["excerpt"] = derive_excerpt(document.get("body", ""))
    return document


def new_post_document(
    title: str,
    body: str,
    category: str,
    excerpt: str = "",
    tags: Optional[List[str]] = None,
    featured_image: Optional[str] = None,
    author: Optional[Dict[str, str]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build a fresh post record with timestamps and computed fields."""
    created = now or datetime.now(timezone.utc)
    document: Dict[str, Any] = {
        "title": title,
        "body": body,
        "category": category,
        "excerpt": excerpt,
        "tags": list(tags or []),
        "featured_image": featured_image,
        "author": author,
        "created_at": created,
    }
    return apply_save_rules(document, now=created)
