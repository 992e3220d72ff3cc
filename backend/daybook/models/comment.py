"""
Daybook Backend — Comment Document
===================================

Document fields:
    post_id     str, id of the parent post (indexed in MongoDB)
    author      {"user_id", "username"}, required
    content     str, ≤1000 chars, trimmed
    created_at  datetime (UTC)
    updated_at  datetime (UTC), refreshed on save
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

COMMENTS = "comments"


def new_comment_document(
    post_id: str,
    content: str,
    author: Dict[str, str],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    created = now or datetime.now(timezone.utc)
    return {
        "post_id": post_id,
        "author": author,
        "content": content,
        "created_at": created,
        "updated_at": created,
    }
