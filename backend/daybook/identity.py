"""
Daybook Backend — Caller Identity & Ownership Rules
====================================================

What:  Who is making the request, and what they may change.
Why:   User accounts are optional: anonymous visitors can read and write posts,
       signed-in users own what they write, and admins can moderate anything.
How:   Authentication itself happens upstream (a reverse proxy or auth gateway
       that verifies the session). It forwards the verified identity in
       headers, which this module turns into a Principal.

Headers:
    X-User-Id     stable user identifier (required for an identity)
    X-User-Name   display name (defaults to the user id)
    X-User-Role   admin | author | reader (defaults to reader)

Ownership Rules:
    create post       anonymous, author, admin (readers cannot publish)
    edit/delete post  anyone for anonymous posts; otherwise its author or an admin
    add comment       any signed-in user
    delete comment    the comment's author, the post's author, or an admin
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Header

from daybook.exceptions import ValidationError


class Role(str, Enum):
    """Roles a signed-in user can hold."""

    ADMIN = "admin"
    AUTHOR = "author"
    READER = "reader"


@dataclass(frozen=True)
class Principal:
    """The verified caller, as forwarded by the auth gateway."""

    user_id: str
    username: str
    role: Role = Role.READER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def as_author(self) -> Dict[str, str]:
        """The embedded author block stored on posts and comments."""
        return {"user_id": self.user_id, "username": self.username}


def _author_id(document: Dict[str, Any]) -> Optional[str]:
    author = document.get("author") or {}
    return author.get("user_id")


def can_create_post(principal: Optional[Principal]) -> bool:
    return principal is None or principal.role in (Role.AUTHOR, Role.ADMIN)


def can_modify_post(principal: Optional[Principal], post: Dict[str, Any]) -> bool:
    owner = _author_id(post)
    if owner is None:
        return True
    if principal is None:
        return False
    return principal.is_admin or principal.user_id == owner


def can_delete_comment(
    principal: Principal, comment: Dict[str, Any], post: Optional[Dict[str, Any]]
) -> bool:
    if principal.is_admin or principal.user_id == _author_id(comment):
        return True
    return post is not None and principal.user_id == _author_id(post)


async def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Optional[Principal]:
    """
    FastAPI dependency: the caller's identity, or None for anonymous requests.

    Raises:
        ValidationError: X-User-Role names a role that does not exist (→ 400)
    """
    if not x_user_id or not x_user_id.strip():
        return None
    role = Role.READER
    if x_user_role:
        try:
            role = Role(x_user_role.strip().lower())
        except ValueError:
            raise ValidationError(
                message=f"Unknown role '{x_user_role}'. Must be one of: admin, author, reader",
                field="X-User-Role",
            )
    user_id = x_user_id.strip()
    username = (x_user_name or "").strip() or user_id
    return Principal(user_id=user_id, username=username, role=role)
