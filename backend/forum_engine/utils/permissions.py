"""역할 -> 권한(capability) 매핑과 공용 권한 검사 헬퍼입니다."""

from typing import Dict, FrozenSet

from forum_engine.models.user import User


ADMIN = "admin"
EDITOR = "editor"
MODERATOR = "moderator"
MEMBER = "member"

MODERATE = "forum.moderate"
RESTORE_REVISION = "forum.posts.restore"
VIEW_HISTORY = "forum.posts.view_history"
REVIEW_REPORTS = "forum.reports.review"
ACP_VIEW = "forums.acp.view"
ACP_CREATE = "forums.acp.create"
ACP_EDIT = "forums.acp.edit"
ACP_DELETE = "forums.acp.delete"

_MODERATION_CAPABILITIES = frozenset({MODERATE, RESTORE_REVISION, VIEW_HISTORY, REVIEW_REPORTS})
_ACP_CAPABILITIES = frozenset({ACP_VIEW, ACP_CREATE, ACP_EDIT, ACP_DELETE})


ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    ADMIN: _MODERATION_CAPABILITIES | _ACP_CAPABILITIES,
    EDITOR: _MODERATION_CAPABILITIES | frozenset({ACP_VIEW}),
    MODERATOR: _MODERATION_CAPABILITIES,
    MEMBER: frozenset(),
}


def can(user: User | None, capability: str) -> bool:
    if user is None or user.is_active is False:
        return False
    return capability in ROLE_CAPABILITIES.get(user.role, frozenset())


def is_moderator(user: User | None) -> bool:
    return can(user, MODERATE)


def is_author(user: User | None, author_id: int | None) -> bool:
    return user is not None and author_id is not None and int(user.user_id) == int(author_id)
