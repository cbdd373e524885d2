"""게시글 리비전 저장/조회/복원 기능을 제공하는 도메인 서비스입니다. 이력은 추가만 가능합니다."""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from forum_engine.errors import ForbiddenError, NotFoundError
from forum_engine.models.forum import ForumPost
from forum_engine.models.revision import ForumPostRevision
from forum_engine.models.user import User
from forum_engine.utils.helpers import utcnow
from forum_engine.utils.permissions import RESTORE_REVISION, VIEW_HISTORY, can, is_author

logger = logging.getLogger(__name__)


def can_view_history(post: ForumPost, current_user: User | None) -> bool:
    return is_author(current_user, post.author_id) or can(current_user, VIEW_HISTORY)


def can_restore(post: ForumPost, current_user: User | None) -> bool:
    if can(current_user, RESTORE_REVISION):
        return True
    thread = post.thread
    if thread is None:
        return False
    return is_author(current_user, post.author_id) and bool(thread.is_published) and not bool(thread.is_locked)


def record_snapshot(db: Session, post: ForumPost, editor: User | None) -> ForumPostRevision:
    """덮어쓰기 전 현재 본문을 불변 리비전으로 남긴다. commit하지 않는다."""
    row = ForumPostRevision(
        post_id=post.id,
        editor_id=editor.user_id if editor is not None else None,
        body=post.body,
        edited_at=post.edited_at,
        created_at=utcnow(),
    )
    db.add(row)
    db.flush()
    return row


def list_revisions(db: Session, post: ForumPost, current_user: User) -> List[ForumPostRevision]:
    if not can_view_history(post, current_user):
        raise ForbiddenError("게시글 이력 조회 권한이 없습니다.")
    return (
        db.query(ForumPostRevision)
        .filter(ForumPostRevision.post_id == post.id)
        .order_by(ForumPostRevision.created_at.desc(), ForumPostRevision.id.desc())
        .all()
    )


def get_revision(db: Session, post: ForumPost, revision_id: int) -> ForumPostRevision:
    row = (
        db.query(ForumPostRevision)
        .filter(
            ForumPostRevision.id == revision_id,
            ForumPostRevision.post_id == post.id,
        )
        .first()
    )
    if not row:
        raise NotFoundError("리비전을 찾을 수 없습니다.")
    return row


def restore(db: Session, post: ForumPost, revision: ForumPostRevision, current_user: User) -> ForumPost:
    """현재 본문을 새 리비전으로 남긴 뒤 선택한 리비전 본문을 게시글에 적용한다."""
    if int(revision.post_id) != int(post.id):
        raise NotFoundError("리비전을 찾을 수 없습니다.")
    if not can_restore(post, current_user):
        raise ForbiddenError("리비전 복원 권한이 없습니다.")
    record_snapshot(db, post, current_user)
    post.body = revision.body
    post.edited_at = utcnow()
    db.commit()
    db.refresh(post)
    logger.info("[forum] post %s restored to revision %s by %s", post.id, revision.id, current_user.user_id)
    return post


def to_response(row: ForumPostRevision) -> Dict[str, Any]:
    editor = row.editor
    return {
        "id": row.id,
        "post_id": row.post_id,
        "body": row.body,
        "edited_at": row.edited_at,
        "created_at": row.created_at,
        "editor": {"id": editor.user_id, "nickname": editor.nickname} if editor is not None else None,
    }
