"""Post Ledger 도메인 서비스 레이어입니다. 게시글 작성/수정/삭제와 스레드 최근 게시글 포인터 정합성을 담당합니다."""

import logging
import math
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from forum_engine.config import settings
from forum_engine.errors import ForbiddenError, NotFoundError, ValidationError
from forum_engine.models.forum import ForumPost, ForumThread
from forum_engine.models.user import User
from forum_engine.services import read_service, thread_service
from forum_engine.utils import pagination
from forum_engine.utils.helpers import plain_text, utcnow
from forum_engine.utils.permissions import is_author, is_moderator

logger = logging.getLogger(__name__)


def _clean_body(body: str | None, message: str) -> str:
    cleaned = (body or "").strip()
    if not plain_text(cleaned):
        raise ValidationError(message)
    return cleaned


def _live_posts(db: Session, thread_id: int):
    return db.query(ForumPost).filter(
        ForumPost.thread_id == thread_id,
        ForumPost.deleted_at.is_(None),
    )


def count_posts(db: Session, thread_id: int) -> int:
    return (
        db.query(func.count(ForumPost.id))
        .filter(ForumPost.thread_id == thread_id, ForumPost.deleted_at.is_(None))
        .scalar()
        or 0
    )


def page_for_count(post_count: int, page_size: int | None = None) -> int:
    page_size = max(int(page_size or settings.FORUM_POSTS_PER_PAGE), 1)
    return max(1, math.ceil(post_count / page_size))


def get_post(db: Session, thread: ForumThread, post_id: int) -> ForumPost:
    post = _live_posts(db, thread.id).filter(ForumPost.id == post_id).first()
    if not post:
        raise NotFoundError("게시글을 찾을 수 없습니다.")
    return post


def get_post_including_deleted(db: Session, post_id: int) -> ForumPost | None:
    # 신고 대상 확인 전용 조회 경로. 삭제된 게시글도 돌려준다.
    return db.query(ForumPost).filter(ForumPost.id == post_id).first()


def list_posts(
    db: Session,
    thread: ForumThread,
    page: int = 1,
    per_page: int | None = None,
) -> Dict[str, Any]:
    result = pagination.paginate_query(
        _live_posts(db, thread.id).order_by(ForumPost.created_at.asc(), ForumPost.id.asc()),
        page,
        per_page,
        default_per_page=settings.FORUM_POSTS_PER_PAGE,
    )
    offset = (result["current_page"] - 1) * result["per_page"]
    for index, post in enumerate(result["data"]):
        setattr(post, "number", offset + index + 1)
    return result


def create_post(db: Session, thread: ForumThread, body: str, current_user: User) -> ForumPost:
    if current_user is None:
        raise ForbiddenError("로그인이 필요합니다.")
    # 같은 스레드로의 동시 작성은 스레드 행 잠금으로 직렬화한다.
    locked = (
        db.query(ForumThread)
        .filter(ForumThread.id == thread.id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if locked is None:
        raise NotFoundError("스레드를 찾을 수 없습니다.")
    if locked.is_locked or not locked.is_published:
        raise ForbiddenError("잠겼거나 비공개된 스레드에는 답글을 작성할 수 없습니다.")
    cleaned = _clean_body(body, "답글 내용을 입력해주세요.")

    post = ForumPost(thread_id=locked.id, author_id=current_user.user_id, body=cleaned, created_at=utcnow())
    db.add(post)
    db.flush()
    thread_service.advance_last_post(locked, post)
    read_service.mark_read(db, locked, current_user.user_id, post)
    db.commit()
    db.refresh(post)

    post_count = count_posts(db, locked.id)
    setattr(post, "number", post_count)
    setattr(post, "page", page_for_count(post_count))
    logger.info("[forum] post created id=%s thread=%s author=%s", post.id, locked.id, current_user.user_id)
    return post


def can_edit(post: ForumPost, thread: ForumThread, current_user: User | None) -> bool:
    if current_user is None:
        return False
    if is_moderator(current_user):
        return True
    return is_author(current_user, post.author_id) and bool(thread.is_published) and not bool(thread.is_locked)


def can_delete(post: ForumPost, current_user: User | None) -> bool:
    return is_author(current_user, post.author_id) or is_moderator(current_user)


def edit_post(db: Session, post: ForumPost, body: str, current_user: User) -> ForumPost:
    """본문을 교체한다. 수정 전 리비전 기록은 호출 측(revision_service.record_snapshot) 책임이다."""
    if not can_edit(post, post.thread, current_user):
        raise ForbiddenError("본인 게시글 또는 모더레이터만 수정 가능합니다.")
    post.body = _clean_body(body, "게시글 내용은 비워둘 수 없습니다.")
    post.edited_at = utcnow()
    db.commit()
    db.refresh(post)
    return post


def soft_delete(db: Session, post: ForumPost) -> bool:
    """삭제 표시 후 스레드 포인터를 다시 계산한다. commit하지 않는다."""
    if post.deleted_at is not None:
        return False
    post.deleted_at = utcnow()
    thread = post.thread
    if thread is not None:
        thread_service.refresh_last_post(db, thread)
    return True


def delete_post(db: Session, post: ForumPost, current_user: User):
    if not can_delete(post, current_user):
        raise ForbiddenError("본인 게시글 또는 모더레이터만 삭제 가능합니다.")
    if soft_delete(db, post):
        db.commit()
        logger.info("[forum] post deleted id=%s by %s", post.id, current_user.user_id)


def permissions_for(post: ForumPost, thread: ForumThread, current_user: User | None) -> Dict[str, bool]:
    return {
        "canReport": current_user is not None and not is_author(current_user, post.author_id),
        "canEdit": can_edit(post, thread, current_user),
        "canDelete": current_user is not None and can_delete(post, current_user),
        "canModerate": is_moderator(current_user),
    }
