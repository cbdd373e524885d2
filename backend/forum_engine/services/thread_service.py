"""Thread Lifecycle 도메인 서비스 레이어입니다. 스레드 공개/잠금/고정 상태 전이와 최근 활동 필드를 관리합니다."""

import logging
import secrets
import string
from typing import Any, Dict, List

from slugify import slugify
from sqlalchemy import case, func
from sqlalchemy.orm import Session, aliased

from forum_engine.config import settings
from forum_engine.errors import ForbiddenError, NotFoundError, ValidationError
from forum_engine.models.forum import ForumBoard, ForumPost, ForumThread
from forum_engine.models.thread_read import ForumThreadRead
from forum_engine.models.user import User
from forum_engine.schemas.forum import ThreadCreate
from forum_engine.services import audit_service, read_service
from forum_engine.utils import pagination
from forum_engine.utils.helpers import limit_text, plain_text, utcnow
from forum_engine.utils.permissions import is_author, is_moderator

logger = logging.getLogger(__name__)

SUBJECT_TYPE = "forum_thread"

FLAG_EVENTS = {
    ("is_published", True): "forum.thread.published",
    ("is_published", False): "forum.thread.unpublished",
    ("is_locked", True): "forum.thread.locked",
    ("is_locked", False): "forum.thread.unlocked",
    ("is_pinned", True): "forum.thread.pinned",
    ("is_pinned", False): "forum.thread.unpinned",
}


def _ensure_moderator(current_user: User):
    if not is_moderator(current_user):
        raise ForbiddenError("모더레이터만 수행할 수 있습니다.")


def get_thread(db: Session, thread_id: int) -> ForumThread:
    thread = db.query(ForumThread).filter(ForumThread.id == thread_id).first()
    if not thread:
        raise NotFoundError("스레드를 찾을 수 없습니다.")
    return thread


def get_board_thread(db: Session, board_id: int, thread_id: int) -> ForumThread:
    thread = get_thread(db, thread_id)
    if int(thread.board_id) != int(board_id):
        raise NotFoundError("스레드를 찾을 수 없습니다.")
    return thread


def can_view(thread: ForumThread, current_user: User | None) -> bool:
    return bool(thread.is_published) or is_moderator(current_user)


def ensure_visible(thread: ForumThread, current_user: User | None):
    # 비공개 스레드는 일반 사용자에게 존재하지 않는 것처럼 보인다.
    if not can_view(thread, current_user):
        raise NotFoundError("스레드를 찾을 수 없습니다.")


def can_edit(thread: ForumThread, current_user: User | None) -> bool:
    if current_user is None:
        return False
    if is_moderator(current_user):
        return True
    return is_author(current_user, thread.author_id) and bool(thread.is_published) and not bool(thread.is_locked)


def can_reply(thread: ForumThread, current_user: User | None) -> bool:
    return current_user is not None and bool(thread.is_published) and not bool(thread.is_locked)


def permissions_for(thread: ForumThread, current_user: User | None) -> Dict[str, bool]:
    return {
        "canModerate": is_moderator(current_user),
        "canEdit": can_edit(thread, current_user),
        "canReport": current_user is not None and not is_author(current_user, thread.author_id),
        "canReply": can_reply(thread, current_user),
    }


def audit_context(thread: ForumThread) -> Dict[str, Any]:
    board = thread.board
    return {
        "board_id": thread.board_id,
        "board_slug": board.slug if board is not None else None,
        "thread_id": thread.id,
        "thread_slug": thread.slug,
        "thread_title": thread.title,
    }


def _unique_thread_slug(db: Session, title: str) -> str:
    base = slugify(title)[:240] or "thread"
    alphabet = string.ascii_lowercase + string.digits
    while True:
        candidate = f"{base}-{''.join(secrets.choice(alphabet) for _ in range(6))}"
        if not db.query(ForumThread.id).filter(ForumThread.slug == candidate).first():
            return candidate


def create_thread(db: Session, board_id: int, data: ThreadCreate, current_user: User) -> ForumThread:
    board = db.query(ForumBoard).filter(ForumBoard.id == board_id).first()
    if not board:
        raise NotFoundError("게시판을 찾을 수 없습니다.")
    title = (data.title or "").strip()
    if not title:
        raise ValidationError("스레드 제목을 입력해주세요.")
    body = (data.body or "").strip()
    body_text = plain_text(body)
    if not body_text:
        raise ValidationError("본문을 입력해주세요.")

    now = utcnow()
    thread = ForumThread(
        board_id=board.id,
        author_id=current_user.user_id,
        title=title,
        slug=_unique_thread_slug(db, title),
        excerpt=limit_text(body_text, 160),
        created_at=now,
        last_posted_at=now,
        last_post_user_id=current_user.user_id,
    )
    db.add(thread)
    db.flush()

    initial_post = ForumPost(thread_id=thread.id, author_id=current_user.user_id, body=body, created_at=now)
    db.add(initial_post)
    db.flush()
    advance_last_post(thread, initial_post)
    read_service.mark_read(db, thread, current_user.user_id, initial_post)
    db.commit()
    db.refresh(thread)
    logger.info("[forum] thread created id=%s board=%s author=%s", thread.id, board.id, current_user.user_id)
    return thread


def _serialize_thread(
    thread: ForumThread,
    post_count: int | None = None,
    has_unread: bool | None = None,
) -> ForumThread:
    if post_count is not None:
        setattr(thread, "reply_count", max(int(post_count) - 1, 0))
    if has_unread is not None:
        setattr(thread, "has_unread", bool(has_unread))
    return thread


def _live_post_counts(db: Session, thread_ids: List[int]) -> Dict[int, int]:
    if not thread_ids:
        return {}
    return dict(
        db.query(ForumPost.thread_id, func.count(ForumPost.id))
        .filter(ForumPost.thread_id.in_(thread_ids), ForumPost.deleted_at.is_(None))
        .group_by(ForumPost.thread_id)
        .all()
    )


def list_threads(
    db: Session,
    board_id: int,
    current_user: User | None,
    search: str | None = None,
    page: int = 1,
    per_page: int | None = None,
) -> Dict[str, Any]:
    """게시판 스레드 목록. 고정 > (로그인 시) 미읽음 > 최근 활동 순으로 정렬한다."""
    board = db.query(ForumBoard).filter(ForumBoard.id == board_id).first()
    if not board:
        raise NotFoundError("게시판을 찾을 수 없습니다.")

    query = db.query(ForumThread).filter(ForumThread.board_id == board.id)
    if not is_moderator(current_user):
        query = query.filter(ForumThread.is_published == True)  # noqa: E712
    keyword = (search or "").strip()
    if keyword:
        query = query.filter(ForumThread.title.ilike(f"%{keyword}%"))

    order_by = [ForumThread.is_pinned.desc()]
    if current_user is not None:
        # has_unread 와 같은 기준: 마지막으로 읽은 게시글의 작성 시각, 없으면 읽은 시각.
        read_post = aliased(ForumPost)
        query = query.outerjoin(
            ForumThreadRead,
            (ForumThreadRead.thread_id == ForumThread.id) & (ForumThreadRead.user_id == current_user.user_id),
        ).outerjoin(read_post, read_post.id == ForumThreadRead.last_read_post_id)
        read_marker = func.coalesce(read_post.created_at, ForumThreadRead.last_read_at)
        order_by.append(
            case(
                (ForumThreadRead.id.is_(None), 1),
                (ForumThread.last_posted_at.is_(None), 0),
                (read_marker.is_(None), 0),
                (ForumThread.last_posted_at > read_marker, 1),
                else_=0,
            ).desc()
        )
    order_by.extend([ForumThread.last_posted_at.desc(), ForumThread.created_at.desc(), ForumThread.id.desc()])

    result = pagination.paginate_query(
        query.order_by(*order_by),
        page,
        per_page,
        default_per_page=settings.FORUM_THREADS_PER_PAGE,
    )
    threads = result["data"]
    counts = _live_post_counts(db, [t.id for t in threads])
    unread = read_service.unread_thread_ids(db, threads, current_user.user_id) if current_user is not None else set()
    result["data"] = [
        _serialize_thread(
            thread,
            post_count=counts.get(thread.id, 0),
            has_unread=current_user is not None and thread.id in unread,
        )
        for thread in threads
    ]
    return result


def open_thread(db: Session, board_id: int, thread_id: int, current_user: User | None) -> ForumThread:
    """상세 조회 진입점. 계층/공개 여부를 확인하고 조회수를 올린다."""
    thread = get_board_thread(db, board_id, thread_id)
    ensure_visible(thread, current_user)
    increment_views(db, thread)
    db.refresh(thread)
    return _serialize_thread(thread, post_count=_live_post_counts(db, [thread.id]).get(thread.id, 0))


def increment_views(db: Session, thread: ForumThread):
    db.query(ForumThread).filter(ForumThread.id == thread.id).update(
        {"views": ForumThread.views + 1},
        synchronize_session=False,
    )
    db.commit()


def advance_last_post(thread: ForumThread, post: ForumPost) -> bool:
    """게시글 시각이 현재 포인터 이상일 때만 최근 활동 필드를 갱신한다."""
    posted_at = post.created_at or utcnow()
    if thread.last_posted_at is not None and posted_at < thread.last_posted_at:
        return False
    thread.last_posted_at = posted_at
    thread.last_post_user_id = post.author_id
    return True


def refresh_last_post(db: Session, thread: ForumThread) -> ForumThread:
    """삭제되지 않은 최신 게시글에서 최근 활동 필드를 다시 계산한다. 게시글이 없으면 스레드 생성 정보로 되돌린다."""
    db.flush()
    latest = read_service.latest_post(db, thread.id)
    if latest is not None:
        thread.last_posted_at = latest.created_at
        thread.last_post_user_id = latest.author_id
    else:
        thread.last_posted_at = thread.created_at
        thread.last_post_user_id = thread.author_id
    return thread


def apply_flag(db: Session, thread: ForumThread, field: str, value: bool, actor: User | None) -> bool:
    """플래그를 value로 맞춘다. 이미 같은 상태면 아무 것도 하지 않고 False를 돌려준다. commit하지 않는다."""
    event_name = FLAG_EVENTS.get((field, bool(value)))
    if event_name is None:
        raise ValidationError(f"알 수 없는 스레드 상태입니다: {field}")
    current = bool(getattr(thread, field))
    if current == bool(value):
        return False
    setattr(thread, field, bool(value))
    context = audit_context(thread)
    context["changes"] = {field: {"from": current, "to": bool(value)}}
    audit_service.record(
        db,
        event_name=event_name,
        subject_type=SUBJECT_TYPE,
        subject_id=thread.id,
        actor_id=actor.user_id if actor is not None else None,
        before={field: current},
        after={field: bool(value)},
        context=context,
    )
    return True


def _toggle(db: Session, thread: ForumThread, field: str, value: bool, current_user: User) -> ForumThread:
    _ensure_moderator(current_user)
    if apply_flag(db, thread, field, value, current_user):
        db.commit()
        db.refresh(thread)
        logger.info("[forum] thread %s %s=%s by %s", thread.id, field, value, current_user.user_id)
    return thread


def publish(db: Session, thread: ForumThread, current_user: User) -> ForumThread:
    return _toggle(db, thread, "is_published", True, current_user)


def unpublish(db: Session, thread: ForumThread, current_user: User) -> ForumThread:
    return _toggle(db, thread, "is_published", False, current_user)


def lock(db: Session, thread: ForumThread, current_user: User) -> ForumThread:
    return _toggle(db, thread, "is_locked", True, current_user)


def unlock(db: Session, thread: ForumThread, current_user: User) -> ForumThread:
    return _toggle(db, thread, "is_locked", False, current_user)


def pin(db: Session, thread: ForumThread, current_user: User) -> ForumThread:
    return _toggle(db, thread, "is_pinned", True, current_user)


def unpin(db: Session, thread: ForumThread, current_user: User) -> ForumThread:
    return _toggle(db, thread, "is_pinned", False, current_user)


def update_title(db: Session, thread: ForumThread, title: str, current_user: User) -> ForumThread:
    if not can_edit(thread, current_user):
        raise ForbiddenError("스레드 제목을 수정할 권한이 없습니다.")
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("스레드 제목은 비워둘 수 없습니다.")
    original = thread.title
    if cleaned == original:
        return thread
    thread.title = cleaned
    context = audit_context(thread)
    context["changes"] = {"title": {"from": original, "to": cleaned}}
    audit_service.record(
        db,
        event_name="forum.thread.title_updated",
        subject_type=SUBJECT_TYPE,
        subject_id=thread.id,
        actor_id=current_user.user_id,
        before={"title": original},
        after={"title": cleaned},
        context=context,
    )
    db.commit()
    db.refresh(thread)
    return thread


def delete_thread(db: Session, thread: ForumThread, current_user: User):
    """스레드를 영구 삭제한다. 삭제 후에는 행이 없으므로 스냅샷을 먼저 감사 이벤트로 남긴다."""
    _ensure_moderator(current_user)
    snapshot = {"id": thread.id, "title": thread.title, "slug": thread.slug}
    audit_service.record(
        db,
        event_name="forum.thread.deleted",
        subject_type=SUBJECT_TYPE,
        subject_id=thread.id,
        actor_id=current_user.user_id,
        before=snapshot,
        after=None,
        context=audit_context(thread),
    )
    db.delete(thread)
    db.commit()
    logger.info("[forum] thread deleted id=%s by %s", snapshot["id"], current_user.user_id)
