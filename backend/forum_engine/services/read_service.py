"""Read Tracker 서비스입니다. 사용자별 스레드 마지막 읽음 위치를 기록하고 미읽음 여부를 계산합니다."""

from typing import Iterable, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from forum_engine.models.forum import ForumPost, ForumThread
from forum_engine.models.thread_read import ForumThreadRead
from forum_engine.utils.helpers import utcnow


def get_read(db: Session, thread_id: int, user_id: int) -> ForumThreadRead | None:
    return (
        db.query(ForumThreadRead)
        .filter(
            ForumThreadRead.thread_id == thread_id,
            ForumThreadRead.user_id == user_id,
        )
        .first()
    )


def mark_read(db: Session, thread: ForumThread, user_id: int, post: ForumPost | None) -> ForumThreadRead:
    """(thread, user) 행을 upsert 한다. commit은 호출 측이 담당한다."""
    values = {
        "last_read_post_id": post.id if post is not None else None,
        "last_read_at": utcnow(),
    }
    row = get_read(db, thread.id, user_id)
    if row is None:
        row = ForumThreadRead(thread_id=thread.id, user_id=user_id)
        db.add(row)
    for key, value in values.items():
        setattr(row, key, value)
    db.flush()
    return row


def latest_post(db: Session, thread_id: int) -> ForumPost | None:
    return (
        db.query(ForumPost)
        .filter(ForumPost.thread_id == thread_id, ForumPost.deleted_at.is_(None))
        .order_by(ForumPost.created_at.desc(), ForumPost.id.desc())
        .first()
    )


def mark_thread_read(db: Session, thread: ForumThread, user_id: int) -> ForumThreadRead:
    return mark_read(db, thread, user_id, latest_post(db, thread.id))


def _read_marker(db: Session, row: ForumThreadRead):
    if row.last_read_post_id is not None:
        # 삭제된 게시글이어도 기준 시각으로 사용한다.
        created_at = (
            db.query(ForumPost.created_at)
            .filter(ForumPost.id == row.last_read_post_id)
            .scalar()
        )
        if created_at is not None:
            return created_at
    return row.last_read_at


def is_unread(db: Session, thread: ForumThread, user_id: int) -> bool:
    row = get_read(db, thread.id, user_id)
    if row is None:
        return True
    marker = _read_marker(db, row)
    q = db.query(ForumPost.id).filter(
        ForumPost.thread_id == thread.id,
        ForumPost.deleted_at.is_(None),
    )
    if marker is not None:
        q = q.filter(ForumPost.created_at > marker)
    if row.last_read_post_id is not None:
        q = q.filter(ForumPost.id != row.last_read_post_id)
    return q.first() is not None


def unread_thread_ids(db: Session, threads: Iterable[ForumThread], user_id: int) -> Set[int]:
    threads = list(threads)
    if not threads:
        return set()
    thread_ids = [t.id for t in threads]
    rows = {
        row.thread_id: row
        for row in db.query(ForumThreadRead)
        .filter(
            ForumThreadRead.user_id == user_id,
            ForumThreadRead.thread_id.in_(thread_ids),
        )
        .all()
    }
    latest = dict(
        db.query(ForumPost.thread_id, func.max(ForumPost.created_at))
        .filter(ForumPost.thread_id.in_(thread_ids), ForumPost.deleted_at.is_(None))
        .group_by(ForumPost.thread_id)
        .all()
    )
    unread = set()
    for thread in threads:
        row = rows.get(thread.id)
        if row is None:
            unread.add(thread.id)
            continue
        newest = latest.get(thread.id)
        marker = _read_marker(db, row)
        if newest is not None and marker is not None and newest > marker:
            unread.add(thread.id)
    return unread
