"""Forum 기능 API 라우터입니다. 게시판/스레드/게시글/신고 접수/리비전 요청을 서비스 레이어로 위임합니다."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from forum_engine.config import settings
from forum_engine.database import get_db
from forum_engine.errors import NotFoundError
from forum_engine.middleware.auth_middleware import get_current_user, get_optional_user
from forum_engine.models.forum import ForumThread
from forum_engine.models.user import User
from forum_engine.schemas.forum import (
    CategoryTreeOut,
    PostCreate,
    PostOut,
    PostUpdate,
    ThreadCreate,
    ThreadDetailOut,
    ThreadOut,
    ThreadPage,
    ThreadTitleUpdate,
)
from forum_engine.schemas.report import ReportCreate, ReportOut, ReportReasonOut
from forum_engine.schemas.revision import RevisionOut
from forum_engine.services import post_service, read_service, report_service, revision_service, structure_service, thread_service

router = APIRouter(prefix="/api/forum", tags=["forum"])


def _visible_thread(db: Session, board_id: int, thread_id: int, current_user: User | None) -> ForumThread:
    thread = thread_service.get_board_thread(db, board_id, thread_id)
    thread_service.ensure_visible(thread, current_user)
    return thread


@router.get("", response_model=List[CategoryTreeOut])
def forum_index(db: Session = Depends(get_db), current_user: User | None = Depends(get_optional_user)):
    return structure_service.list_index(db, current_user)


@router.get("/report-reasons", response_model=List[ReportReasonOut])
def list_report_reasons():
    return report_service.reason_options(settings.report_reasons())


@router.get("/boards/{board_id}/threads", response_model=ThreadPage)
def list_threads(
    board_id: int,
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    return thread_service.list_threads(db, board_id, current_user, search=search, page=page, per_page=per_page)


@router.post("/boards/{board_id}/threads", response_model=ThreadOut)
def create_thread(
    board_id: int,
    data: ThreadCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return thread_service.create_thread(db, board_id, data, current_user)


@router.get("/boards/{board_id}/threads/{thread_id}", response_model=ThreadDetailOut)
def get_thread(
    board_id: int,
    thread_id: int,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    thread = thread_service.open_thread(db, board_id, thread_id, current_user)
    posts = post_service.list_posts(db, thread, page=page)
    if current_user is not None:
        read_service.mark_thread_read(db, thread, current_user.user_id)
        db.commit()
    permissions = thread_service.permissions_for(thread, current_user)
    permissions["posts"] = {
        post.id: post_service.permissions_for(post, thread, current_user) for post in posts["data"]
    }
    return {"thread": thread, "posts": posts, "permissions": permissions}


@router.put("/boards/{board_id}/threads/{thread_id}", response_model=ThreadOut)
def update_thread_title(
    board_id: int,
    thread_id: int,
    data: ThreadTitleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    return thread_service.update_title(db, thread, data.title, current_user)


@router.delete("/boards/{board_id}/threads/{thread_id}")
def delete_thread(
    board_id: int,
    thread_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    thread_service.delete_thread(db, thread, current_user)
    return {"message": "삭제되었습니다."}


@router.post("/boards/{board_id}/threads/{thread_id}/read")
def mark_thread_read(
    board_id: int,
    thread_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    row = read_service.mark_thread_read(db, thread, current_user.user_id)
    db.commit()
    return {"thread_id": thread.id, "last_read_post_id": row.last_read_post_id}


@router.post("/boards/{board_id}/threads/{thread_id}/report", response_model=ReportOut)
def report_thread(
    board_id: int,
    thread_id: int,
    data: ReportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = thread_service.get_board_thread(db, board_id, thread_id)
    report = report_service.file_report(
        db,
        target_type=report_service.TARGET_THREAD,
        target_id=thread.id,
        reporter=current_user,
        reason_category=data.reason_category,
        reason=data.reason,
        evidence_url=data.evidence_url,
        reasons=settings.report_reasons(),
    )
    return report_service.to_response(report, report_service.TARGET_THREAD)


@router.post("/boards/{board_id}/threads/{thread_id}/posts", response_model=PostOut)
def create_post(
    board_id: int,
    thread_id: int,
    data: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    return post_service.create_post(db, thread, data.body, current_user)


@router.put("/boards/{board_id}/threads/{thread_id}/posts/{post_id}", response_model=PostOut)
def update_post(
    board_id: int,
    thread_id: int,
    post_id: int,
    data: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    post = post_service.get_post(db, thread, post_id)
    # 본문이 실제로 바뀌는 수정만 이전 본문을 리비전으로 남긴다.
    if post_service.can_edit(post, thread, current_user) and (data.body or "").strip() != post.body:
        revision_service.record_snapshot(db, post, current_user)
    return post_service.edit_post(db, post, data.body, current_user)


@router.delete("/boards/{board_id}/threads/{thread_id}/posts/{post_id}")
def delete_post(
    board_id: int,
    thread_id: int,
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    post = post_service.get_post(db, thread, post_id)
    post_service.delete_post(db, post, current_user)
    return {"message": "삭제되었습니다."}


@router.post("/boards/{board_id}/threads/{thread_id}/posts/{post_id}/report", response_model=ReportOut)
def report_post(
    board_id: int,
    thread_id: int,
    post_id: int,
    data: ReportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = thread_service.get_board_thread(db, board_id, thread_id)
    post = post_service.get_post(db, thread, post_id)
    report = report_service.file_report(
        db,
        target_type=report_service.TARGET_POST,
        target_id=post.id,
        reporter=current_user,
        reason_category=data.reason_category,
        reason=data.reason,
        evidence_url=data.evidence_url,
        reasons=settings.report_reasons(),
    )
    return report_service.to_response(report, report_service.TARGET_POST)


@router.get("/boards/{board_id}/threads/{thread_id}/posts/{post_id}/revisions", response_model=List[RevisionOut])
def list_revisions(
    board_id: int,
    thread_id: int,
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    post = post_service.get_post(db, thread, post_id)
    rows = revision_service.list_revisions(db, post, current_user)
    return [revision_service.to_response(row) for row in rows]


@router.post(
    "/boards/{board_id}/threads/{thread_id}/posts/{post_id}/revisions/{revision_id}/restore",
    response_model=PostOut,
)
def restore_revision(
    board_id: int,
    thread_id: int,
    post_id: int,
    revision_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    thread = _visible_thread(db, board_id, thread_id, current_user)
    post = post_service.get_post(db, thread, post_id)
    revision = revision_service.get_revision(db, post, revision_id)
    return revision_service.restore(db, post, revision, current_user)

THREAD_TOGGLES = {
    "publish": thread_service.publish,
    "unpublish": thread_service.unpublish,
    "lock": thread_service.lock,
    "unlock": thread_service.unlock,
    "pin": thread_service.pin,
    "unpin": thread_service.unpin,
}


@router.post("/boards/{board_id}/threads/{thread_id}/{action}", response_model=ThreadOut)
def moderate_thread(
    board_id: int,
    thread_id: int,
    action: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    toggle = THREAD_TOGGLES.get(action)
    if toggle is None:
        raise NotFoundError("지원하지 않는 스레드 작업입니다.")
    thread = _visible_thread(db, board_id, thread_id, current_user)
    return toggle(db, thread, current_user)


