"""Report Queue 도메인 서비스 레이어입니다. 스레드/게시글 신고 접수와 모더레이터 검토 흐름을 담당합니다.

신고 사유 목록은 전역 설정을 직접 읽지 않고 호출 측에서 reasons 인자로 주입받습니다.
"""

import logging
from typing import Any, Dict, List, Mapping

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from forum_engine.errors import ForbiddenError, NotFoundError, ValidationError
from forum_engine.models.forum import ForumBoard, ForumPost, ForumThread
from forum_engine.models.report import (
    STATUS_PENDING,
    STATUSES,
    ForumPostReport,
    ForumThreadReport,
)
from forum_engine.models.user import User
from forum_engine.services import post_service, thread_service
from forum_engine.utils import pagination
from forum_engine.utils.helpers import clean_optional, limit_text, plain_text, utcnow
from forum_engine.utils.permissions import REVIEW_REPORTS, can

logger = logging.getLogger(__name__)

TARGET_THREAD = "thread"
TARGET_POST = "post"
TARGET_TYPES = (TARGET_THREAD, TARGET_POST)
FILTER_TYPES = ("all", *TARGET_TYPES)
STATUS_FILTERS = ("all", *STATUSES)

NO_ACTION = "none"
THREAD_ACTIONS = {
    "lock_thread": ("is_locked", True),
    "unlock_thread": ("is_locked", False),
    "unpublish_thread": ("is_published", False),
    "republish_thread": ("is_published", True),
}
POST_ACTIONS = ("delete_post",)

_url_adapter = TypeAdapter(AnyHttpUrl)

REPORT_MODELS = {
    TARGET_THREAD: ForumThreadReport,
    TARGET_POST: ForumPostReport,
}


def _model_for(target_type: str):
    model = REPORT_MODELS.get(target_type)
    if model is None:
        raise ValidationError(f"알 수 없는 신고 대상입니다: {target_type}")
    return model


def _target_column(model):
    return model.thread_id if model is ForumThreadReport else model.post_id


def find_report(db: Session, model, target_id: int, reporter_id: int):
    return (
        db.query(model)
        .filter(_target_column(model) == target_id, model.reporter_id == reporter_id)
        .first()
    )


def validate_reason_category(reason_category: str | None, reasons: Mapping[str, str]) -> str:
    value = (reason_category or "").strip()
    if not value or value not in reasons:
        raise ValidationError("허용되지 않은 신고 사유입니다.")
    return value


def validate_evidence_url(evidence_url: str | None) -> str | None:
    value = clean_optional(evidence_url)
    if value is None:
        return None
    if len(value) > 2048:
        raise ValidationError("증거 URL이 너무 깁니다.")
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        raise ValidationError("증거 URL 형식이 올바르지 않습니다.")
    return value


def _resolve_target(db: Session, target_type: str, target_id: int, reporter: User):
    if target_type == TARGET_THREAD:
        thread = thread_service.get_thread(db, target_id)
        thread_service.ensure_visible(thread, reporter)
        return thread
    post = post_service.get_post_including_deleted(db, target_id)
    if post is None or post.deleted_at is not None:
        raise NotFoundError("게시글을 찾을 수 없습니다.")
    thread_service.ensure_visible(post.thread, reporter)
    return post


def file_report(
    db: Session,
    *,
    target_type: str,
    target_id: int,
    reporter: User,
    reason_category: str,
    reasons: Mapping[str, str],
    reason: str | None = None,
    evidence_url: str | None = None,
):
    """(대상, 신고자) 단위로 신고를 upsert 한다. 재신고는 기존 행의 사유/증거를 갱신하고 대기 상태로 되돌린다."""
    if reporter is None:
        raise ForbiddenError("로그인이 필요합니다.")
    model = _model_for(target_type)
    category = validate_reason_category(reason_category, reasons)
    values = {
        "reason_category": category,
        "reason": clean_optional(reason),
        "evidence_url": validate_evidence_url(evidence_url),
        "status": STATUS_PENDING,
        "reviewed_at": None,
        "reviewed_by": None,
    }
    target = _resolve_target(db, target_type, target_id, reporter)
    target_column = _target_column(model)

    report = find_report(db, model, target.id, reporter.user_id)
    if report is None:
        try:
            with db.begin_nested():
                report = model(reporter_id=reporter.user_id, **{target_column.key: target.id}, **values)
                db.add(report)
        except IntegrityError:
            # 같은 신고자의 동시 첫 신고. 유니크 제약으로 막힌 쪽은 기존 행을 갱신한다.
            report = find_report(db, model, target.id, reporter.user_id)
            if report is None:
                raise
            logger.info(
                "[report] concurrent %s report target=%s reporter=%s, updating existing row",
                target_type,
                target.id,
                reporter.user_id,
            )
            for key, value in values.items():
                setattr(report, key, value)
    else:
        for key, value in values.items():
            setattr(report, key, value)
    db.commit()
    db.refresh(report)
    logger.info(
        "[report] %s report id=%s target=%s reporter=%s category=%s",
        target_type,
        report.id,
        target.id,
        reporter.user_id,
        category,
    )
    return report


def get_report(db: Session, target_type: str, report_id: int):
    model = _model_for(target_type)
    report = db.query(model).filter(model.id == report_id).first()
    if not report:
        raise NotFoundError("신고를 찾을 수 없습니다.")
    return report


def _normalize_action(target_type: str, moderation_action: str | None) -> str | None:
    action = (moderation_action or NO_ACTION).strip() or NO_ACTION
    if action == NO_ACTION:
        return None
    allowed = THREAD_ACTIONS if target_type == TARGET_THREAD else POST_ACTIONS
    if action not in allowed:
        raise ValidationError(f"허용되지 않은 조치입니다: {action}")
    return action


def _apply_action(db: Session, target_type: str, report, action: str, reviewer: User) -> bool:
    if target_type == TARGET_THREAD:
        thread = report.thread
        if thread is None:
            return False
        field, value = THREAD_ACTIONS[action]
        return thread_service.apply_flag(db, thread, field, value, reviewer)
    post = post_service.get_post_including_deleted(db, report.post_id)
    if post is None or post.deleted_at is not None:
        return False
    return post_service.soft_delete(db, post)


def review_report(
    db: Session,
    *,
    target_type: str,
    report_id: int,
    status: str,
    reviewer: User,
    moderation_action: str | None = None,
):
    """신고 상태를 전이시키고 필요하면 같은 트랜잭션에서 대상 콘텐츠에 조치를 적용한다."""
    if not can(reviewer, REVIEW_REPORTS):
        raise ForbiddenError("신고 검토 권한이 없습니다.")
    if status not in STATUSES:
        raise ValidationError(f"알 수 없는 신고 상태입니다: {status}")
    action = _normalize_action(target_type, moderation_action)
    report = get_report(db, target_type, report_id)

    report.status = status
    if status == STATUS_PENDING:
        report.reviewed_at = None
        report.reviewed_by = None
    else:
        report.reviewed_at = utcnow()
        report.reviewed_by = reviewer.user_id

    applied = False
    if action is not None:
        # 대상이 이미 사라졌으면 조치만 건너뛰고 상태 전이는 유지한다.
        applied = _apply_action(db, target_type, report, action, reviewer)
    db.commit()
    db.refresh(report)
    logger.info(
        "[report] %s report id=%s -> %s action=%s applied=%s by %s",
        target_type,
        report.id,
        status,
        action,
        applied,
        reviewer.user_id,
    )
    return report


def reopen_report(db: Session, *, target_type: str, report_id: int, reviewer: User):
    return review_report(db, target_type=target_type, report_id=report_id, status=STATUS_PENDING, reviewer=reviewer)


def _user_summary(user: User | None) -> Dict[str, Any] | None:
    if user is None:
        return None
    return {"id": user.user_id, "nickname": user.nickname}


def _thread_summary(thread: ForumThread | None) -> Dict[str, Any] | None:
    if thread is None:
        return None
    board = thread.board
    return {
        "id": thread.id,
        "title": thread.title,
        "slug": thread.slug,
        "is_locked": bool(thread.is_locked),
        "is_published": bool(thread.is_published),
        "board": {"id": board.id, "title": board.title, "slug": board.slug} if board is not None else None,
    }


def to_response(report, target_type: str) -> Dict[str, Any]:
    payload = {
        "id": report.id,
        "type": target_type,
        "status": report.status,
        "reason_category": report.reason_category,
        "reason": report.reason,
        "evidence_url": report.evidence_url,
        "created_at": report.created_at,
        "reviewed_at": report.reviewed_at,
        "reviewed_by": report.reviewed_by,
        "reporter": _user_summary(report.reporter),
        "thread": None,
        "post": None,
    }
    if target_type == TARGET_THREAD:
        payload["thread"] = _thread_summary(report.thread)
    else:
        post = report.post
        if post is not None:
            payload["post"] = {
                "id": post.id,
                "body_preview": limit_text(plain_text(post.body), 160),
                "author": _user_summary(post.author),
                "is_deleted": post.deleted_at is not None,
            }
            payload["thread"] = _thread_summary(post.thread)
    return payload


def list_reports(
    db: Session,
    *,
    reasons: Mapping[str, str],
    type: str | None = None,
    status: str | None = None,
    reason_category: str | None = None,
    board_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int | None = None,
    default_per_page: int = 25,
) -> Dict[str, Any]:
    """스레드/게시글 신고를 각각 조회한 뒤 합쳐 created_at 내림차순으로 정렬하고 메모리에서 페이지를 자른다."""
    report_type = type or "all"
    if report_type not in FILTER_TYPES:
        raise ValidationError(f"알 수 없는 신고 유형입니다: {report_type}")
    status = status or STATUS_PENDING
    if status not in STATUS_FILTERS:
        raise ValidationError(f"알 수 없는 신고 상태입니다: {status}")
    if reason_category is not None:
        reason_category = validate_reason_category(reason_category, reasons)
    if board_id is not None and not db.query(ForumBoard.id).filter(ForumBoard.id == board_id).first():
        raise ValidationError("존재하지 않는 게시판입니다.")
    keyword = (search or "").strip() or None

    rows: List[Dict[str, Any]] = []

    if report_type in ("all", TARGET_THREAD):
        q = db.query(ForumThreadReport).join(ForumThread, ForumThread.id == ForumThreadReport.thread_id)
        if status != "all":
            q = q.filter(ForumThreadReport.status == status)
        if reason_category is not None:
            q = q.filter(ForumThreadReport.reason_category == reason_category)
        if board_id is not None:
            q = q.filter(ForumThread.board_id == board_id)
        if keyword is not None:
            q = q.filter(ForumThread.title.ilike(f"%{keyword}%"))
        rows.extend(to_response(report, TARGET_THREAD) for report in q.all())

    if report_type in ("all", TARGET_POST):
        q = (
            db.query(ForumPostReport)
            .join(ForumPost, ForumPost.id == ForumPostReport.post_id)
            .join(ForumThread, ForumThread.id == ForumPost.thread_id)
        )
        if status != "all":
            q = q.filter(ForumPostReport.status == status)
        if reason_category is not None:
            q = q.filter(ForumPostReport.reason_category == reason_category)
        if board_id is not None:
            q = q.filter(ForumThread.board_id == board_id)
        if keyword is not None:
            q = q.filter(ForumThread.title.ilike(f"%{keyword}%"))
        rows.extend(to_response(report, TARGET_POST) for report in q.all())

    rows.sort(key=lambda row: (row["created_at"] is not None, row["created_at"], row["id"]), reverse=True)
    result = pagination.paginate_list(rows, page, per_page, default_per_page=default_per_page)
    result["filters"] = {
        "type": report_type,
        "status": status,
        "reason_category": reason_category,
        "board_id": board_id,
        "search": keyword,
        "per_page": result["per_page"],
    }
    return result


def status_summary(db: Session) -> Dict[str, Dict[str, int]]:
    thread_counts = dict(
        db.query(ForumThreadReport.status, func.count(ForumThreadReport.id))
        .group_by(ForumThreadReport.status)
        .all()
    )
    post_counts = dict(
        db.query(ForumPostReport.status, func.count(ForumPostReport.id))
        .group_by(ForumPostReport.status)
        .all()
    )
    summary = {}
    for status in STATUSES:
        threads = int(thread_counts.get(status, 0))
        posts = int(post_counts.get(status, 0))
        summary[status] = {"threads": threads, "posts": posts, "total": threads + posts}
    return summary


def reason_options(reasons: Mapping[str, str]) -> List[Dict[str, str]]:
    return [{"value": key, "label": label} for key, label in reasons.items()]
