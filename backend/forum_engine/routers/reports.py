"""Report Queue 모더레이터 API 라우터입니다. 신고 목록/요약 조회와 검토 전이를 서비스 레이어로 위임합니다."""

from typing import Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from forum_engine.config import settings
from forum_engine.database import get_db
from forum_engine.middleware.auth_middleware import require_capability
from forum_engine.models.user import User
from forum_engine.schemas.report import ReportOut, ReportPage, ReportReview, StatusCount
from forum_engine.services import report_service
from forum_engine.utils.permissions import REVIEW_REPORTS

router = APIRouter(prefix="/api/forum/reports", tags=["forum-reports"])


@router.get("", response_model=ReportPage)
def list_reports(
    type: str = Query("all"),
    status: str = Query("pending"),
    reason_category: str | None = Query(None),
    board_id: int | None = Query(None),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    _: User = Depends(require_capability(REVIEW_REPORTS)),
):
    return report_service.list_reports(
        db,
        reasons=settings.report_reasons(),
        type=type,
        status=status,
        reason_category=reason_category or None,
        board_id=board_id,
        search=search,
        page=page,
        per_page=per_page,
        default_per_page=settings.FORUM_REPORTS_PER_PAGE,
    )


@router.get("/summary", response_model=Dict[str, StatusCount])
def report_summary(
    db: Session = Depends(get_db),
    _: User = Depends(require_capability(REVIEW_REPORTS)),
):
    return report_service.status_summary(db)


@router.put("/{target_type}/{report_id}", response_model=ReportOut)
def review_report(
    target_type: str,
    report_id: int,
    data: ReportReview,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(REVIEW_REPORTS)),
):
    report = report_service.review_report(
        db,
        target_type=target_type,
        report_id=report_id,
        status=data.status,
        reviewer=current_user,
        moderation_action=data.moderation_action,
    )
    return report_service.to_response(report, target_type)


@router.post("/{target_type}/{report_id}/reopen", response_model=ReportOut)
def reopen_report(
    target_type: str,
    report_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(REVIEW_REPORTS)),
):
    report = report_service.reopen_report(db, target_type=target_type, report_id=report_id, reviewer=current_user)
    return report_service.to_response(report, target_type)
