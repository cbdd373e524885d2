"""신고 접수/검토 요청·응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ReportCreate(BaseModel):
    reason_category: str
    reason: Optional[str] = Field(None, max_length=1000)
    evidence_url: Optional[str] = Field(None, max_length=2048)


class ReportReview(BaseModel):
    status: str
    moderation_action: Optional[str] = None


class ReportOut(BaseModel):
    id: int
    type: str
    status: str
    reason_category: str
    reason: Optional[str] = None
    evidence_url: Optional[str] = None
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    reporter: Optional[Dict[str, Any]] = None
    thread: Optional[Dict[str, Any]] = None
    post: Optional[Dict[str, Any]] = None


class ReportPage(BaseModel):
    data: List[ReportOut]
    total: int
    current_page: int
    per_page: int
    last_page: int
    filters: Dict[str, Any] = {}


class StatusCount(BaseModel):
    threads: int
    posts: int
    total: int


class ReportReasonOut(BaseModel):
    value: str
    label: str
