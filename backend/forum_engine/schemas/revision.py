"""게시글 리비전 이력 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class RevisionOut(BaseModel):
    id: int
    post_id: int
    body: str
    edited_at: Optional[datetime] = None
    created_at: datetime
    editor: Optional[Dict[str, Any]] = None


class RevisionRestoreResult(BaseModel):
    message: str
    restored_revision_id: int
    post_id: int
    body: str
