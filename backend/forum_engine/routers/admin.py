"""Forum ACP API 라우터입니다. 카테고리/게시판 생성·수정·삭제·정렬 요청을 구조 서비스로 위임합니다."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from forum_engine.database import get_db
from forum_engine.middleware.auth_middleware import get_current_user, require_capability
from forum_engine.models.user import User
from forum_engine.schemas.forum import (
    BoardCreate,
    BoardOut,
    BoardUpdate,
    CategoryCreate,
    CategoryOut,
    CategoryTreeOut,
    CategoryUpdate,
    ReorderRequest,
)
from forum_engine.services import audit_service, structure_service
from forum_engine.utils.permissions import ACP_VIEW

router = APIRouter(prefix="/api/forum/admin", tags=["forum-admin"])


@router.get("", response_model=List[CategoryTreeOut])
def acp_index(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(ACP_VIEW)),
):
    return structure_service.list_index(db, current_user)


@router.post("/categories", response_model=CategoryOut)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return structure_service.create_category(db, data, current_user)


@router.put("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return structure_service.update_category(db, category_id, data, current_user)


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    structure_service.delete_category(db, category_id, current_user)
    return {"message": "삭제되었습니다."}


@router.post("/categories/{category_id}/reorder", response_model=CategoryOut)
def reorder_category(
    category_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return structure_service.reorder_category(db, category_id, data.direction, current_user)


@router.post("/boards", response_model=BoardOut)
def create_board(
    data: BoardCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return structure_service.create_board(db, data, current_user)


@router.put("/boards/{board_id}", response_model=BoardOut)
def update_board(
    board_id: int,
    data: BoardUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return structure_service.update_board(db, board_id, data, current_user)


@router.delete("/boards/{board_id}")
def delete_board(
    board_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    structure_service.delete_board(db, board_id, current_user)
    return {"message": "삭제되었습니다."}


@router.post("/boards/{board_id}/reorder", response_model=BoardOut)
def reorder_board(
    board_id: int,
    data: ReorderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return structure_service.reorder_board(db, board_id, data.direction, current_user)


@router.get("/audit")
def list_audit_events(
    subject_type: str | None = None,
    subject_id: int | None = None,
    event_name: str | None = None,
    db: Session = Depends(get_db),
    _=Depends(require_capability(ACP_VIEW)),
):
    rows = audit_service.list_events(db, subject_type=subject_type, subject_id=subject_id, event_name=event_name)
    return [audit_service.to_response(row) for row in rows]
