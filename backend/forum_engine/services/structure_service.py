"""Forum Structure 도메인 서비스 레이어입니다. 카테고리/게시판 관리와 포럼 인덱스 조회를 담당합니다."""

import logging
import secrets
import string
from typing import List

from slugify import slugify
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from forum_engine.errors import ForbiddenError, NotFoundError, ValidationError
from forum_engine.models.forum import ForumBoard, ForumCategory, ForumPost, ForumThread
from forum_engine.models.user import User
from forum_engine.schemas.forum import BoardCreate, BoardUpdate, CategoryCreate, CategoryUpdate
from forum_engine.services import ordering_service
from forum_engine.utils.permissions import ACP_CREATE, ACP_DELETE, ACP_EDIT, can, is_moderator

logger = logging.getLogger(__name__)


def _ensure_can(current_user: User, capability: str):
    if not can(current_user, capability):
        raise ForbiddenError("포럼 관리 권한이 없습니다.")


def _clean_title(title: str | None) -> str:
    value = (title or "").strip()
    if not value:
        raise ValidationError("제목을 입력해주세요.")
    return value


def _random_slug(length: int = 8) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def resolve_slug(db: Session, model, slug: str | None, title: str, ignore_id: int | None = None) -> str:
    candidate = slugify(slug or title or "")
    if not candidate:
        candidate = _random_slug()

    def _taken(value: str) -> bool:
        q = db.query(model.id).filter(model.slug == value)
        if ignore_id is not None:
            q = q.filter(model.id != ignore_id)
        return q.first() is not None

    original = candidate
    suffix = 1
    while _taken(candidate):
        candidate = f"{original}-{suffix}"
        suffix += 1
    return candidate


def get_category(db: Session, category_id: int) -> ForumCategory:
    category = db.query(ForumCategory).filter(ForumCategory.id == category_id).first()
    if not category:
        raise NotFoundError("카테고리를 찾을 수 없습니다.")
    return category


def get_board(db: Session, board_id: int) -> ForumBoard:
    board = db.query(ForumBoard).filter(ForumBoard.id == board_id).first()
    if not board:
        raise NotFoundError("게시판을 찾을 수 없습니다.")
    return board


def list_index(db: Session, current_user: User | None = None) -> List[ForumCategory]:
    """카테고리 > 게시판 트리를 position 순으로 반환한다. 비모더레이터에게는 공개 스레드만 집계한다."""
    categories = (
        db.query(ForumCategory)
        .options(selectinload(ForumCategory.boards))
        .order_by(ForumCategory.position.asc(), ForumCategory.id.asc())
        .all()
    )
    include_hidden = is_moderator(current_user)

    thread_q = db.query(ForumThread.board_id, func.count(ForumThread.id))
    post_q = (
        db.query(ForumThread.board_id, func.count(ForumPost.id))
        .join(ForumPost, ForumPost.thread_id == ForumThread.id)
        .filter(ForumPost.deleted_at.is_(None))
    )
    if not include_hidden:
        thread_q = thread_q.filter(ForumThread.is_published == True)  # noqa: E712
        post_q = post_q.filter(ForumThread.is_published == True)  # noqa: E712
    thread_counts = dict(thread_q.group_by(ForumThread.board_id).all())
    post_counts = dict(post_q.group_by(ForumThread.board_id).all())

    for category in categories:
        for board in category.boards:
            setattr(board, "thread_count", int(thread_counts.get(board.id, 0)))
            setattr(board, "post_count", int(post_counts.get(board.id, 0)))
    return categories


def create_category(db: Session, data: CategoryCreate, current_user: User) -> ForumCategory:
    _ensure_can(current_user, ACP_CREATE)
    title = _clean_title(data.title)
    category = ForumCategory(
        title=title,
        slug=resolve_slug(db, ForumCategory, data.slug, title),
        description=data.description,
    )
    ordering_service.append(db, category)
    db.commit()
    db.refresh(category)
    logger.info("[forum] category created id=%s position=%s", category.id, category.position)
    return category


def update_category(db: Session, category_id: int, data: CategoryUpdate, current_user: User) -> ForumCategory:
    _ensure_can(current_user, ACP_EDIT)
    category = get_category(db, category_id)
    title = _clean_title(data.title)
    category.title = title
    category.slug = resolve_slug(db, ForumCategory, data.slug, title, ignore_id=category.id)
    category.description = data.description
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int, current_user: User):
    _ensure_can(current_user, ACP_DELETE)
    category = get_category(db, category_id)
    ordering_service.delete(db, category)
    db.commit()
    logger.info("[forum] category deleted id=%s", category_id)


def reorder_category(db: Session, category_id: int, direction: str, current_user: User) -> ForumCategory:
    _ensure_can(current_user, ACP_EDIT)
    category = get_category(db, category_id)
    ordering_service.reorder(db, category, direction)
    db.commit()
    db.refresh(category)
    return category


def create_board(db: Session, data: BoardCreate, current_user: User) -> ForumBoard:
    _ensure_can(current_user, ACP_CREATE)
    category = get_category(db, data.category_id)
    title = _clean_title(data.title)
    board = ForumBoard(
        category_id=category.id,
        title=title,
        slug=resolve_slug(db, ForumBoard, data.slug, title),
        description=data.description,
    )
    ordering_service.append(db, board)
    db.commit()
    db.refresh(board)
    logger.info("[forum] board created id=%s category=%s position=%s", board.id, board.category_id, board.position)
    return board


def update_board(db: Session, board_id: int, data: BoardUpdate, current_user: User) -> ForumBoard:
    _ensure_can(current_user, ACP_EDIT)
    board = get_board(db, board_id)
    target = get_category(db, data.category_id)
    title = _clean_title(data.title)
    board.title = title
    board.slug = resolve_slug(db, ForumBoard, data.slug, title, ignore_id=board.id)
    board.description = data.description
    if int(target.id) != int(board.category_id):
        previous_category_id = board.category_id
        ordering_service.move(db, board, category_id=target.id)
        logger.info(
            "[forum] board moved id=%s from=%s to=%s position=%s",
            board.id,
            previous_category_id,
            target.id,
            board.position,
        )
    db.commit()
    db.refresh(board)
    return board


def delete_board(db: Session, board_id: int, current_user: User):
    _ensure_can(current_user, ACP_DELETE)
    board = get_board(db, board_id)
    ordering_service.delete(db, board)
    db.commit()
    logger.info("[forum] board deleted id=%s", board_id)


def reorder_board(db: Session, board_id: int, direction: str, current_user: User) -> ForumBoard:
    _ensure_can(current_user, ACP_EDIT)
    board = get_board(db, board_id)
    ordering_service.reorder(db, board, direction)
    db.commit()
    db.refresh(board)
    return board
