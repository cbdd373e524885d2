"""형제 엔티티(카테고리, 카테고리 내 게시판)의 position을 0..N-1로 빈틈없이 유지하는 정렬 서비스입니다.

모든 함수는 호출 측 트랜잭션 안에서 flush만 수행하며 commit은 상위 서비스가 담당합니다.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from forum_engine.errors import ConflictError
from forum_engine.models.forum import ForumBoard, ForumCategory

logger = logging.getLogger(__name__)

# 모델별 형제 범위를 결정하는 컬럼. 카테고리는 전체가 하나의 범위다.
SCOPE_COLUMNS = {
    ForumCategory: (),
    ForumBoard: ("category_id",),
}

DIRECTIONS = ("up", "down")
APPEND_ATTEMPTS = 3


def scope_of(entity) -> Dict[str, Any]:
    columns = SCOPE_COLUMNS.get(type(entity))
    if columns is None:
        raise ConflictError(f"정렬 범위가 정의되지 않은 엔티티입니다: {type(entity).__name__}")
    return {column: getattr(entity, column) for column in columns}


def _scope_query(db: Session, model, scope: Dict[str, Any]):
    q = db.query(model)
    for column, value in scope.items():
        q = q.filter(getattr(model, column) == value)
    return q


def siblings(db: Session, model, scope: Dict[str, Any]) -> List[Any]:
    db.flush()
    return _scope_query(db, model, scope).order_by(model.position.asc(), model.id.asc()).all()


def next_position(db: Session, model, scope: Dict[str, Any]) -> int:
    db.flush()
    q = db.query(func.max(model.position))
    for column, value in scope.items():
        q = q.filter(getattr(model, column) == value)
    current_max = q.scalar()
    return 0 if current_max is None else int(current_max) + 1


def resequence(rows: Sequence[Any]) -> int:
    """position 순으로 정렬된 형제 목록에 0..N-1을 다시 부여하고 변경된 행 수를 돌려준다."""
    if len({id(row) for row in rows}) != len(rows):
        raise ConflictError("재정렬 대상에 중복된 엔티티가 있습니다.")
    changed = 0
    for index, row in enumerate(rows):
        if row.position != index:
            row.position = index
            changed += 1
    return changed


def _flush_positions(db: Session, model, scope: Dict[str, Any]) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        logger.error("[ordering] position constraint violated in %s scope=%s", model.__tablename__, scope)
        raise ConflictError("같은 범위에 중복된 position이 있습니다.") from exc


def _assign_positions(db: Session, model, scope: Dict[str, Any], targets: List[Tuple[Any, int]]) -> int:
    """유니크 제약을 지키도록 임시 음수 position을 거쳐 두 단계로 값을 바꾼다."""
    moving = [(row, position) for row, position in targets if row.position != position]
    if not moving:
        return 0
    for index, (row, _) in enumerate(moving):
        row.position = -(index + 1)
    _flush_positions(db, model, scope)
    for row, position in moving:
        row.position = position
    _flush_positions(db, model, scope)
    return len(moving)


def resequence_scope(db: Session, model, scope: Dict[str, Any]) -> int:
    rows = siblings(db, model, scope)
    changed = _assign_positions(db, model, scope, [(row, index) for index, row in enumerate(rows)])
    ensure_unique_positions(db, model, scope)
    if changed:
        logger.info("[ordering] resequenced %s scope=%s changed=%s", model.__tablename__, scope, changed)
    return changed


def ensure_unique_positions(db: Session, model, scope: Dict[str, Any]) -> None:
    _flush_positions(db, model, scope)
    positions = [row.position for row in _scope_query(db, model, scope).all()]
    duplicates = sorted(pos for pos, count in Counter(positions).items() if count > 1)
    if duplicates:
        logger.error("[ordering] duplicate positions %s in %s scope=%s", duplicates, model.__tablename__, scope)
        raise ConflictError(f"같은 범위에 중복된 position이 있습니다: {duplicates}")
    if any(pos is None or pos < 0 for pos in positions):
        raise ConflictError("position은 0 이상의 정수여야 합니다.")


def is_dense(db: Session, model, scope: Dict[str, Any]) -> bool:
    positions = sorted(row.position for row in siblings(db, model, scope))
    return positions == list(range(len(positions)))


def swap(db: Session, first, second) -> None:
    if type(first) is not type(second) or scope_of(first) != scope_of(second):
        raise ConflictError("같은 범위의 형제끼리만 위치를 바꿀 수 있습니다.")
    if first is second:
        return
    model = type(first)
    scope = scope_of(first)
    _assign_positions(db, model, scope, [(first, second.position), (second, first.position)])
    ensure_unique_positions(db, model, scope)


def reorder(db: Session, entity, direction: str):
    """direction 방향의 가장 가까운 형제와 위치를 바꾼다. 이웃이 없으면 아무것도 하지 않는다."""
    if direction not in DIRECTIONS:
        raise ConflictError(f"알 수 없는 정렬 방향입니다: {direction}")
    model = type(entity)
    db.flush()
    q = _scope_query(db, model, scope_of(entity)).filter(model.id != entity.id)
    if direction == "up":
        neighbor = q.filter(model.position < entity.position).order_by(model.position.desc()).first()
    else:
        neighbor = q.filter(model.position > entity.position).order_by(model.position.asc()).first()
    if neighbor is not None:
        swap(db, entity, neighbor)
    return neighbor


def append(db: Session, entity, attempts: int = APPEND_ATTEMPTS) -> int:
    """새 엔티티를 범위의 맨 뒤에 추가하고 flush 한다.

    동시에 같은 position을 잡은 요청이 먼저 커밋되면 유니크 제약에 걸리므로,
    트랜잭션을 되돌리고 position을 다시 계산한다. 다른 변경이 대기 중이지 않은
    새 트랜잭션에서만 호출한다.
    """
    model = type(entity)
    scope = scope_of(entity)
    for attempt in range(1, attempts + 1):
        entity.position = next_position(db, model, scope)
        db.add(entity)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.warning(
                "[ordering] position %s taken in %s scope=%s, retrying (%s/%s)",
                entity.position,
                model.__tablename__,
                scope,
                attempt,
                attempts,
            )
            continue
        ensure_unique_positions(db, model, scope)
        return entity.position
    raise ConflictError("다른 요청과 position이 계속 충돌합니다. 잠시 후 다시 시도해주세요.")


def move(db: Session, entity, **new_scope: Any) -> None:
    """엔티티를 새 범위의 끝으로 옮기고 이전 범위만 재정렬한다."""
    model = type(entity)
    old_scope = scope_of(entity)
    target_scope = {**old_scope, **new_scope}
    if target_scope == old_scope:
        return
    position = next_position(db, model, target_scope)
    for column, value in new_scope.items():
        setattr(entity, column, value)
    entity.position = position
    _flush_positions(db, model, target_scope)
    resequence_scope(db, model, old_scope)
    ensure_unique_positions(db, model, target_scope)


def delete(db: Session, entity) -> None:
    """엔티티를 삭제하고 남은 형제를 재정렬한다."""
    model = type(entity)
    scope = scope_of(entity)
    db.delete(entity)
    db.flush()
    resequence_scope(db, model, scope)
