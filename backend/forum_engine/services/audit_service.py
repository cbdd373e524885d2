"""감사 이벤트 싱크입니다. 호출 측 트랜잭션 안에서 AuditLog 행을 추가하고 로그를 남깁니다."""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from forum_engine.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _dump(value: Optional[Dict[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


def _load(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return None


def record(
    db: Session,
    *,
    event_name: str,
    subject_type: str,
    subject_id: int | None,
    actor_id: int | None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    # commit은 호출 측 서비스가 한 번에 수행한다.
    row = AuditLog(
        event_name=event_name,
        subject_type=subject_type,
        subject_id=subject_id,
        actor_id=actor_id,
        before=_dump(before),
        after=_dump(after),
        context=_dump(context),
    )
    db.add(row)
    logger.info(
        "[audit] %s %s#%s actor=%s before=%s after=%s",
        event_name,
        subject_type,
        subject_id,
        actor_id,
        before,
        after,
    )
    return row


def list_events(
    db: Session,
    *,
    subject_type: str | None = None,
    subject_id: int | None = None,
    event_name: str | None = None,
) -> List[AuditLog]:
    q = db.query(AuditLog)
    if subject_type is not None:
        q = q.filter(AuditLog.subject_type == subject_type)
    if subject_id is not None:
        q = q.filter(AuditLog.subject_id == subject_id)
    if event_name is not None:
        q = q.filter(AuditLog.event_name == event_name)
    return q.order_by(AuditLog.id.asc()).all()


def to_response(row: AuditLog) -> Dict[str, Any]:
    return {
        "id": row.id,
        "event_name": row.event_name,
        "subject_type": row.subject_type,
        "subject_id": row.subject_id,
        "actor_id": row.actor_id,
        "before": _load(row.before),
        "after": _load(row.after),
        "context": _load(row.context),
        "created_at": row.created_at,
    }
