"""감사 이벤트 저장용 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, Index

from forum_engine.database import Base
from forum_engine.utils.helpers import utcnow


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_name = Column(String(100), nullable=False)  # forum.thread.locked 등
    subject_type = Column(String(50), nullable=False)
    subject_id = Column(Integer, nullable=True)
    actor_id = Column(Integer, nullable=True)
    before = Column(Text)  # JSON
    after = Column(Text)  # JSON
    context = Column(Text)  # JSON
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_audit_log_subject", "subject_type", "subject_id"),
        Index("idx_audit_log_event", "event_name"),
    )
