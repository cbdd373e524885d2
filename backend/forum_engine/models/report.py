"""스레드/게시글 신고의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import declared_attr, relationship

from forum_engine.database import Base
from forum_engine.utils.helpers import utcnow

STATUS_PENDING = "pending"
STATUS_REVIEWED = "reviewed"
STATUS_DISMISSED = "dismissed"
STATUSES = (STATUS_PENDING, STATUS_REVIEWED, STATUS_DISMISSED)


class ReviewableMixin:
    """검토 상태 머신(status/reviewed_at/reviewed_by)을 공유하는 신고 공통 컬럼."""

    @declared_attr
    def reporter_id(cls):
        return Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)

    @declared_attr
    def reviewed_by(cls):
        return Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"))

    reason_category = Column(String(50), nullable=False)
    reason = Column(Text)
    evidence_url = Column(String(2048))
    status = Column(String(20), nullable=False, default=STATUS_PENDING)
    reviewed_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ForumThreadReport(ReviewableMixin, Base):
    __tablename__ = "forum_thread_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column(Integer, ForeignKey("forum_threads.id", ondelete="CASCADE"), nullable=False)

    thread = relationship("ForumThread", back_populates="reports")
    reporter = relationship("User", foreign_keys="ForumThreadReport.reporter_id")
    reviewer = relationship("User", foreign_keys="ForumThreadReport.reviewed_by")

    __table_args__ = (
        UniqueConstraint("thread_id", "reporter_id", name="uq_forum_thread_report_reporter"),
        Index("idx_forum_thread_report_status", "status", "created_at"),
    )


class ForumPostReport(ReviewableMixin, Base):
    __tablename__ = "forum_post_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False)

    post = relationship("ForumPost", back_populates="reports")
    reporter = relationship("User", foreign_keys="ForumPostReport.reporter_id")
    reviewer = relationship("User", foreign_keys="ForumPostReport.reviewed_by")

    __table_args__ = (
        UniqueConstraint("post_id", "reporter_id", name="uq_forum_post_report_reporter"),
        Index("idx_forum_post_report_status", "status", "created_at"),
    )
