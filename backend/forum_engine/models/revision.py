"""게시글 본문 변경 이력(리비전)의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from forum_engine.database import Base
from forum_engine.utils.helpers import utcnow


class ForumPostRevision(Base):
    __tablename__ = "forum_post_revisions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False)
    editor_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    body = Column(Text, nullable=False)
    edited_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    post = relationship("ForumPost", back_populates="revisions")
    editor = relationship("User")

    __table_args__ = (
        Index("idx_forum_post_revision_post", "post_id", "created_at"),
    )
