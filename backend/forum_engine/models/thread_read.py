"""사용자별 스레드 읽음 위치의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from forum_engine.database import Base
from forum_engine.utils.helpers import utcnow


class ForumThreadRead(Base):
    __tablename__ = "forum_thread_reads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column(Integer, ForeignKey("forum_threads.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    last_read_post_id = Column(Integer, ForeignKey("forum_posts.id", ondelete="SET NULL"), nullable=True)
    last_read_at = Column(DateTime, default=utcnow)

    thread = relationship("ForumThread", back_populates="reads")
    last_read_post = relationship("ForumPost")

    __table_args__ = (
        UniqueConstraint("thread_id", "user_id", name="uq_forum_thread_read_user"),
        Index("idx_forum_thread_read_user", "user_id"),
    )
