"""포럼 구조(카테고리/게시판)와 콘텐츠(스레드/게시글)의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from forum_engine.database import Base
from forum_engine.utils.helpers import utcnow


class ForumCategory(Base):
    __tablename__ = "forum_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    boards = relationship(
        "ForumBoard",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="ForumBoard.position",
    )

    __table_args__ = (
        UniqueConstraint("position", name="uq_forum_category_position"),
    )


class ForumBoard(Base):
    __tablename__ = "forum_boards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("forum_categories.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    category = relationship("ForumCategory", back_populates="boards")
    threads = relationship("ForumThread", back_populates="board", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("category_id", "position", name="uq_forum_board_category_position"),
    )


class ForumThread(Base):
    __tablename__ = "forum_threads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    board_id = Column(Integer, ForeignKey("forum_boards.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    excerpt = Column(Text)
    is_locked = Column(Boolean, nullable=False, default=False)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=True)
    views = Column(Integer, nullable=False, default=0)
    last_posted_at = Column(DateTime)
    last_post_user_id = Column(Integer, ForeignKey("users.user_id"))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    board = relationship("ForumBoard", back_populates="threads")
    author = relationship("User", foreign_keys=[author_id], back_populates="threads")
    last_post_user = relationship("User", foreign_keys=[last_post_user_id])
    posts = relationship(
        "ForumPost",
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="ForumPost.created_at",
    )
    reports = relationship("ForumThreadReport", back_populates="thread", cascade="all, delete-orphan")
    reads = relationship("ForumThreadRead", back_populates="thread", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_forum_thread_board", "board_id", "is_pinned", "last_posted_at"),
    )


class ForumPost(Base):
    __tablename__ = "forum_posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column(Integer, ForeignKey("forum_threads.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    edited_at = Column(DateTime)
    deleted_at = Column(DateTime)  # soft delete

    thread = relationship("ForumThread", back_populates="posts")
    author = relationship("User", back_populates="posts")
    revisions = relationship("ForumPostRevision", back_populates="post", cascade="all, delete-orphan")
    reports = relationship("ForumPostReport", back_populates="post", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_forum_post_thread", "thread_id", "created_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
