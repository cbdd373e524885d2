"""User(행위자) 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from forum_engine.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False)
    nickname = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default="member")  # admin/editor/moderator/member
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    threads = relationship("ForumThread", foreign_keys="ForumThread.author_id", back_populates="author")
    posts = relationship("ForumPost", back_populates="author")
