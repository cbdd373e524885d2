"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from forum_engine.models.user import User
from forum_engine.models.forum import ForumCategory, ForumBoard, ForumThread, ForumPost
from forum_engine.models.revision import ForumPostRevision
from forum_engine.models.report import ForumThreadReport, ForumPostReport
from forum_engine.models.thread_read import ForumThreadRead
from forum_engine.models.audit_log import AuditLog

__all__ = [
    "User",
    "ForumCategory", "ForumBoard", "ForumThread", "ForumPost",
    "ForumPostRevision",
    "ForumThreadReport", "ForumPostReport",
    "ForumThreadRead",
    "AuditLog",
]
