"""Auth Service 도메인 서비스 레이어입니다. 토큰 발급과 로그인 사용자 확인을 담당합니다."""

from datetime import timedelta
from jose import jwt
from sqlalchemy.orm import Session
from fastapi import HTTPException
from forum_engine.models.user import User
from forum_engine.config import settings
from forum_engine.utils.helpers import utcnow

ALGORITHM = "HS256"


def create_access_token(user_id: int) -> str:
    expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def mock_login(db: Session, username: str) -> User:
    user = db.query(User).filter(User.username == (username or "").strip(), User.is_active == True).first()  # noqa: E712
    if not user:
        raise HTTPException(
            status_code=401,
            detail=f"아이디 '{username}'에 해당하는 활성 사용자를 찾을 수 없습니다.",
        )
    return user
