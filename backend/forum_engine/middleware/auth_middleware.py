from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from forum_engine.database import get_db
from forum_engine.models.user import User
from forum_engine.config import settings
from forum_engine.services.auth_service import ALGORITHM
from forum_engine.utils.permissions import can

security = HTTPBearer()


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def _load_user(db: Session, payload: dict) -> User | None:
    user_id = payload.get("sub")
    if user_id is None:
        return None
    return db.query(User).filter(User.user_id == int(user_id), User.is_active == True).first()  # noqa: E712


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    payload = decode_token(credentials.credentials)
    if payload.get("sub") is None:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = _load_user(db, payload)
    if not user:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def get_optional_user(
    credentials: HTTPAuthorizationCredentials = Depends(HTTPBearer(auto_error=False)),
    db: Session = Depends(get_db),
):
    # 비로그인 열람 허용 경로. 토큰이 잘못돼도 익명으로 취급한다.
    if credentials is None:
        return None
    try:
        payload = decode_token(credentials.credentials)
    except HTTPException:
        return None
    return _load_user(db, payload)


def require_capability(*capabilities: str):
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if not all(can(current_user, capability) for capability in capabilities):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires capability: {', '.join(capabilities)}",
            )
        return current_user
    return checker
