"""포럼 행위자(actor) 컨텍스트 API 라우터입니다. 토큰 발급과 현재 사용자/권한 조회만 제공합니다."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from forum_engine.database import get_db
from forum_engine.schemas.user import LoginRequest, TokenResponse, UserOut
from forum_engine.services.auth_service import create_access_token, mock_login
from forum_engine.middleware.auth_middleware import get_current_user
from forum_engine.models.user import User
from forum_engine.utils.permissions import ROLE_CAPABILITIES

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = mock_login(db, request.username)
    return TokenResponse(access_token=create_access_token(user.user_id), user=UserOut.model_validate(user))


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    # 토큰은 서버에 저장하지 않으므로 클라이언트가 폐기한다.
    return {"message": "포럼에서 로그아웃 되었습니다."}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/me/capabilities", response_model=List[str])
def my_capabilities(current_user: User = Depends(get_current_user)):
    # 화면에서 모더레이션/ACP 메뉴 노출 여부를 판단하는 용도.
    return sorted(ROLE_CAPABILITIES.get(current_user.role, frozenset()))
