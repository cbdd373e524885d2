"""FastAPI 애플리케이션 진입점. 로깅, 미들웨어, 포럼 API 라우터를 등록합니다."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from forum_engine.config import settings
from forum_engine.database import Base, engine
import forum_engine.models  # noqa: F401 - 모델 import로 metadata 등록
from forum_engine.routers import admin, auth, forum, reports

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(
    title="Forum Engine",
    description="카테고리/게시판/스레드/게시글 수명주기와 신고·모더레이션을 관리하는 포럼 엔진",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(reports.router)
app.include_router(forum.router)


@app.on_event("startup")
def ensure_schema():
    # 누락된 테이블을 자동 생성합니다.
    Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "Forum Engine"}
