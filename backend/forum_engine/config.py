"""환경 변수 기반 포럼 엔진 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import Dict, List
from pathlib import Path


DEFAULT_REPORT_REASONS: Dict[str, str] = {
    "spam": "Spam or advertising",
    "abuse": "Harassment or hate",
    "illegal": "Illegal or dangerous content",
    "nsfw": "Adult or NSFW material",
    "misinformation": "Misinformation",
    "other": "Other rule violation",
}


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./forum_engine.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    LOG_LEVEL: str = "INFO"

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # Forum paging
    FORUM_POSTS_PER_PAGE: int = 10
    FORUM_THREADS_PER_PAGE: int = 15
    FORUM_REPORTS_PER_PAGE: int = 25

    # 신고 사유는 key -> 표시 라벨 순서 그대로 노출된다.
    FORUM_REPORT_REASONS: Dict[str, str] = dict(DEFAULT_REPORT_REASONS)

    def report_reasons(self) -> Dict[str, str]:
        reasons = {}
        for key, label in (self.FORUM_REPORT_REASONS or {}).items():
            normalized = str(key or "").strip()
            if not normalized:
                continue
            reasons[normalized] = str(label or "").strip() or normalized.replace("_", " ").title()
        return reasons

    class Config:
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
