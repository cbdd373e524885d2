"""포럼 서비스 공용 헬퍼 함수입니다."""

import re
from datetime import datetime, timezone
from html import unescape

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def utcnow() -> datetime:
    # DB에는 naive UTC로 저장한다.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def plain_text(value: str | None) -> str:
    text = _TAG_RE.sub(" ", value or "")
    return _SPACE_RE.sub(" ", unescape(text)).strip()


def clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def limit_text(value: str, limit: int, end: str = "...") -> str:
    if len(value) <= limit:
        return value
    return value[:limit].rstrip() + end
