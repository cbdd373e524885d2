"""목록 API의 페이지네이션 계약(page, per_page)을 처리합니다."""

import math
from typing import Any, Dict, List, Sequence

MIN_PER_PAGE = 1
MAX_PER_PAGE = 100


def normalize(page: int | None, per_page: int | None, default_per_page: int = 15) -> tuple[int, int]:
    page = max(1, int(page or 1))
    per_page = int(per_page or default_per_page)
    return page, max(MIN_PER_PAGE, min(MAX_PER_PAGE, per_page))


def build_page(data: List[Any], total: int, page: int, per_page: int) -> Dict[str, Any]:
    return {
        "data": data,
        "total": int(total),
        "current_page": page,
        "per_page": per_page,
        "last_page": max(1, math.ceil(total / per_page)) if per_page else 1,
    }


def paginate_query(query, page: int | None, per_page: int | None, default_per_page: int = 15) -> Dict[str, Any]:
    page, per_page = normalize(page, per_page, default_per_page)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    return build_page(rows, total, page, per_page)


def paginate_list(items: Sequence[Any], page: int | None, per_page: int | None, default_per_page: int = 15) -> Dict[str, Any]:
    page, per_page = normalize(page, per_page, default_per_page)
    start = (page - 1) * per_page
    return build_page(list(items[start:start + per_page]), len(items), page, per_page)
