"""서비스 레이어 패키지 초기화 모듈입니다."""

from forum_engine.services import (
    auth_service,
    audit_service,
    ordering_service,
    structure_service,
    read_service,
    thread_service,
    post_service,
    revision_service,
    report_service,
)
