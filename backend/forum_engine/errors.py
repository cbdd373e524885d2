"""포럼 엔진 도메인 예외입니다. HTTP 계층까지 변환 없이 그대로 전달됩니다."""

from fastapi import HTTPException


class ForumError(HTTPException):
    status_code = 400
    default_detail = "요청을 처리할 수 없습니다."

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFoundError(ForumError):
    status_code = 404
    default_detail = "대상을 찾을 수 없습니다."


class ForbiddenError(ForumError):
    status_code = 403
    default_detail = "권한이 없습니다."


class ValidationError(ForumError):
    status_code = 422
    default_detail = "입력값이 올바르지 않습니다."


class ConflictError(ForumError):
    # 정렬 불변식 위반 등 무결성 오류. 호출 측에서 복구하지 않는다.
    status_code = 409
    default_detail = "데이터 무결성 규칙을 위반했습니다."
