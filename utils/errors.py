"""
utils/errors.py

- 서비스 계층에서 발생시키는 도메인 예외 모음
- middlewares/error_handler.py 가 status_code / code 를 그대로 JSON 응답으로 변환
"""

from typing import Optional


class ServiceError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "요청을 처리하지 못했습니다"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        self.message = message or self.default_message
        self.reason = reason
        super().__init__(self.message)


class InvalidInput(ServiceError):
    status_code = 400
    code = "INVALID_INPUT"
    default_message = "요청 값이 올바르지 않습니다"


class Unauthorized(ServiceError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "인증 정보가 없거나 유효하지 않습니다"


class Forbidden(ServiceError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "이 작업을 수행할 권한이 없습니다"


class NotFound(ServiceError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "요청한 정보를 찾을 수 없습니다"


class Conflict(ServiceError):
    status_code = 409
    code = "CONFLICT"
    default_message = "이미 처리된 요청과 충돌합니다"


class ServiceUnavailable(ServiceError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    default_message = "저장소에 일시적으로 연결할 수 없습니다. 잠시 후 다시 시도해주세요"
