import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from schemas.common import ErrorDetail, ErrorResponse
from utils.errors import ServiceError, ServiceUnavailable

logger = logging.getLogger(__name__)

HTTP_CODES = {
    400: "INVALID_INPUT",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def _latency_ms(request: Request):
    started = getattr(request.state, "started_at", None)
    if started is None:
        return None
    return int((time.perf_counter() - started) * 1000)


def _error_response(request: Request, status_code: int, code: str, message: str,
                    reason=None, headers=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, reason=reason),
        latency_ms=_latency_ms(request),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "요청 값이 올바르지 않습니다"
    first = errors[0]
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = str(first.get("msg", "")).replace("Value error, ", "")
    return f"요청 값이 올바르지 않습니다: {location} {message}".strip()


def add_error_handlers(app: FastAPI):
    # ✅ 도메인 예외 (InvalidInput / Forbidden / NotFound / Conflict / ServiceUnavailable)
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return _error_response(request, exc.status_code, exc.code, exc.message, reason=exc.reason)

    # ✅ 요청 형식 오류 → 400
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, 400, "INVALID_INPUT", _validation_message(exc))

    # ✅ 인증/권한 의존성 등에서 올린 HTTPException
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        return _error_response(
            request, exc.status_code, code, str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    # ✅ 저장소 연결 실패/타임아웃 → 503 (자동 재시도 없음)
    @app.exception_handler(OperationalError)
    @app.exception_handler(PoolTimeoutError)
    async def storage_error_handler(request: Request, exc: Exception):
        logger.error(f"저장소 오류: {request.method} {request.url.path}: {exc.__class__.__name__}")
        unavailable = ServiceUnavailable()
        return _error_response(request, unavailable.status_code, unavailable.code, unavailable.message)

    # ✅ 그 외 예외 → 500 (내부 정보는 로그에만 남김)
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"처리되지 않은 예외: {request.method} {request.url.path}")
        return _error_response(request, 500, "INTERNAL_ERROR", "요청을 처리하는 중 오류가 발생했습니다")
