import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from config.settings import settings

logger = logging.getLogger("skills.request")


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request.state.started_at = start          # 에러 핸들러에서 latency_ms 계산용
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Latency-Ms"] = str(latency_ms)
        if settings.REQUEST_LOG:
            logger.info(f"{request.method} {request.url.path} → {response.status_code} ({latency_ms}ms)")
        return response
