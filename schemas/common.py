"""
schemas/common.py

- 모든 에러 응답이 공유하는 JSON 형태
  {"error": {"code", "message", "reason"?}, "generated_at", "latency_ms"}
- reason 은 응시 거부 사유 구분용 (already_completed / expired / not_assigned)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


class ErrorDetail(BaseModel):
    """에러 코드/메시지를 담는 최소 단위"""
    code: str = Field(..., description="에러 식별 코드 (예: INVALID_INPUT, FORBIDDEN)")
    message: str = Field(..., description="사람이 읽을 수 있는 에러 메시지 (내부 식별자/스택 미포함)")
    reason: Optional[str] = Field(
        default=None, description="세부 사유 (예: already_completed, not_assigned, expired)"
    )

    model_config = ConfigDict(extra="ignore")


class ErrorResponse(BaseModel):
    """
    전역 에러 핸들러에서 내려주는 표준 에러 응답
    - middlewares/error_handler.py 에서 이 스키마로 리턴
    """
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="응답 생성 시각 (UTC)"
    )
    latency_ms: Optional[int] = Field(
        default=None, ge=0, description="요청 처리에 걸린 시간(ms). 타이밍 미들웨어와 연동"
    )

    model_config = ConfigDict(extra="ignore")
