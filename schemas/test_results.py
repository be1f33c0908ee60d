from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime


# ✅ 답안 제출 요청
#    - 형식 검증(답안 누락, 음수 시간 등)은 서비스 계층에서 400 으로 처리
class SubmitAnswers(BaseModel):
    answers: Optional[Dict[str, Any]] = None      # {문항ID: 답안}
    time_spent_seconds: Optional[Any] = None      # 소요 시간 (초)


# ✅ 제출 결과
class SubmitResultOut(BaseModel):
    score: int
    passed: bool
    result_id: int


# ✅ 완료 통계
class CompletionStats(BaseModel):
    completed_count: int
    average_score: int


# ✅ 사용자 진행 현황 (배정 + 최근 점수)
class ProgressItem(BaseModel):
    assignment_id: int
    test_id: int
    test_title: str
    status: str
    due_date: datetime
    updated_at: datetime
    score: Optional[int] = None
