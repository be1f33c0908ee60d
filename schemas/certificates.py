from pydantic import BaseModel
from typing import Optional
from datetime import datetime


# ✅ 인증서 발급 요청
class CertificateIssue(BaseModel):
    test_result_id: int                      # 합격한 응시 결과 ID


# ✅ 인증서 조회/응답
class CertificateOut(BaseModel):
    id: int
    user_id: str
    test_id: int
    test_result_id: int
    certificate_number: str                  # CERT-<연도>-<4자리 일련번호>
    score: int
    issue_date: datetime
    expiry_date: datetime
    status: str                              # active / expired (만료일 기준으로 계산)
    test_title: Optional[str] = None         # 시험명 (시험이 삭제되었으면 None)
