from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Literal, Optional
from datetime import datetime

QuestionType = Literal["multiple_choice", "essay"]
SkillLevel = Literal["beginner", "intermediate", "advanced", "expert"]


# ==========================================================
# [1] 작성(Create/Update) 스키마: 정답 정보 포함
# ==========================================================

class OptionCreate(BaseModel):
    text: str = Field(..., min_length=1)     # 보기 내용
    is_correct: bool = False                 # 정답 여부


class QuestionCreate(BaseModel):
    type: QuestionType                       # 문항 유형
    text: str = Field(..., min_length=1)     # 문항 내용
    options: List[OptionCreate] = []         # 객관식 보기
    sample_answer: Optional[str] = None      # 서술형 모범 답안
    max_score: float = Field(1, gt=0)        # 수동 채점 배점

    # ✅ 작성 시점 검증: 객관식은 보기 2개 이상 + 정답 정확히 1개, 서술형은 모범 답안 필수
    @model_validator(mode="after")
    def _check_answer_key(self):
        if self.type == "multiple_choice":
            if len(self.options) < 2:
                raise ValueError("객관식 문항은 보기가 2개 이상이어야 합니다")
            correct = sum(1 for o in self.options if o.is_correct)
            if correct != 1:
                raise ValueError("객관식 문항은 정답 보기가 정확히 1개여야 합니다")
        else:
            if not (self.sample_answer and self.sample_answer.strip()):
                raise ValueError("서술형 문항은 모범 답안이 필요합니다")
            if self.options:
                raise ValueError("서술형 문항에는 보기를 지정할 수 없습니다")
        return self


class TestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)    # 시험명
    description: str = Field(..., min_length=1)              # 시험 설명
    category: str = Field(..., min_length=1, max_length=100) # 분류
    skill_level: SkillLevel                                  # 요구 숙련도
    duration: int = Field(..., ge=1)                         # 제한 시간 (분)
    passing_score: int = Field(..., ge=1, le=100)            # 합격 점수
    questions: List[QuestionCreate] = Field(..., min_length=1)


# ==========================================================
# [2] 조회 스키마: 작성자/관리자용 (정답 포함)
# ==========================================================

class OptionOut(BaseModel):
    id: int
    text: str
    is_correct: bool

    model_config = ConfigDict(from_attributes=True)


class QuestionOut(BaseModel):
    id: int
    type: str
    text: str
    options: List[OptionOut] = []
    sample_answer: Optional[str] = None
    max_score: float

    model_config = ConfigDict(from_attributes=True)


class TestSummary(BaseModel):
    """목록/배정 화면용 요약 (문항 제외)"""
    id: int
    title: str
    description: str
    category: str
    skill_level: str
    duration: int
    passing_score: int
    created_by: str

    model_config = ConfigDict(from_attributes=True)


class TestDetail(TestSummary):
    created_at: datetime
    updated_at: datetime
    questions: List[QuestionOut] = []


# ==========================================================
# [3] 응시용 스키마: 정답 정보 제거
# ==========================================================

class TakingOption(BaseModel):
    text: str                                # 보기 내용만 노출 (is_correct 없음)


class TakingQuestion(BaseModel):
    id: int
    type: str
    text: str
    options: List[TakingOption] = []         # 서술형이면 빈 목록, sample_answer 없음


class TestForTaking(BaseModel):
    id: int
    title: str
    description: str
    duration: int                            # 클라이언트 카운트다운 기준 (분)
    questions: List[TakingQuestion]
