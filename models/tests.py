from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base
from utils.clock import utcnow


class Test(Base):
    __tablename__ = "tests"  # 역량 평가 시험 정보 테이블

    id = Column(Integer, primary_key=True, index=True)          # 시험 고유 ID
    title = Column(String(200), nullable=False)                 # 시험명
    description = Column(Text, nullable=False, default="")      # 시험 설명 (표시용)
    category = Column(String(100), nullable=False, default="")  # 분류
    skill_level = Column(String(20), nullable=False, default="beginner")  # 요구 숙련도
    duration = Column(Integer, nullable=False)                  # 제한 시간 (분)
    passing_score = Column(Integer, nullable=False)             # 합격 점수 (0~100)
    created_by = Column(String(64), nullable=False, index=True) # 작성자 사용자 ID
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # ✅ 문항 (1:N, 순서 유지)
    questions = relationship(
        "Question",
        back_populates="test",
        order_by="Question.position",
        cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "test_questions"  # 시험 문항 테이블

    id = Column(Integer, primary_key=True, index=True)          # 문항 고유 ID (답안 키로 사용)
    test_id = Column(Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)       # 시험 내 순서
    type = Column(String(20), nullable=False)                   # multiple_choice / essay
    text = Column(Text, nullable=False)                         # 문항 내용
    sample_answer = Column(Text)                                # 서술형 모범 답안 (채점 참고용)
    max_score = Column(Float, nullable=False, default=1)        # 수동 채점 배점

    test = relationship("Test", back_populates="questions")

    # ✅ 보기 (객관식만, 순서 유지)
    options = relationship(
        "QuestionOption",
        back_populates="question",
        order_by="QuestionOption.position",
        cascade="all, delete-orphan",
    )


class QuestionOption(Base):
    __tablename__ = "question_options"  # 객관식 보기 테이블

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("test_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    text = Column(String(500), nullable=False)                  # 보기 내용
    is_correct = Column(Boolean, nullable=False, default=False) # 정답 여부

    question = relationship("Question", back_populates="options")
