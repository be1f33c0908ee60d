"""
services/test_service.py

- 시험 정의 저장소 (작성/수정/삭제/조회)
- 문항 정답 규칙(객관식 정답 1개 등)은 schemas.tests.QuestionCreate 에서 작성 시점에 검증
"""

import logging
from typing import List

from sqlalchemy.orm import Session, selectinload

from dependencies.security import CurrentUser
from models.certificates import Certificate
from models.test_assignments import TestAssignment
from models.test_results import TestResult
from models.tests import Test, Question, QuestionOption
from schemas.tests import TestCreate, QuestionCreate
from utils.errors import Forbidden, NotFound

logger = logging.getLogger(__name__)


def get_test(db: Session, test_id: int) -> Test:
    test = (
        db.query(Test)
        .options(selectinload(Test.questions).selectinload(Question.options))
        .filter(Test.id == test_id)
        .first()
    )
    if not test:
        raise NotFound("시험 정보를 찾을 수 없습니다")
    return test


def list_tests(db: Session) -> List[Test]:
    return db.query(Test).order_by(Test.created_at.desc(), Test.id.desc()).all()


def _build_questions(questions: List[QuestionCreate]) -> List[Question]:
    built = []
    for position, q in enumerate(questions):
        question = Question(
            position=position,
            type=q.type,
            text=q.text,
            sample_answer=q.sample_answer if q.type == "essay" else None,
            max_score=q.max_score,
        )
        question.options = [
            QuestionOption(position=i, text=o.text, is_correct=o.is_correct)
            for i, o in enumerate(q.options)
        ]
        built.append(question)
    return built


def _ensure_can_edit(test: Test, user: CurrentUser):
    if not user.is_admin and test.created_by != user.user_id:
        raise Forbidden("시험을 수정/삭제할 권한이 없습니다")


# ✅ [CREATE] 시험 작성
def create_test(db: Session, payload: TestCreate, owner: CurrentUser) -> Test:
    test = Test(
        title=payload.title,
        description=payload.description,
        category=payload.category,
        skill_level=payload.skill_level,
        duration=payload.duration,
        passing_score=payload.passing_score,
        created_by=owner.user_id,
    )
    test.questions = _build_questions(payload.questions)
    db.add(test)
    db.commit()
    logger.info(f"시험 생성: test_id={test.id}, questions={len(test.questions)}, by={owner.user_id}")
    return get_test(db, test.id)


# ✅ [UPDATE] 시험 수정 (작성자/관리자)
#    - 문항은 통째로 교체. 이미 제출된 결과는 자체 점수/답안을 보관하므로 영향 없음
def update_test(db: Session, test_id: int, payload: TestCreate, user: CurrentUser) -> Test:
    test = get_test(db, test_id)
    _ensure_can_edit(test, user)

    test.title = payload.title
    test.description = payload.description
    test.category = payload.category
    test.skill_level = payload.skill_level
    test.duration = payload.duration
    test.passing_score = payload.passing_score
    test.questions = _build_questions(payload.questions)

    db.commit()
    logger.info(f"시험 수정: test_id={test_id}, by={user.user_id}")
    return get_test(db, test_id)


# ✅ [DELETE] 시험 삭제 + 배정/결과/인증서 일괄 삭제 (단일 트랜잭션)
def delete_test(db: Session, test_id: int, user: CurrentUser) -> None:
    test = get_test(db, test_id)
    _ensure_can_edit(test, user)

    try:
        for assignment in db.query(TestAssignment).filter(TestAssignment.test_id == test_id).all():
            db.delete(assignment)
        db.query(TestResult).filter(TestResult.test_id == test_id).delete(synchronize_session=False)
        db.query(Certificate).filter(Certificate.test_id == test_id).delete(synchronize_session=False)
        db.delete(test)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"시험 및 관련 데이터 삭제: test_id={test_id}, by={user.user_id}")
