import os
import tempfile
from datetime import timedelta

# ✅ 앱 모듈을 불러오기 전에 테스트용 SQLite 파일 DB 지정
_DB_DIR = tempfile.mkdtemp(prefix="skills-test-")
os.environ["SQLALCHEMY_DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["ENV"] = "test"
os.environ["REQUEST_LOG"] = "false"

import pytest
from fastapi.testclient import TestClient

from database.db import Base, SessionLocal, engine
from dependencies.security import CurrentUser
from main import app
from models.test_assignments import TestAssignment, AssignmentTarget
from schemas.tests import TestCreate
from services.test_service import create_test
from utils.clock import utcnow
from utils.security import create_access_token

ADMIN = CurrentUser(user_id="admin-1", role="admin")


def mc(text, options, correct):
    """객관식 문항 정의 (correct 는 정답 보기 텍스트)"""
    return {
        "type": "multiple_choice",
        "text": text,
        "options": [{"text": o, "is_correct": o == correct} for o in options],
    }


def essay(text, sample_answer="모범 답안"):
    return {"type": "essay", "text": text, "sample_answer": sample_answer}


DEFAULT_QUESTIONS = [
    mc("1 + 1 = ?", ["1", "2", "3"], "2"),
    mc("대한민국의 수도는?", ["서울", "부산"], "서울"),
    mc("HTTP 기본 포트는?", ["80", "443"], "80"),
]


def build_payload(questions=None, passing_score=70, **fields):
    payload = {
        "title": "안전 교육 평가",
        "description": "기본 안전 수칙 확인",
        "category": "safety",
        "skill_level": "beginner",
        "duration": 30,
        "passing_score": passing_score,
        "questions": questions if questions is not None else DEFAULT_QUESTIONS,
    }
    payload.update(fields)
    return payload


def make_test(db, questions=None, passing_score=70, owner=ADMIN, **fields):
    """
    시험 생성 후 {"id", "question_ids", "answer_key"} 반환
    - answer_key: {문항ID(str): 정답 보기 텍스트 또는 None}
    """
    test = create_test(db, TestCreate(**build_payload(questions, passing_score, **fields)), owner)
    answer_key = {}
    for q in test.questions:
        answer_key[str(q.id)] = next((o.text for o in q.options if o.is_correct), None)
    return {
        "id": test.id,
        "question_ids": [str(q.id) for q in test.questions],
        "answer_key": answer_key,
    }


def make_assignment(db, test_id, assigned_to=None, department=None,
                    due_date=None, status="pending", assigned_by="admin-1"):
    """검증 없이 배정 행을 직접 저장 (마감이 지난 배정 등 준비용), 배정 ID 반환"""
    assignment = TestAssignment(
        test_id=test_id,
        assigned_by=assigned_by,
        department=department,
        due_date=due_date or utcnow() + timedelta(days=7),
        status=status,
    )
    assignment.targets = [AssignmentTarget(user_id=u) for u in (assigned_to or [])]
    db.add(assignment)
    db.flush()
    assignment_id = assignment.id
    db.commit()
    return assignment_id


def auth(user_id, role="employee", department=None):
    return {"Authorization": f"Bearer {create_access_token(user_id, role=role, department=department)}"}


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """
    서비스 계층 테스트용 세션
    - SQLite 는 트랜잭션마다 쓰기 잠금을 잡으므로, 다른 세션(TestClient, 스레드)을
      쓰기 전에는 반드시 close() 해서 잠금을 풀어야 함
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return auth("admin-1", role="admin")
