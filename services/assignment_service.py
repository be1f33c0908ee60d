"""
services/assignment_service.py

- 시험 배정 원장: "누가 어떤 시험을 언제까지 응시해야 하는가"
- 상태 전이: pending → completed (제출 성공) / pending → expired (마감 경과, 스윕 스크립트)
  completed, expired 는 종료 상태
- 완료는 (배정, 사용자) 단위로 assignment_completions 에 기록
  · 개인 배정: 대상자 전원이 완료하면 행 상태도 completed
  · 부서 배정: 구성원이 열려 있으므로 행 상태는 마감 전까지 pending 유지
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, selectinload

from dependencies.security import CurrentUser
from models.test_assignments import TestAssignment, AssignmentTarget, AssignmentCompletion
from models.tests import Test
from utils.clock import utcnow, to_naive_utc
from utils.errors import Conflict, Forbidden, InvalidInput, NotFound

logger = logging.getLogger(__name__)


# ==========================================================
# [공통] 조회 조건 / 상태 계산
# ==========================================================

def _matches_user(user: CurrentUser):
    """개인 배정 대상이거나 소속 부서 배정인 행"""
    conditions = [TestAssignment.targets.any(AssignmentTarget.user_id == user.user_id)]
    if user.department:
        conditions.append(TestAssignment.department == user.department)
    return or_(*conditions)


def _completed_by(assignment: TestAssignment, user_id: str) -> bool:
    return any(c.user_id == user_id for c in assignment.completions)


def effective_status(assignment: TestAssignment, user_id: str, now: Optional[datetime] = None) -> str:
    """호출자 기준 상태: 본인 완료 기록 > 마감 경과 > 행 상태"""
    now = now or utcnow()
    if _completed_by(assignment, user_id):
        return "completed"
    if assignment.status == "pending" and assignment.due_date < now:
        return "expired"
    return assignment.status


def _rows_for(db: Session, user: CurrentUser, test_id: int, for_update: bool = False) -> List[TestAssignment]:
    query = (
        db.query(TestAssignment)
        .options(selectinload(TestAssignment.targets), selectinload(TestAssignment.completions))
        .filter(TestAssignment.test_id == test_id, _matches_user(user))
        .order_by(TestAssignment.id)
    )
    if for_update:
        query = query.with_for_update()
    return query.all()


def find_pending(db: Session, user: CurrentUser, test_id: int, now: Optional[datetime] = None,
                 for_update: bool = False) -> List[TestAssignment]:
    """호출자가 지금 응시할 수 있는 배정 행 (pending + 마감 전 + 본인 미완료)"""
    now = now or utcnow()
    return [
        a for a in _rows_for(db, user, test_id, for_update=for_update)
        if effective_status(a, user.user_id, now) == "pending"
    ]


def denial_reason(db: Session, user: CurrentUser, test_id: int, now: Optional[datetime] = None) -> str:
    """응시 불가 사유 (UX 용 구분): already_completed / expired / not_assigned"""
    now = now or utcnow()
    statuses = {effective_status(a, user.user_id, now) for a in _rows_for(db, user, test_id)}
    if "completed" in statuses:
        return "already_completed"
    if "expired" in statuses:
        return "expired"
    return "not_assigned"


# ==========================================================
# [1] 배정 생성
# ==========================================================

def _normalize_targets(assigned_to: Optional[List[str]]) -> List[str]:
    if not assigned_to:
        return []
    targets = []
    for user_id in assigned_to:
        user_id = str(user_id).strip()
        if not user_id:
            raise InvalidInput("배정 대상 사용자 ID가 비어 있습니다")
        if user_id not in targets:
            targets.append(user_id)
    return targets


def assign(db: Session, test_id: int, assigned_to: Optional[List[str]], department: Optional[str],
           due_date: datetime, assigned_by: CurrentUser, now: Optional[datetime] = None) -> TestAssignment:
    now = now or utcnow()
    targets = _normalize_targets(assigned_to)
    department = (department or "").strip() or None

    # ✅ 입력 검증 (변경 전에 모두 수행)
    if targets and department:
        raise InvalidInput("부서 또는 사용자 목록 중 하나만 지정하세요")
    if not targets and not department:
        raise InvalidInput("부서 또는 사용자 목록을 지정하세요")
    if due_date is None:
        raise InvalidInput("마감 일시가 필요합니다")
    due_date = to_naive_utc(due_date)
    if due_date <= now:
        raise InvalidInput("마감 일시는 현재 이후여야 합니다")

    # ✅ 권한: 관리자 전체 / 매니저는 소속 부서만
    if not assigned_by.is_admin:
        if assigned_by.role != "manager":
            raise Forbidden("시험을 배정할 권한이 없습니다")
        if not department or department != assigned_by.department:
            raise Forbidden("매니저는 소속 부서에만 시험을 배정할 수 있습니다")

    if not db.query(Test.id).filter(Test.id == test_id).first():
        raise NotFound("시험 정보를 찾을 수 없습니다")

    # ✅ 중복 배정 방지 (같은 시험의 미완료 pending 배정이 이미 있으면 409)
    if department:
        duplicate = (
            db.query(TestAssignment.id)
            .filter(
                TestAssignment.test_id == test_id,
                TestAssignment.department == department,
                TestAssignment.status == "pending",
                TestAssignment.due_date >= now,
            )
            .first()
        )
        if duplicate:
            raise Conflict("해당 부서에 이미 진행 중인 배정이 있습니다")
    else:
        duplicates = (
            db.query(AssignmentTarget.user_id)
            .join(TestAssignment, TestAssignment.id == AssignmentTarget.assignment_id)
            .outerjoin(
                AssignmentCompletion,
                and_(
                    AssignmentCompletion.assignment_id == AssignmentTarget.assignment_id,
                    AssignmentCompletion.user_id == AssignmentTarget.user_id,
                ),
            )
            .filter(
                TestAssignment.test_id == test_id,
                TestAssignment.status == "pending",
                TestAssignment.due_date >= now,
                AssignmentTarget.user_id.in_(targets),
                AssignmentCompletion.id.is_(None),
            )
            .all()
        )
        if duplicates:
            users = ", ".join(sorted({row.user_id for row in duplicates}))
            raise Conflict(f"이미 진행 중인 배정이 있는 사용자가 있습니다: {users}")

    assignment = TestAssignment(
        test_id=test_id,
        assigned_by=assigned_by.user_id,
        department=department,
        due_date=due_date,
        status="pending",
    )
    assignment.targets = [AssignmentTarget(user_id=user_id) for user_id in targets]
    db.add(assignment)
    db.commit()
    db.refresh(assignment)

    logger.info(
        f"시험 배정: assignment_id={assignment.id}, test_id={test_id}, "
        f"department={department}, users={len(targets)}, by={assigned_by.user_id}"
    )
    return assignment


# ==========================================================
# [2] 사용자별 배정 목록 (삭제된 시험 참조 행 제외)
# ==========================================================

def list_for_user(db: Session, user: CurrentUser, now: Optional[datetime] = None) -> List[Tuple[TestAssignment, Test, str]]:
    now = now or utcnow()
    assignments = (
        db.query(TestAssignment)
        .options(selectinload(TestAssignment.targets), selectinload(TestAssignment.completions))
        .filter(_matches_user(user))
        .order_by(TestAssignment.due_date, TestAssignment.id)
        .all()
    )

    test_ids = {a.test_id for a in assignments}
    tests: Dict[int, Test] = {}
    if test_ids:
        tests = {t.id: t for t in db.query(Test).filter(Test.id.in_(test_ids)).all()}

    dangling = [a.id for a in assignments if a.test_id not in tests]
    if dangling:
        logger.warning(f"존재하지 않는 시험을 참조하는 배정 발견 (목록에서 제외): assignment_ids={dangling}")

    return [
        (a, tests[a.test_id], effective_status(a, user.user_id, now))
        for a in assignments
        if a.test_id in tests
    ]


# ==========================================================
# [3] 완료 처리 (제출 트랜잭션 내부에서 호출, commit 은 호출자 담당)
# ==========================================================

def complete_for(db: Session, user: CurrentUser, test_id: int, result_id: int,
                 now: Optional[datetime] = None) -> int:
    """
    호출자의 pending 배정 행을 모두 완료 처리하고 처리한 행 수를 반환
    - 이미 완료된 행은 건너뜀 → 두 번 호출해도 추가 효과 없음
    - 동시 제출은 (assignment_id, user_id) 유니크 제약에서 IntegrityError 로 걸러짐
    """
    now = now or utcnow()
    pending = find_pending(db, user, test_id, now, for_update=True)

    for assignment in pending:
        assignment.completions.append(
            AssignmentCompletion(user_id=user.user_id, result_id=result_id, completed_at=now)
        )
        # 개인 배정: 대상자 전원 완료 시 행 상태도 completed
        if assignment.targets and not assignment.department:
            done = {c.user_id for c in assignment.completions}
            if all(t.user_id in done for t in assignment.targets):
                assignment.status = "completed"

    db.flush()
    return len(pending)


# ==========================================================
# [4] 마감 경과 배정 만료 처리 (외부 스케줄러가 호출)
# ==========================================================

def expire_overdue(db: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    count = (
        db.query(TestAssignment)
        .filter(TestAssignment.status == "pending", TestAssignment.due_date < now)
        .update({"status": "expired", "updated_at": now}, synchronize_session=False)
    )
    db.commit()
    if count:
        logger.info(f"마감 경과 배정 만료 처리: {count}건")
    return count
