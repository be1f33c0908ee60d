from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentUser, get_current_user, require_roles
from schemas.certificates import CertificateIssue
from schemas.test_assignments import AssignmentCreate, AssignmentOut, AssignmentWithTest
from schemas.test_results import SubmitAnswers, SubmitResultOut, CompletionStats, ProgressItem
from schemas.tests import TestCreate, TestDetail, TestSummary
from services import assignment_service, certificate_service, test_service, test_taking_service
from utils.errors import Forbidden

router = APIRouter(prefix="/tests", tags=["시험 응시 및 인증"])


# ==========================================================
# [1단계] 시험 목록 / 작성
# ==========================================================

# ✅ [READ] 전체 시험 목록 (관리자/매니저)
@router.get("/")
def read_tests(db: Session = Depends(get_db),
               user: CurrentUser = Depends(require_roles("admin", "manager"))):
    records = test_service.list_tests(db)
    return {
        "success": True,
        "data": [TestSummary.model_validate(t) for t in records],
        "message": "전체 시험 목록 조회 완료"
    }


# ✅ [CREATE] 시험 작성 (관리자/매니저)
@router.post("/", status_code=201)
def create_test(new_test: TestCreate, db: Session = Depends(get_db),
                user: CurrentUser = Depends(require_roles("admin", "manager"))):
    test = test_service.create_test(db, new_test, user)
    return {
        "success": True,
        "data": TestDetail.model_validate(test),
        "message": "시험이 성공적으로 생성되었습니다"
    }


# ==========================================================
# [2단계] 정적 라우터 (호출자 기준 조회 / 배정)
# ==========================================================

# ✅ [READ] 지금 응시할 수 있는 시험 목록
@router.get("/available")
def get_available_tests(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    tests = test_taking_service.list_available_tests(db, user)
    return {
        "success": True,
        "data": [TestSummary.model_validate(t) for t in tests],
        "message": "응시 가능한 시험 목록 조회 완료"
    }


# ✅ [READ] 내 배정 목록 (삭제된 시험 참조는 제외)
@router.get("/assignments")
def get_my_assignments(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    rows = assignment_service.list_for_user(db, user)
    return {
        "success": True,
        "data": [
            AssignmentWithTest(
                id=a.id,
                test_id=a.test_id,
                assigned_by=a.assigned_by,
                assigned_to=a.assigned_to,
                department=a.department,
                due_date=a.due_date,
                status=status,
                created_at=a.created_at,
                test=TestSummary.model_validate(test),
            )
            for a, test, status in rows
        ],
        "message": "배정된 시험 목록 조회 완료"
    }


# ✅ [CREATE] 시험 배정 (개인 목록 또는 부서)
@router.post("/assign", status_code=201)
def assign_test(payload: AssignmentCreate, db: Session = Depends(get_db),
                user: CurrentUser = Depends(require_roles("admin", "manager"))):
    assignment = assignment_service.assign(
        db,
        test_id=payload.test_id,
        assigned_to=payload.assigned_to,
        department=payload.department,
        due_date=payload.due_date,
        assigned_by=user,
    )
    return {
        "success": True,
        "data": AssignmentOut(
            id=assignment.id,
            test_id=assignment.test_id,
            assigned_by=assignment.assigned_by,
            assigned_to=assignment.assigned_to,
            department=assignment.department,
            due_date=assignment.due_date,
            status=assignment.status,
            created_at=assignment.created_at,
        ),
        "message": "시험이 성공적으로 배정되었습니다"
    }


# ✅ [READ] 내 인증서 목록
@router.get("/certificates")
def get_my_certificates(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    rows = certificate_service.list_for_user(db, user.user_id)
    return {
        "success": True,
        "data": [certificate_service.to_out(c, title) for c, title in rows],
        "message": "인증서 목록 조회 완료"
    }


# ✅ [READ] 인증서 상세 (다운로드용, 소유자만)
@router.get("/certificates/{certificate_id}/download")
def download_certificate(certificate_id: int, db: Session = Depends(get_db),
                         user: CurrentUser = Depends(get_current_user)):
    certificate, title = certificate_service.get_for_download(db, certificate_id, user)
    return {
        "success": True,
        "data": certificate_service.to_out(certificate, title),
        "message": "인증서 조회 성공"
    }


# ✅ [SUMMARY] 내 응시 완료 통계
@router.get("/completed-count")
def get_completed_count(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return {
        "success": True,
        "data": CompletionStats(**test_taking_service.completion_stats(db, user)),
        "message": "응시 통계 조회 완료"
    }


# ✅ [READ] 사용자 진행 현황 (관리자 또는 본인)
@router.get("/user-progress/{user_id}")
def get_user_progress(user_id: str, db: Session = Depends(get_db),
                      user: CurrentUser = Depends(get_current_user)):
    items = test_taking_service.user_progress(db, user, user_id)
    return {
        "success": True,
        "data": [ProgressItem(**item) for item in items],
        "message": "진행 현황 조회 완료"
    }


# ==========================================================
# [3단계] 응시 / 제출 / 인증서 발급
# ==========================================================

# ✅ [READ] 응시용 시험 (정답 정보 제거)
@router.get("/take/{test_id}")
def get_test_for_taking(test_id: int, db: Session = Depends(get_db),
                        user: CurrentUser = Depends(get_current_user)):
    return {
        "success": True,
        "data": test_taking_service.get_test_for_taking(db, user, test_id),
        "message": "응시용 시험 조회 성공"
    }


# ✅ [SUBMIT] 답안 제출 → 채점 → 배정 완료
@router.post("/{test_id}/submit")
def submit_test(test_id: int, payload: SubmitAnswers, db: Session = Depends(get_db),
                user: CurrentUser = Depends(get_current_user)):
    result = test_taking_service.submit_answers(
        db, user, test_id, payload.answers, payload.time_spent_seconds
    )
    return {
        "success": True,
        "data": SubmitResultOut(score=result.score, passed=result.passed, result_id=result.id),
        "message": "답안이 제출되었습니다"
    }


# ✅ [CREATE] 인증서 발급 (합격 결과만)
@router.post("/{test_id}/certificate", status_code=201)
def issue_certificate(test_id: int, payload: CertificateIssue, db: Session = Depends(get_db),
                      user: CurrentUser = Depends(get_current_user)):
    certificate = certificate_service.issue(db, user, test_id, payload.test_result_id)
    return {
        "success": True,
        "data": certificate_service.to_out(certificate),
        "message": "인증서가 발급되었습니다"
    }


# ==========================================================
# [4단계] 완전 동적 라우터 (작성자/관리자 전용)
# ==========================================================

# ✅ [READ] 시험 상세 (정답 포함)
@router.get("/{test_id}")
def read_test(test_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    test = test_service.get_test(db, test_id)
    if not user.is_admin and test.created_by != user.user_id:
        raise Forbidden("시험 원본을 조회할 권한이 없습니다")
    return {
        "success": True,
        "data": TestDetail.model_validate(test),
        "message": "시험 상세 조회 성공"
    }


# ✅ [UPDATE] 시험 수정
@router.put("/{test_id}")
def update_test(test_id: int, updated: TestCreate, db: Session = Depends(get_db),
                user: CurrentUser = Depends(get_current_user)):
    test = test_service.update_test(db, test_id, updated, user)
    return {
        "success": True,
        "data": TestDetail.model_validate(test),
        "message": "시험 정보가 성공적으로 수정되었습니다"
    }


# ✅ [DELETE] 시험 삭제 (배정/결과/인증서 포함)
@router.delete("/{test_id}")
def delete_test(test_id: int, db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    test_service.delete_test(db, test_id, user)
    return {
        "success": True,
        "data": {"test_id": test_id},
        "message": "시험과 관련 데이터가 성공적으로 삭제되었습니다"
    }
