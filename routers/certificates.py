from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentUser, get_current_user
from services import certificate_service
from utils.errors import Forbidden

router = APIRouter(prefix="/certificates", tags=["인증서"])


# ✅ [DELETE] 인증서 폐기 (관리자 또는 소유자)
@router.delete("/{certificate_id}")
def revoke_certificate(certificate_id: int, db: Session = Depends(get_db),
                       user: CurrentUser = Depends(get_current_user)):
    certificate_service.revoke(db, certificate_id, user)
    return {
        "success": True,
        "data": {"certificate_id": certificate_id},
        "message": "인증서가 삭제되었습니다"
    }


# ✅ [READ] 특정 사용자 인증서 목록 (관리자 또는 본인)
@router.get("/user/{user_id}")
def get_user_certificates(user_id: str, db: Session = Depends(get_db),
                          user: CurrentUser = Depends(get_current_user)):
    if not user.is_admin and user.user_id != user_id:
        raise Forbidden("다른 사용자의 인증서를 볼 권한이 없습니다")

    rows = certificate_service.list_for_user(db, user_id)
    return {
        "success": True,
        "data": [
            certificate_service.to_out(c, title) for c, title in rows
        ],
        "message": "사용자 인증서 목록 조회 완료"
    }
