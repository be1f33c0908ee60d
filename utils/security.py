from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from config.settings import settings
from utils.errors import Unauthorized

ROLES = ("employee", "manager", "admin")


def create_access_token(
    user_id: str,
    role: str = "employee",
    department: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=24),
) -> str:
    """외부 인증 서버와 동일한 형식의 토큰 생성 (개발/테스트용)"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "department": department,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("토큰이 만료되었습니다")
    except jwt.InvalidTokenError:
        raise Unauthorized("유효하지 않은 토큰입니다")

    if not payload.get("sub"):
        raise Unauthorized("토큰에 사용자 정보가 없습니다")
    if payload.get("role") not in ROLES:
        raise Unauthorized("토큰의 역할 정보가 올바르지 않습니다")
    return payload
