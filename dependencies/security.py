from dataclasses import dataclass
from typing import Optional, Annotated

from fastapi import Depends, Header, HTTPException

from utils.errors import Unauthorized
from utils.security import decode_access_token

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]


@dataclass(frozen=True)
class CurrentUser:
    """요청마다 새로 만들어지는 호출자 정보 (전역 상태 없음)"""
    user_id: str
    role: str
    department: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(authorization: AuthHeader = None) -> CurrentUser:
    if not authorization:
        raise _unauthorized("Authorization 헤더가 없습니다")

    # "Bearer <token>" 파싱
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise _unauthorized("Authorization 헤더 형식이 올바르지 않습니다")

    if scheme.lower() != "bearer":
        raise _unauthorized("지원하지 않는 인증 방식입니다")

    try:
        payload = decode_access_token(token.strip())
    except Unauthorized as e:
        raise _unauthorized(e.message)

    return CurrentUser(
        user_id=str(payload["sub"]),
        role=payload["role"],
        department=payload.get("department") or None,
    )


def require_roles(*roles: str):
    """역할 제한 의존성: require_roles("admin", "manager")"""

    def _checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="이 작업을 수행할 권한이 없습니다")
        return user

    return _checker
