"""
인증 의존성 및 권한 검사
FastAPI 의존성 주입 패턴 사용
"""
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from typing import Optional
from vms.database import get_db
from vms.security.auth import verify_token
from vms.security.permissions import Action, has_permission
from vms.models.user import User
from vms.utils.exceptions import UnauthorizedException, ForbiddenException


async def get_current_user(
        db: Session = Depends(get_db),
        authorization: Optional[str] = Header(None)
) -> User:
    """
    현재 인증된 사용자 가져오기
    - Authorization 헤더에서 Bearer 토큰을 추출하고 검증합니다.
    """
    if not authorization:
        raise UnauthorizedException(detail="Access denied. No token provided.")

    # Bearer 토큰 형식 추출 (Scheme과 Token 분리)
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise UnauthorizedException(detail="Invalid authorization header format")
    if scheme.lower() != "bearer":
        raise UnauthorizedException(detail="Invalid authentication scheme")

    # 토큰 검증 및 페이로드 추출
    token_payload = verify_token(token)
    if not token_payload:
        raise UnauthorizedException(detail="Invalid or expired token")

    # 삭제되었거나 비활성화된 계정은 토큰이 유효해도 거부
    user = db.get(User, token_payload.sub)
    if not user or not user.is_active:
        raise UnauthorizedException(detail="Invalid token or user inactive")

    return user


def require_permission(action: Action):
    """권한 표에 따라 현재 사용자의 역할을 검사하는 의존성 생성"""

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user, action):
            raise ForbiddenException(detail="Access denied. Insufficient permissions.")
        return current_user

    return checker
