"""
인증 API 라우트
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from vms.database import get_db
from vms.schemas.user import UserRegister, UserLogin, UserResponse, TokenResponse, MessageResponse
from vms.services.user_service import UserService
from vms.security.auth import create_access_token
from vms.dependencies import get_current_user
from vms.models.user import User

router = APIRouter(
    prefix="/api/auth",
    tags=["Authentication"]
)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
        user_data: UserRegister,
        db: Session = Depends(get_db)
):
    """사용자 회원가입 (관리자 역할 제외)"""
    user = UserService.create_user(db, user_data)
    access_token = create_access_token(user.id, user.role.value)

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user
    }


@router.post("/login", response_model=TokenResponse)
async def login(
        user_login: UserLogin,
        db: Session = Depends(get_db)
):
    """사용자 로그인 및 토큰 발급"""
    user = UserService.authenticate_user(db, user_login)

    # JWT 액세스 토큰 생성
    access_token = create_access_token(user.id, user.role.value)

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user
    }


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
        current_user: User = Depends(get_current_user)
):
    """현재 로그인한 사용자 정보 조회 (토큰 기반)"""
    return current_user


@router.post("/logout", response_model=MessageResponse)
async def logout(
        current_user: User = Depends(get_current_user)
):
    """로그아웃 - 토큰은 클라이언트에서 폐기"""
    return {"message": "Logged out successfully"}
