"""
사용자 관리 서비스
비즈니스 로직 계층
"""
import logging
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
from vms.models.user import User, UserRole
from vms.schemas.user import UserCreate, UserUpdate, UserLogin
from vms.security.auth import hash_password, verify_password
from vms.utils.exceptions import (
    NotFoundException, DuplicateException, UnauthorizedException, BadRequestException, ConflictException
)

logger = logging.getLogger(__name__)

EMPLOYEE_ID_PREFIX = "EMP"


class UserService:
    """사용자 관리 서비스"""

    @staticmethod
    def next_employee_id(db: Session) -> str:
        """가장 큰 사번 다음 번호 발급 (EMP000001 형식)"""
        latest = (
            db.query(User.employee_id)
            .filter(User.employee_id.like(f"{EMPLOYEE_ID_PREFIX}%"))
            .order_by(User.employee_id.desc())
            .first()
        )
        next_id = 1
        if latest:
            numeric_part = latest[0][len(EMPLOYEE_ID_PREFIX):]
            if numeric_part.isdigit():
                next_id = int(numeric_part) + 1
        return f"{EMPLOYEE_ID_PREFIX}{next_id:06d}"

    @staticmethod
    def create_user(db: Session, user_data: UserCreate, created_by: Optional[User] = None) -> User:
        """사용자 생성 (회원가입 / 관리자 생성)"""
        # 중복 확인 (Username 또는 Email)
        existing_user = db.query(User).filter(
            (User.username == user_data.username) | (User.email == user_data.email)
        ).first()

        if existing_user:
            if existing_user.username == user_data.username:
                raise DuplicateException(detail="Username already exists")
            raise DuplicateException(detail="Email already exists")

        user = User(
            employee_id=UserService.next_employee_id(db),
            username=user_data.username,
            email=user_data.email,
            password_hash=hash_password(user_data.password),
            full_name=user_data.full_name,
            role=user_data.role,
            department=user_data.department,
            department_type=user_data.department_type,
            department_role=user_data.department_role,
            location=user_data.location,
            created_by_id=created_by.id if created_by else None,
        )

        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DuplicateException(detail="User with this email or username already exists")
        db.refresh(user)
        logger.info("User %s created with role %s", user.username, user.role.value)
        return user

    @staticmethod
    def authenticate_user(db: Session, user_login: UserLogin) -> User:
        """사용자 인증 (로그인 로직)"""
        user = db.query(User).filter(User.username == user_login.username).first()

        # 유저 미존재 / 비활성 / 비밀번호 불일치
        if not user or not user.is_active:
            raise UnauthorizedException(detail="Invalid credentials or account inactive")
        if not verify_password(user_login.password, user.password_hash):
            raise UnauthorizedException(detail="Invalid credentials")

        user.last_login = datetime.utcnow()
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> User:
        """ID로 사용자 조회"""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundException(detail="User not found")
        return user

    @staticmethod
    def list_active_users(db: Session, skip: int = 0, limit: int = 100) -> tuple[List[User], int]:
        """활성 사용자 목록 (최근 생성 순)"""
        query = db.query(User).filter(User.is_active.is_(True))
        total = query.count()
        users = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()
        return users, total

    @staticmethod
    def update_user(db: Session, user_id: int, user_data: UserUpdate) -> User:
        """사용자 정보 수정"""
        user = UserService.get_user_by_id(db, user_id)

        # 전달된 필드만 업데이트 (Partial Update)
        update_data = user_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(user, field, value)

        if user.role == UserRole.DEPARTMENT_USER and not user.department:
            db.rollback()
            raise BadRequestException(detail="Department is required for department users")

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DuplicateException(detail="User with this email or username already exists")
        db.refresh(user)
        return user

    @staticmethod
    def set_active(db: Session, user_id: int, is_active: bool) -> User:
        """사용자 활성화/비활성화 (Soft Delete 대용)"""
        user = UserService.get_user_by_id(db, user_id)
        user.is_active = is_active
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def approve_user(db: Session, user_id: int) -> User:
        """가입 승인"""
        user = UserService.get_user_by_id(db, user_id)
        user.is_approved = True
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def delete_user(db: Session, user_id: int) -> dict:
        """사용자 삭제 - 연결된 기록이 있으면 거부, 삭제 전 식별 정보를 반환"""
        user = UserService.get_user_by_id(db, user_id)
        snapshot = {"id": user.id, "username": user.username, "employee_id": user.employee_id}
        db.delete(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictException(detail="User has related records; deactivate the account instead")
        return snapshot
