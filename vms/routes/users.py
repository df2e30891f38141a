"""
사용자 관리 API 라우트 (관리자 / 보안 심사자)
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from vms.database import get_db
from vms.schemas.user import UserCreate, UserUpdate, UserStatusUpdate, UserResponse, UserListResponse, MessageResponse
from vms.services.user_service import UserService
from vms.services.audit_service import AuditService
from vms.dependencies import require_permission
from vms.security.permissions import Action
from vms.models.audit_log import AuditAction
from vms.models.user import User

router = APIRouter(
    prefix="/api/users",
    tags=["Users"]
)


@router.get("", response_model=UserListResponse)
async def list_users(
        db: Session = Depends(get_db),
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=1000),
        current_user: User = Depends(require_permission(Action.MANAGE_USERS))
):
    """활성 사용자 목록"""
    users, total = UserService.list_active_users(db, skip, limit)
    return {
        "total": total,
        "items": users
    }


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
        user_data: UserCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_USERS))
):
    """사용자 생성 (모든 역할 가능)"""
    user = UserService.create_user(db, user_data, created_by=current_user)
    AuditService.record(
        db, AuditAction.USER_CREATED, current_user, target_user=user,
        details={"username": user.username, "role": user.role.value},
        context="admin user creation",
    )
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
        user_id: int,
        user_data: UserUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_USERS))
):
    """사용자 정보 수정"""
    user = UserService.update_user(db, user_id, user_data)
    AuditService.record(
        db, AuditAction.USER_UPDATED, current_user, target_user=user,
        details={"fields": sorted(user_data.model_dump(exclude_unset=True))},
        context="admin user update",
    )
    return user


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
        user_id: int,
        status_data: UserStatusUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_USERS))
):
    """사용자 활성/비활성 전환"""
    user = UserService.set_active(db, user_id, status_data.is_active)
    AuditService.record(
        db, AuditAction.USER_UPDATED, current_user, target_user=user,
        details={"is_active": user.is_active},
        context="admin status change",
    )
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_USERS))
):
    """사용자 삭제"""
    deleted = UserService.delete_user(db, user_id)
    # 대상 행은 이미 삭제되었으므로 식별 정보는 details로 남김
    AuditService.record(
        db, AuditAction.USER_DELETED, current_user,
        details={
            "user_id": deleted["id"],
            "username": deleted["username"],
            "employee_id": deleted["employee_id"],
        },
        context="admin user deletion",
        target_employee_id=deleted["employee_id"],
    )
    return {"message": "User deleted successfully"}


@router.patch("/{user_id}/approve", response_model=UserResponse)
async def approve_user(
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.APPROVE_USER))
):
    """가입 승인 (보안 심사자)"""
    return UserService.approve_user(db, user_id)
