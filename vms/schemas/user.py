"""
사용자 관련 Pydantic 스키마 (API 요청/응답)
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional
import re
from vms.models.user import UserRole, DepartmentType, DepartmentRole, Location


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# 공개 가입으로 만들 수 있는 역할 (관리자는 관리자만 생성)
SELF_REGISTER_ROLES = (UserRole.DEPARTMENT_USER, UserRole.SECURITY, UserRole.GATE)


def _normalize_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email")
    return v


class UserCreate(BaseModel):
    """사용자 생성 요청 (관리자)"""
    username: str = Field(..., min_length=3, max_length=30)
    email: str
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=50)
    role: UserRole = UserRole.DEPARTMENT_USER
    department: Optional[str] = Field(None, max_length=100)
    department_type: DepartmentType = DepartmentType.DIVISION
    department_role: DepartmentRole = DepartmentRole.DIVISION_HEAD
    location: Location

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("username", "department")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    @model_validator(mode="after")
    def department_required_for_submitters(self):
        if self.role == UserRole.DEPARTMENT_USER and not self.department:
            raise ValueError("Department is required for department users")
        return self


class UserRegister(UserCreate):
    """공개 회원가입 요청"""

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if v not in SELF_REGISTER_ROLES:
            raise ValueError("Role must be department_user, security, or gate")
        return v


class UserLogin(BaseModel):
    """사용자 로그인 요청"""
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    """사용자 정보 수정 (관리자)"""
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[str] = None
    full_name: Optional[str] = Field(None, max_length=50)
    role: Optional[UserRole] = None
    department: Optional[str] = Field(None, max_length=100)
    department_type: Optional[DepartmentType] = None
    department_role: Optional[DepartmentRole] = None
    location: Optional[Location] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class UserStatusUpdate(BaseModel):
    """활성/비활성 전환"""
    is_active: bool


class UserSummary(BaseModel):
    """다른 응답에 포함되는 사용자 요약"""
    id: int
    employee_id: str
    username: str
    full_name: str
    department: Optional[str]
    department_type: DepartmentType

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """사용자 응답"""
    id: int
    employee_id: str
    username: str
    email: str
    full_name: str
    role: UserRole
    department: Optional[str]
    department_type: DepartmentType
    department_role: DepartmentRole
    location: Location
    is_active: bool
    is_approved: bool
    last_login: Optional[datetime]
    created_by_id: Optional[int]
    is_delegated: bool
    delegated_by_id: Optional[int]
    delegation_reason: Optional[str]
    delegation_start_date: Optional[datetime]
    delegation_end_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """사용자 목록 응답"""
    total: int
    items: list[UserResponse]


class TokenResponse(BaseModel):
    """토큰 응답"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class TokenPayload(BaseModel):
    """토큰 페이로드"""
    sub: int
    exp: int
    iat: int
    role: UserRole


class MessageResponse(BaseModel):
    """단순 메시지 응답"""
    message: str
