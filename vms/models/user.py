"""
사용자 모델 (데이터베이스 테이블)
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Enum as SQLEnum
from datetime import datetime
import enum
from vms.database import Base


class UserRole(str, enum.Enum):
    """사용자 역할"""
    ADMIN = "admin"  # 관리자
    DEPARTMENT_USER = "department_user"  # 부서 신청자
    SECURITY = "security"  # 보안 심사자
    GATE = "gate"  # 출입문 담당자


class DepartmentType(str, enum.Enum):
    """부서 유형"""
    WING = "wing"
    DIRECTOR = "director"
    DIVISION = "division"


class DepartmentRole(str, enum.Enum):
    """부서 내 직책"""
    DIVISION_HEAD = "division_head"
    WING = "wing"
    DIRECTOR = "director"


class Location(str, enum.Enum):
    """근무지"""
    WOLLO_SEFER = "Wollo Sefer"
    OPERATION = "Operation"


class User(Base):
    """사용자 테이블"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String(20), unique=True, index=True, nullable=False)
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(50), nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.DEPARTMENT_USER, nullable=False, index=True)
    department = Column(String(100), nullable=True)
    department_type = Column(SQLEnum(DepartmentType), default=DepartmentType.DIVISION, nullable=False)
    department_role = Column(SQLEnum(DepartmentRole), default=DepartmentRole.DIVISION_HEAD, nullable=False)
    location = Column(SQLEnum(Location), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # 위임 활성화 시 복사되는 값 (Delegation 테이블의 투영)
    is_delegated = Column(Boolean, default=False, nullable=False)
    delegated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    delegation_reason = Column(String(500), nullable=True)
    delegation_start_date = Column(DateTime, nullable=True)
    delegation_end_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def clear_delegation(self) -> None:
        self.is_delegated = False
        self.delegated_by_id = None
        self.delegation_reason = None
        self.delegation_start_date = None
        self.delegation_end_date = None

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
