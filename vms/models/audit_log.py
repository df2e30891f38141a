"""
감사 로그 모델 (데이터베이스 테이블)
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from vms.database import Base


class AuditAction(str, enum.Enum):
    """감사 대상 행위"""
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    DELEGATION_REQUESTED = "delegation_requested"
    DELEGATION_APPROVED = "delegation_approved"
    DELEGATION_REJECTED = "delegation_rejected"
    DELEGATION_ACTIVATED = "delegation_activated"
    DELEGATION_CANCELLED = "delegation_cancelled"
    REQUEST_CREATED = "request_created"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    REQUEST_CHECKED_IN = "request_checked_in"
    REQUEST_CHECKED_OUT = "request_checked_out"
    BULK_IMPORTED = "bulk_imported"


class AuditLog(Base):
    """
    감사 로그 테이블 (추가 전용)
    - 사번은 기록 시점의 값을 복사해 두므로 이후 사용자 정보가 바뀌어도 갱신되지 않음
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(SQLEnum(AuditAction), nullable=False, index=True)
    performed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    performed_by_employee_id = Column(String(20), nullable=False)
    target_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    target_user_employee_id = Column(String(20), nullable=True)
    details = Column(JSON, default=dict, nullable=False)
    context = Column(String(255), default="", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # 관계
    performed_by = relationship("User", foreign_keys=[performed_by_id])
    target_user = relationship("User", foreign_keys=[target_user_id])

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action={self.action}, performed_by_id={self.performed_by_id})>"
