"""
권한 위임 모델 (데이터베이스 테이블)
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from vms.database import Base


class DelegationStatus(str, enum.Enum):
    """위임 상태"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# 종료되지 않은(취소 가능한) 상태
OPEN_DELEGATION_STATUSES = (
    DelegationStatus.PENDING,
    DelegationStatus.APPROVED,
    DelegationStatus.ACTIVE,
)

DEFAULT_DELEGATION_PERMISSIONS = {
    "can_create_requests": True,
    "can_approve_requests": False,
    "can_bulk_upload": False,
    "gate_access": [],
    "access_type": ["Guest"],
}


class Delegation(Base):
    """권한 위임 테이블"""
    __tablename__ = "delegations"

    id = Column(Integer, primary_key=True, index=True)
    requested_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    requested_to_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reason = Column(String(500), nullable=False)
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False, index=True)
    status = Column(SQLEnum(DelegationStatus), default=DelegationStatus.PENDING, nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(String(500), nullable=True)
    permissions = Column(JSON, default=lambda: dict(DEFAULT_DELEGATION_PERMISSIONS), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # 관계
    requested_by = relationship("User", foreign_keys=[requested_by_id])
    requested_to = relationship("User", foreign_keys=[requested_to_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_DELEGATION_STATUSES

    def __repr__(self):
        return f"<Delegation(id={self.id}, requested_by_id={self.requested_by_id}, status={self.status})>"
