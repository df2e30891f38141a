"""
방문 신청 모델 (데이터베이스 테이블)
"""
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Boolean, ForeignKey, JSON, Enum as SQLEnum, event
)
from sqlalchemy.orm import relationship
from datetime import datetime, date
import enum
from vms.database import Base
from vms.models.user import DepartmentType, Location


class RequestStatus(str, enum.Enum):
    """방문 신청 상태"""
    PENDING = "pending"  # 심사 대기
    APPROVED = "approved"  # 승인
    DECLINED = "declined"  # 반려
    CHECKED_IN = "checked_in"  # 입장
    CHECKED_OUT = "checked_out"  # 퇴장
    EXPIRED = "expired"  # 기한 만료


class GateAssignment(str, enum.Enum):
    GATE_1 = "Gate 1"
    GATE_2 = "Gate 2"
    GATE_3 = "Gate 3"


class AccessType(str, enum.Enum):
    VIP = "VIP"
    GUEST = "Guest"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class VisitorRequest(Base):
    """방문 신청 테이블"""
    __tablename__ = "visitor_requests"

    id = Column(Integer, primary_key=True, index=True)

    # 방문자 정보
    visitor_name = Column(String(100), nullable=False, index=True)
    visitor_id = Column(String(50), nullable=False, index=True)
    national_id = Column(String(50), nullable=False)
    visitor_phone = Column(String(20), nullable=False)
    visitor_email = Column(String(100), nullable=True)
    photo = Column(String(255), nullable=True)
    purpose = Column(String(500), nullable=False)
    items_brought = Column(JSON, default=list, nullable=False)

    # 소속 및 출입 정보
    department = Column(String(100), nullable=False, index=True)
    department_type = Column(SQLEnum(DepartmentType), nullable=False)
    gate_assignment = Column(SQLEnum(GateAssignment), nullable=True)
    access_type = Column(SQLEnum(AccessType), nullable=True)
    location = Column(SQLEnum(Location), nullable=False)

    # 단체 방문
    is_group_visit = Column(Boolean, default=False, nullable=False)
    company_name = Column(String(100), nullable=True)
    group_size = Column(Integer, nullable=True)
    origin_department = Column(String(100), nullable=True)

    # 일정
    requested_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    visit_duration_hours = Column(Integer, default=0, nullable=False)
    visit_duration_days = Column(Integer, default=0, nullable=False)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(String(5), nullable=False)

    # 심사
    status = Column(SQLEnum(RequestStatus), default=RequestStatus.PENDING, nullable=False, index=True)
    reviewed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_comments = Column(String(500), nullable=True)
    approval_code = Column(String(12), unique=True, nullable=True, index=True)
    priority = Column(SQLEnum(Priority), default=Priority.MEDIUM, nullable=False)

    # 낙관적 잠금 카운터
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # 관계
    requested_by = relationship("User", foreign_keys=[requested_by_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])
    check_ins = relationship(
        "CheckInOut", back_populates="visitor_request", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    def expire_if_overdue(self, today: date = None) -> bool:
        """예정일이 지난 심사 대기 신청을 만료 처리"""
        today = today or date.today()
        if self.status == RequestStatus.PENDING and self.scheduled_date and self.scheduled_date < today:
            self.status = RequestStatus.EXPIRED
            return True
        return False

    def __repr__(self):
        return f"<VisitorRequest(id={self.id}, visitor_name={self.visitor_name}, status={self.status})>"


@event.listens_for(VisitorRequest, "before_insert")
@event.listens_for(VisitorRequest, "before_update")
def _expire_on_write(mapper, connection, target):
    # 저장될 때마다 만료 여부 재평가
    target.expire_if_overdue()
