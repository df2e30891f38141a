"""
입퇴장 기록 모델 (데이터베이스 테이블)
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime, timedelta
from vms.database import Base


class CheckInOut(Base):
    """입퇴장 기록 테이블 - 방문 1회당 1건"""
    __tablename__ = "check_in_outs"

    id = Column(Integer, primary_key=True, index=True)
    visitor_request_id = Column(
        Integer, ForeignKey("visitor_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    check_in_time = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    check_in_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    check_out_time = Column(DateTime, nullable=True, index=True)
    check_out_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    actual_items_brought = Column(JSON, default=list, nullable=False)
    check_in_notes = Column(String(500), nullable=True)
    check_out_notes = Column(String(500), nullable=True)
    duration = Column(Integer, nullable=True)  # 분 단위
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # 관계
    visitor_request = relationship("VisitorRequest", back_populates="check_ins")
    check_in_by = relationship("User", foreign_keys=[check_in_by_id])
    check_out_by = relationship("User", foreign_keys=[check_out_by_id])

    __table_args__ = (
        # 퇴장 처리되지 않은 기록은 신청당 최대 1건
        Index(
            "uq_check_in_outs_open_request",
            "visitor_request_id",
            unique=True,
            sqlite_where=text("check_out_time IS NULL"),
            postgresql_where=text("check_out_time IS NULL"),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    def close(self, user_id: int, when: datetime, notes=None) -> None:
        """퇴장 처리 및 체류 시간(분) 계산"""
        if when <= self.check_in_time:
            # 퇴장 시각은 항상 입장 시각 이후
            when = self.check_in_time + timedelta(microseconds=1)
        self.check_out_time = when
        self.check_out_by_id = user_id
        self.check_out_notes = notes
        self.duration = max(0, int((when - self.check_in_time).total_seconds() // 60))

    def __repr__(self):
        return f"<CheckInOut(id={self.id}, visitor_request_id={self.visitor_request_id}, open={self.is_open})>"
