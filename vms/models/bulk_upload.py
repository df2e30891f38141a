"""
PDF 일괄 등록 모델 (데이터베이스 테이블)
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from vms.database import Base
from vms.models.user import DepartmentType, Location


class BulkUploadStatus(str, enum.Enum):
    """업로드 처리 상태"""
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RowStatus(str, enum.Enum):
    """추출된 행의 등록 상태"""
    PENDING = "pending"
    IMPORTED = "imported"
    FAILED = "failed"


class BulkUpload(Base):
    """PDF 업로드 작업 테이블"""
    __tablename__ = "bulk_uploads"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False)  # 바이트
    uploaded_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    location = Column(SQLEnum(Location), nullable=False)
    status = Column(SQLEnum(BulkUploadStatus), default=BulkUploadStatus.UPLOADED, nullable=False, index=True)
    total_visitors = Column(Integer, default=0, nullable=False)
    successful_imports = Column(Integer, default=0, nullable=False)
    failed_imports = Column(Integer, default=0, nullable=False)
    processing_started_at = Column(DateTime, nullable=True)
    processing_completed_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # 관계
    uploaded_by = relationship("User")
    rows = relationship(
        "BulkUploadRow",
        back_populates="bulk_upload",
        cascade="all, delete-orphan",
        order_by="BulkUploadRow.row_number",
    )

    def __repr__(self):
        return f"<BulkUpload(id={self.id}, file_name={self.file_name}, status={self.status})>"


class BulkUploadRow(Base):
    """PDF에서 추출된 방문자 행"""
    __tablename__ = "bulk_upload_rows"

    id = Column(Integer, primary_key=True, index=True)
    bulk_upload_id = Column(Integer, ForeignKey("bulk_uploads.id", ondelete="CASCADE"), nullable=False, index=True)
    row_number = Column(Integer, nullable=False)
    visitor_name = Column(String(100), nullable=True)
    visitor_id = Column(String(50), nullable=True)
    national_id = Column(String(50), nullable=True)
    visitor_phone = Column(String(20), nullable=True)
    visitor_email = Column(String(100), nullable=True)
    purpose = Column(String(500), nullable=True)
    department = Column(String(100), nullable=True)
    scheduled_date = Column(String(10), nullable=True)
    scheduled_time = Column(String(5), nullable=True)
    company_name = Column(String(100), nullable=True)
    group_size = Column(Integer, default=1, nullable=False)
    origin_department = Column(String(100), nullable=True)
    status = Column(SQLEnum(RowStatus), default=RowStatus.PENDING, nullable=False)
    error_message = Column(String(500), nullable=True)
    imported_at = Column(DateTime, nullable=True)
    imported_request_id = Column(Integer, ForeignKey("visitor_requests.id", ondelete="SET NULL"), nullable=True)

    bulk_upload = relationship("BulkUpload", back_populates="rows")


class BulkUploadPermission(Base):
    """부서 유형별 일괄 등록 권한"""
    __tablename__ = "bulk_upload_permissions"

    id = Column(Integer, primary_key=True, index=True)
    department_type = Column(SQLEnum(DepartmentType), unique=True, nullable=False, index=True)
    can_upload = Column(Boolean, default=False, nullable=False)
    # [{"start_time": "08:00", "end_time": "17:00", "days_of_week": ["monday", ...]}]
    allowed_time_windows = Column(JSON, default=list, nullable=False)
    max_file_size = Column(Integer, default=10, nullable=False)  # MB
    allowed_file_types = Column(JSON, default=lambda: ["application/pdf"], nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<BulkUploadPermission(department_type={self.department_type}, can_upload={self.can_upload})>"
