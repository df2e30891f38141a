"""
PDF 일괄 등록 관련 Pydantic 스키마
"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional
from vms.models.user import DepartmentType, Location
from vms.models.bulk_upload import BulkUploadStatus, RowStatus
from vms.schemas.user import UserSummary
from vms.schemas.visitor_request import TIME_PATTERN

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class BulkUploadRowResponse(BaseModel):
    """추출된 행"""
    row_number: int
    visitor_name: Optional[str]
    visitor_id: Optional[str]
    national_id: Optional[str]
    visitor_phone: Optional[str]
    visitor_email: Optional[str]
    purpose: Optional[str]
    department: Optional[str]
    scheduled_date: Optional[str]
    scheduled_time: Optional[str]
    company_name: Optional[str]
    group_size: int
    origin_department: Optional[str]
    status: RowStatus
    error_message: Optional[str]
    imported_at: Optional[datetime]
    imported_request_id: Optional[int]

    class Config:
        from_attributes = True


class BulkUploadResponse(BaseModel):
    """업로드 작업 응답"""
    id: int
    file_name: str
    file_size: int
    uploaded_by_id: int
    uploaded_by: Optional[UserSummary] = None
    location: Location
    status: BulkUploadStatus
    total_visitors: int
    successful_imports: int
    failed_imports: int
    processing_started_at: Optional[datetime]
    processing_completed_at: Optional[datetime]
    rows: list[BulkUploadRowResponse] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True


class BulkUploadListResponse(BaseModel):
    """업로드 목록 응답"""
    total: int
    items: list[BulkUploadResponse]


class ImportRequest(BaseModel):
    """등록할 행 번호 (생략 시 전체)"""
    selected_rows: Optional[list[int]] = None


class ImportedRow(BaseModel):
    row_number: int
    visitor_name: Optional[str]
    request_id: int


class FailedRow(BaseModel):
    row_number: int
    visitor_name: Optional[str]
    error: str


class ImportResult(BaseModel):
    """행별 등록 결과"""
    successful_imports: int
    failed_imports: int
    imported: list[ImportedRow]
    failed: list[FailedRow]


class TimeWindow(BaseModel):
    """업로드 허용 시간대"""
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    days_of_week: list[str] = Field(default_factory=lambda: list(WEEKDAYS[:5]))

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: list[str]) -> list[str]:
        days = [d.lower() for d in v]
        for d in days:
            if d not in WEEKDAYS:
                raise ValueError(f"Invalid day of week: {d}")
        return days


class UploadPermissionUpdate(BaseModel):
    """업로드 권한 수정 (관리자)"""
    can_upload: Optional[bool] = None
    is_active: Optional[bool] = None
    allowed_time_windows: Optional[list[TimeWindow]] = None
    max_file_size: Optional[int] = Field(None, ge=1, le=100)


class UploadPermissionResponse(BaseModel):
    """업로드 권한 응답"""
    id: int
    department_type: DepartmentType
    can_upload: bool
    allowed_time_windows: list[TimeWindow]
    max_file_size: int
    allowed_file_types: list[str]
    created_by_id: int
    is_active: bool
    updated_at: datetime

    class Config:
        from_attributes = True
