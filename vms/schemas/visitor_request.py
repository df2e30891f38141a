"""
방문 신청 관련 Pydantic 스키마 (API 요청/응답)
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from typing import Optional, Literal
import re
from vms.models.user import DepartmentType, Location
from vms.models.visitor_request import RequestStatus, GateAssignment, AccessType, Priority
from vms.schemas.user import UserSummary


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = r"^[+]?[1-9][\d]{0,15}$"
TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


class VisitorRequestBase(BaseModel):
    """방문자 및 일정 공통 필드"""
    visitor_name: str = Field(..., min_length=1, max_length=100)
    visitor_id: str = Field(..., min_length=1, max_length=50)
    national_id: str = Field(..., min_length=1, max_length=50)
    visitor_phone: str = Field(..., pattern=PHONE_PATTERN)
    visitor_email: Optional[str] = None
    purpose: str = Field(..., min_length=1, max_length=500)
    items_brought: list[str] = Field(default_factory=list)
    is_group_visit: bool = False
    company_name: Optional[str] = Field(None, max_length=100)
    group_size: Optional[int] = Field(None, ge=1, le=100)
    origin_department: Optional[str] = Field(None, max_length=100)
    visit_duration_hours: int = Field(0, ge=0, le=23)
    visit_duration_days: int = Field(0, ge=0, le=30)
    scheduled_date: date
    scheduled_time: str = Field(..., pattern=TIME_PATTERN)
    priority: Priority = Priority.MEDIUM

    @field_validator("visitor_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        v = v.strip().lower()
        if not _EMAIL_RE.match(v):
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("items_brought")
    @classmethod
    def validate_items(cls, v: list[str]) -> list[str]:
        items = [item.strip() for item in v if item and item.strip()]
        if any(len(item) > 100 for item in items):
            raise ValueError("Item description cannot exceed 100 characters")
        return items


class VisitorRequestCreate(VisitorRequestBase):
    """방문 신청 생성 요청"""
    department_type: DepartmentType
    gate_assignment: Optional[GateAssignment] = None
    access_type: Optional[AccessType] = None
    location: Optional[Location] = None

    @field_validator("scheduled_date")
    @classmethod
    def not_in_past(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("Scheduled date cannot be in the past")
        return v

    @model_validator(mode="after")
    def conditional_fields(self):
        if self.department_type == DepartmentType.WING:
            if self.gate_assignment is None:
                raise ValueError("Gate assignment is required for wing departments")
            if self.access_type is None:
                raise ValueError("Access type is required for wing departments")
        if self.is_group_visit and (not self.company_name or not self.group_size):
            raise ValueError("Company name and group size are required for group visits")
        return self


class VisitorRequestUpdate(BaseModel):
    """방문 신청 수정 (관리자) - 신청자/부서/상태는 변경 불가, 상태는 심사로만 바뀜"""
    visitor_name: Optional[str] = Field(None, min_length=1, max_length=100)
    visitor_id: Optional[str] = Field(None, max_length=50)
    national_id: Optional[str] = Field(None, max_length=50)
    visitor_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    visitor_email: Optional[str] = None
    purpose: Optional[str] = Field(None, max_length=500)
    items_brought: Optional[list[str]] = None
    department_type: Optional[DepartmentType] = None
    gate_assignment: Optional[GateAssignment] = None
    access_type: Optional[AccessType] = None
    location: Optional[Location] = None
    is_group_visit: Optional[bool] = None
    company_name: Optional[str] = Field(None, max_length=100)
    group_size: Optional[int] = Field(None, ge=1, le=100)
    origin_department: Optional[str] = Field(None, max_length=100)
    visit_duration_hours: Optional[int] = Field(None, ge=0, le=23)
    visit_duration_days: Optional[int] = Field(None, ge=0, le=30)
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    priority: Optional[Priority] = None


class ReviewDecision(BaseModel):
    """보안 심사 요청"""
    status: str
    review_comments: Optional[str] = Field(None, max_length=500)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in (RequestStatus.APPROVED.value, RequestStatus.DECLINED.value):
            raise ValueError("Invalid status. Must be approved or declined.")
        return v


class CheckInRequest(BaseModel):
    """입장 처리 요청"""
    actual_items_brought: list[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=500)


class CheckOutRequest(BaseModel):
    """퇴장 처리 요청"""
    notes: Optional[str] = Field(None, max_length=500)


class ReuseRequest(BaseModel):
    """이전 신청 재사용 요청"""
    scheduled_date: Optional[date] = None
    scheduled_time: str = Field("09:00", pattern=TIME_PATTERN)
    purpose: Optional[str] = Field(None, max_length=500)
    items_brought: Optional[str] = None  # 쉼표로 구분


class VisitorRequestResponse(BaseModel):
    """방문 신청 응답"""
    id: int
    visitor_name: str
    visitor_id: str
    national_id: str
    visitor_phone: str
    visitor_email: Optional[str]
    photo: Optional[str]
    purpose: str
    items_brought: list[str]
    department: str
    department_type: DepartmentType
    gate_assignment: Optional[GateAssignment]
    access_type: Optional[AccessType]
    location: Location
    is_group_visit: bool
    company_name: Optional[str]
    group_size: Optional[int]
    origin_department: Optional[str]
    requested_by_id: int
    requested_by: Optional[UserSummary] = None
    visit_duration_hours: int
    visit_duration_days: int
    scheduled_date: date
    scheduled_time: str
    status: RequestStatus
    reviewed_by_id: Optional[int]
    reviewed_by: Optional[UserSummary] = None
    reviewed_at: Optional[datetime]
    review_comments: Optional[str]
    approval_code: Optional[str]
    priority: Priority
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VisitorRequestListResponse(BaseModel):
    """방문 신청 목록 응답"""
    total: int
    page: int
    total_pages: int
    items: list[VisitorRequestResponse]


class CheckInOutResponse(BaseModel):
    """입퇴장 기록 응답"""
    id: int
    visitor_request_id: int
    visitor_request: Optional[VisitorRequestResponse] = None
    check_in_time: datetime
    check_in_by_id: int
    check_in_by: Optional[UserSummary] = None
    check_out_time: Optional[datetime]
    check_out_by_id: Optional[int]
    check_out_by: Optional[UserSummary] = None
    actual_items_brought: list[str]
    check_in_notes: Optional[str]
    check_out_notes: Optional[str]
    duration: Optional[int]

    class Config:
        from_attributes = True


class StatusTotals(BaseModel):
    """상태별 집계"""
    total_requests: int = 0
    approved_requests: int = 0
    declined_requests: int = 0
    pending_requests: int = 0
    checked_in_requests: int = 0
    checked_out_requests: int = 0


class DepartmentStats(BaseModel):
    """부서별 집계"""
    department: str
    count: int
    approved: int
    declined: int
    pending: int
    checked_in: int
    checked_out: int


class AnalyticsResponse(BaseModel):
    """통계 응답"""
    analytics: StatusTotals
    department_stats: list[DepartmentStats]


VisitType = Literal["group", "individual"]
