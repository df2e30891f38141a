"""
권한 위임 관련 Pydantic 스키마 (API 요청/응답)
"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from typing import Optional
from vms.models.delegation import DelegationStatus
from vms.models.visitor_request import GateAssignment, AccessType
from vms.schemas.user import UserSummary


class DelegationPermissions(BaseModel):
    """위임되는 권한 묶음"""
    can_create_requests: bool = True
    can_approve_requests: bool = False
    can_bulk_upload: bool = False
    gate_access: list[GateAssignment] = Field(default_factory=list)
    access_type: list[AccessType] = Field(default_factory=lambda: [AccessType.GUEST])


class DelegationCreate(BaseModel):
    """위임 요청"""
    requested_to: int
    reason: str = Field(..., min_length=1, max_length=500)
    start_date: datetime
    end_date: datetime
    permissions: DelegationPermissions = Field(default_factory=DelegationPermissions)

    @field_validator("start_date", "end_date")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        # DB에는 타임존 없는 UTC로 저장
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class DelegationReview(BaseModel):
    """위임 승인/거절 (관리자)"""
    status: str
    rejection_reason: Optional[str] = Field(None, max_length=500)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in (DelegationStatus.APPROVED.value, DelegationStatus.REJECTED.value):
            raise ValueError("Invalid status")
        return v


class DelegationResponse(BaseModel):
    """위임 응답"""
    id: int
    requested_by_id: int
    requested_by: Optional[UserSummary] = None
    requested_to_id: int
    requested_to: Optional[UserSummary] = None
    reason: str
    start_date: datetime
    end_date: datetime
    status: DelegationStatus
    approved_by_id: Optional[int]
    approved_by: Optional[UserSummary] = None
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    permissions: DelegationPermissions
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DelegationListResponse(BaseModel):
    """위임 목록 응답"""
    total: int
    items: list[DelegationResponse]
