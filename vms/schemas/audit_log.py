"""
감사 로그 관련 Pydantic 스키마
"""
from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Any
from vms.models.audit_log import AuditAction
from vms.schemas.user import UserSummary


class AuditLogResponse(BaseModel):
    """감사 로그 응답"""
    id: int
    action: AuditAction
    performed_by_id: Optional[int]
    performed_by: Optional[UserSummary] = None
    performed_by_employee_id: str
    target_user_id: Optional[int]
    target_user: Optional[UserSummary] = None
    target_user_employee_id: Optional[str]
    details: dict[str, Any]
    context: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    """감사 로그 목록 응답"""
    total: int
    items: list[AuditLogResponse]
