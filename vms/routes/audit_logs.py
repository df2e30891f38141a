"""
감사 로그 조회 API 라우트 (관리자)
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from vms.database import get_db
from vms.dependencies import require_permission
from vms.models.audit_log import AuditAction
from vms.models.user import User
from vms.schemas.audit_log import AuditLogListResponse
from vms.security.permissions import Action
from vms.services.audit_service import AuditService

router = APIRouter(
    prefix="/api/audit-logs",
    tags=["Audit Logs"]
)


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
        db: Session = Depends(get_db),
        action: Optional[AuditAction] = Query(None),
        performed_by: Optional[int] = Query(None),
        target_user: Optional[int] = Query(None),
        limit: int = Query(100, ge=1, le=1000),
        current_user: User = Depends(require_permission(Action.VIEW_AUDIT_LOGS))
):
    """감사 로그 조회 (최신순)"""
    logs, total = AuditService.list_logs(db, action, performed_by, target_user, limit)
    return {
        "total": total,
        "items": logs
    }
