"""
감사 로그 서비스
기록 실패는 로그만 남기고 호출한 작업에는 영향을 주지 않는다.
"""
import logging
from sqlalchemy.orm import Session
from typing import Any, List, Optional
from vms.models.audit_log import AuditLog, AuditAction
from vms.models.user import User

logger = logging.getLogger(__name__)


class AuditService:
    """감사 로그 서비스"""

    @staticmethod
    def record(
            db: Session,
            action: AuditAction,
            performed_by: User,
            target_user: Optional[User] = None,
            details: Optional[dict[str, Any]] = None,
            context: str = "",
            target_employee_id: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """감사 로그 기록 (best-effort)"""
        try:
            entry = AuditLog(
                action=action,
                performed_by_id=performed_by.id,
                performed_by_employee_id=performed_by.employee_id,
                target_user_id=target_user.id if target_user else None,
                target_user_employee_id=target_user.employee_id if target_user else target_employee_id,
                details=details or {},
                context=context or "",
            )
            db.add(entry)
            db.commit()
            return entry
        except Exception:
            db.rollback()
            logger.exception("Failed to record audit log %s", getattr(action, "value", action))
            return None

    @staticmethod
    def list_logs(
            db: Session,
            action: Optional[AuditAction] = None,
            performed_by: Optional[int] = None,
            target_user: Optional[int] = None,
            limit: int = 100,
    ) -> tuple[List[AuditLog], int]:
        """감사 로그 조회 (최신순)"""
        query = db.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        if performed_by:
            query = query.filter(AuditLog.performed_by_id == performed_by)
        if target_user:
            query = query.filter(AuditLog.target_user_id == target_user)

        total = query.count()
        logs = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
        return logs, total
