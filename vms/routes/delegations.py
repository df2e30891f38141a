"""
권한 위임 API 라우트
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Literal, Optional
from vms.database import get_db
from vms.dependencies import require_permission
from vms.models.audit_log import AuditAction
from vms.models.delegation import DelegationStatus
from vms.models.user import User
from vms.schemas.delegation import DelegationCreate, DelegationReview, DelegationResponse, DelegationListResponse
from vms.security.permissions import Action
from vms.services.audit_service import AuditService
from vms.services.delegation_service import DelegationService

router = APIRouter(
    prefix="/api/delegations",
    tags=["Delegations"]
)


@router.post("/request", response_model=DelegationResponse, status_code=status.HTTP_201_CREATED)
async def request_delegation(
        delegation_data: DelegationCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.REQUEST_DELEGATION))
):
    """권한 위임 요청"""
    delegation = DelegationService.request_delegation(db, current_user, delegation_data)
    AuditService.record(
        db, AuditAction.DELEGATION_REQUESTED, current_user,
        target_user=delegation.requested_to,
        details={"delegation_id": delegation.id, "reason": delegation.reason},
        context="delegation request",
    )
    return delegation


@router.get("", response_model=DelegationListResponse)
async def list_delegations(
        db: Session = Depends(get_db),
        list_type: Optional[Literal["sent", "received"]] = Query(None, alias="type"),
        delegation_status: Optional[DelegationStatus] = Query(None, alias="status"),
        current_user: User = Depends(require_permission(Action.LIST_DELEGATIONS))
):
    """
    위임 목록 조회
    - 관리자는 전체, 그 외는 본인이 요청한 위임 (type=received 이면 받은 위임)
    """
    delegations = DelegationService.list_delegations(
        db, current_user, received=list_type == "received", status=delegation_status
    )
    return {
        "total": len(delegations),
        "items": delegations
    }


@router.get("/active", response_model=list[DelegationResponse])
async def get_active_delegations(
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.VIEW_ACTIVE_DELEGATIONS))
):
    """본인이 위임받아 활성화된 위임"""
    return DelegationService.active_for(db, current_user)


@router.patch("/{delegation_id}/review", response_model=DelegationResponse)
async def review_delegation(
        delegation_id: int,
        review: DelegationReview,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.REVIEW_DELEGATION))
):
    """위임 승인/거절 (관리자)"""
    delegation = DelegationService.review_delegation(db, current_user, delegation_id, review)
    approved = delegation.status == DelegationStatus.APPROVED
    AuditService.record(
        db,
        AuditAction.DELEGATION_APPROVED if approved else AuditAction.DELEGATION_REJECTED,
        current_user,
        target_user=delegation.requested_by,
        details={"delegation_id": delegation.id, "rejection_reason": delegation.rejection_reason},
        context="delegation review",
    )
    return delegation


@router.patch("/{delegation_id}/activate", response_model=DelegationResponse)
async def activate_delegation(
        delegation_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.ACTIVATE_DELEGATION))
):
    """승인된 위임 활성화"""
    delegation = DelegationService.activate_delegation(db, current_user, delegation_id)
    AuditService.record(
        db, AuditAction.DELEGATION_ACTIVATED, current_user,
        target_user=delegation.requested_to,
        details={"delegation_id": delegation.id},
        context="delegation activation",
    )
    return delegation


@router.patch("/{delegation_id}/cancel", response_model=DelegationResponse)
async def cancel_delegation(
        delegation_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.CANCEL_DELEGATION))
):
    """위임 취소 (요청자 또는 관리자)"""
    delegation = DelegationService.cancel_delegation(db, current_user, delegation_id)
    AuditService.record(
        db, AuditAction.DELEGATION_CANCELLED, current_user,
        target_user=delegation.requested_to,
        details={"delegation_id": delegation.id},
        context="delegation cancellation",
    )
    return delegation
