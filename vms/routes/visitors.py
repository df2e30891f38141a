"""
방문 신청 API 라우트
"""
from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from vms.database import get_db
from vms.dependencies import require_permission
from vms.models.audit_log import AuditAction
from vms.models.user import User, Location
from vms.models.visitor_request import RequestStatus
from vms.schemas.user import MessageResponse
from vms.schemas.visitor_request import (
    VisitorRequestCreate,
    VisitorRequestUpdate,
    VisitorRequestResponse,
    VisitorRequestListResponse,
    ReviewDecision,
    CheckInRequest,
    CheckOutRequest,
    CheckInOutResponse,
    ReuseRequest,
    AnalyticsResponse,
    VisitType,
)
from vms.security.permissions import Action
from vms.services.audit_service import AuditService
from vms.services.notification_service import notify_request_reviewed
from vms.services.visitor_request_service import VisitorRequestService
from vms.utils.exceptions import UnsupportedMediaException
from vms.utils.uploads import ALLOWED_CONTENT_TYPES, save_visitor_photo

router = APIRouter(
    prefix="/api/visitors",
    tags=["Visitors"]
)


@router.post("/request", response_model=VisitorRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_visitor_request(
        request_data: VisitorRequestCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.SUBMIT_REQUEST))
):
    """방문 신청 등록 (부서 사용자)"""
    visitor_request = VisitorRequestService.create_request(db, current_user, request_data)
    AuditService.record(
        db, AuditAction.REQUEST_CREATED, current_user,
        details={"request_id": visitor_request.id, "visitor_name": visitor_request.visitor_name},
        context="visitor request submission",
    )
    return visitor_request


@router.get("/requests", response_model=VisitorRequestListResponse)
async def list_visitor_requests(
        db: Session = Depends(get_db),
        request_status: Optional[RequestStatus] = Query(None, alias="status"),
        department: Optional[str] = Query(None),
        on_date: Optional[date] = Query(None, alias="date"),
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        search: Optional[str] = Query(None),
        location: Optional[Location] = Query(None),
        visit_type: Optional[VisitType] = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        current_user: User = Depends(require_permission(Action.LIST_REQUESTS))
):
    """
    방문 신청 목록 조회
    - 역할별 조회 범위 안에서 필터를 적용합니다.
    """
    requests, total = VisitorRequestService.list_requests(
        db, current_user,
        status=request_status,
        department=department,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        search=search,
        location=location,
        visit_type=visit_type,
        page=page,
        limit=limit,
    )
    return {
        "total": total,
        "page": page,
        "total_pages": VisitorRequestService.total_pages(total, limit),
        "items": requests
    }


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
        db: Session = Depends(get_db),
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        department: Optional[str] = Query(None),
        location: Optional[Location] = Query(None),
        current_user: User = Depends(require_permission(Action.VIEW_ANALYTICS))
):
    """상태별/부서별 통계 (관리자)"""
    return VisitorRequestService.analytics(db, start_date, end_date, department, location)


@router.get("/history", response_model=list[VisitorRequestResponse])
async def get_visitor_history(
        db: Session = Depends(get_db),
        visitor_id: Optional[str] = Query(None),
        national_id: Optional[str] = Query(None),
        visitor_name: Optional[str] = Query(None),
        current_user: User = Depends(require_permission(Action.VIEW_HISTORY))
):
    """이전 방문 이력 검색"""
    return VisitorRequestService.visitor_history(db, current_user, visitor_id, national_id, visitor_name)


@router.get("/requests/{request_id}", response_model=VisitorRequestResponse)
async def get_visitor_request(
        request_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.VIEW_REQUEST))
):
    """방문 신청 상세 조회"""
    return VisitorRequestService.get_request_for_user(db, current_user, request_id)


@router.patch("/requests/{request_id}", response_model=VisitorRequestResponse)
async def update_visitor_request(
        request_id: int,
        request_data: VisitorRequestUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_REQUESTS))
):
    """방문 신청 수정 (관리자)"""
    return VisitorRequestService.update_request(db, request_id, request_data)


@router.delete("/requests/{request_id}", response_model=MessageResponse)
async def delete_visitor_request(
        request_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_REQUESTS))
):
    """방문 신청 삭제 (관리자)"""
    VisitorRequestService.delete_request(db, request_id)
    return {"message": "Visitor request deleted successfully"}


@router.post("/requests/{request_id}/photo", response_model=VisitorRequestResponse)
async def upload_visitor_photo(
        request_id: int,
        photo: UploadFile = File(...),
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.UPLOAD_PHOTO))
):
    """방문자 사진 업로드 (jpg, png, webp)"""
    if photo.content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaException(detail="Only jpg, png, or webp images are allowed")

    # 소유권 먼저 확인한 뒤 파일 저장
    VisitorRequestService.get_request_for_user(db, current_user, request_id)
    contents = await photo.read()
    photo_path = save_visitor_photo(contents, photo.content_type, request_id)
    return VisitorRequestService.set_photo(db, current_user, request_id, photo_path)


@router.patch("/requests/{request_id}/review", response_model=VisitorRequestResponse)
async def review_visitor_request(
        request_id: int,
        decision: ReviewDecision,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.REVIEW_REQUEST))
):
    """보안 심사 (승인/반려)"""
    visitor_request = VisitorRequestService.review_request(db, current_user, request_id, decision)

    approved = visitor_request.status == RequestStatus.APPROVED
    AuditService.record(
        db,
        AuditAction.REQUEST_APPROVED if approved else AuditAction.REQUEST_REJECTED,
        current_user,
        target_user=visitor_request.requested_by,
        details={"request_id": visitor_request.id, "approval_code": visitor_request.approval_code},
        context="security review",
    )

    # 커밋 이후 신청자에게 결과 메일 발송
    requester = visitor_request.requested_by
    if requester and requester.email:
        background_tasks.add_task(
            notify_request_reviewed,
            requester.email,
            requester.full_name,
            visitor_request.visitor_name,
            visitor_request.status.value,
            visitor_request.approval_code,
            visitor_request.review_comments,
        )
    return visitor_request


@router.post("/checkin/{request_id}", response_model=CheckInOutResponse, status_code=status.HTTP_201_CREATED)
async def check_in_visitor(
        request_id: int,
        check_in_data: Optional[CheckInRequest] = None,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.CHECK_IN))
):
    """방문자 입장 처리 (출입문 담당자)"""
    record = VisitorRequestService.check_in(db, current_user, request_id, check_in_data or CheckInRequest())
    AuditService.record(
        db, AuditAction.REQUEST_CHECKED_IN, current_user,
        details={"request_id": request_id, "check_in_id": record.id},
        context="gate check-in",
    )
    return record


@router.patch("/checkout/{request_id}", response_model=CheckInOutResponse)
async def check_out_visitor(
        request_id: int,
        check_out_data: Optional[CheckOutRequest] = None,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.CHECK_OUT))
):
    """방문자 퇴장 처리 (출입문 담당자)"""
    record = VisitorRequestService.check_out(db, current_user, request_id, check_out_data or CheckOutRequest())
    AuditService.record(
        db, AuditAction.REQUEST_CHECKED_OUT, current_user,
        details={"request_id": request_id, "check_in_id": record.id, "duration": record.duration},
        context="gate check-out",
    )
    return record


@router.post("/requests/{request_id}/reuse", response_model=VisitorRequestResponse, status_code=status.HTTP_201_CREATED)
async def reuse_visitor_request(
        request_id: int,
        reuse_data: ReuseRequest,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.REUSE_REQUEST))
):
    """이전 신청 정보로 새 방문 신청 생성"""
    new_request = VisitorRequestService.reuse_request(db, current_user, request_id, reuse_data)
    AuditService.record(
        db, AuditAction.REQUEST_CREATED, current_user,
        details={"request_id": new_request.id, "reused_from": request_id},
        context="visitor request reuse",
    )
    return new_request
