"""
PDF 일괄 등록 API 라우트
"""
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional
from vms.database import get_db
from vms.dependencies import require_permission
from vms.models.audit_log import AuditAction
from vms.models.user import User, DepartmentType
from vms.schemas.bulk_upload import (
    BulkUploadResponse,
    BulkUploadListResponse,
    ImportRequest,
    ImportResult,
    UploadPermissionUpdate,
    UploadPermissionResponse,
)
from vms.security.permissions import Action
from vms.services.audit_service import AuditService
from vms.services.bulk_upload_service import BulkUploadService

router = APIRouter(
    prefix="/api/bulk-upload",
    tags=["Bulk Upload"]
)


@router.post("/upload", response_model=BulkUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_pdf(
        pdf: UploadFile = File(...),
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.BULK_UPLOAD))
):
    """방문자 명단 PDF 업로드"""
    contents = await pdf.read()
    return BulkUploadService.upload(db, current_user, pdf.filename, pdf.content_type, contents)


@router.post("/process/{upload_id}", response_model=BulkUploadResponse)
async def process_pdf(
        upload_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.PROCESS_BULK_UPLOAD))
):
    """PDF에서 방문자 행 추출"""
    return BulkUploadService.process(db, current_user, upload_id)


@router.post("/import/{upload_id}", response_model=ImportResult)
async def import_visitors(
        upload_id: int,
        import_data: Optional[ImportRequest] = None,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.PROCESS_BULK_UPLOAD))
):
    """추출된 행을 방문 신청으로 등록"""
    selected_rows = import_data.selected_rows if import_data else None
    result = BulkUploadService.import_rows(db, current_user, upload_id, selected_rows)
    AuditService.record(
        db, AuditAction.BULK_IMPORTED, current_user,
        details={
            "bulk_upload_id": upload_id,
            "successful_imports": result["successful_imports"],
            "failed_imports": result["failed_imports"],
        },
        context="bulk import",
    )
    return result


@router.get("/uploads", response_model=BulkUploadListResponse)
async def list_uploads(
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.PROCESS_BULK_UPLOAD))
):
    """업로드 목록 (관리자는 전체)"""
    uploads = BulkUploadService.list_uploads(db, current_user)
    return {
        "total": len(uploads),
        "items": uploads
    }


@router.get("/uploads/{upload_id}", response_model=BulkUploadResponse)
async def get_upload(
        upload_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.PROCESS_BULK_UPLOAD))
):
    """업로드 상세 (추출된 행 포함)"""
    return BulkUploadService.get_upload(db, current_user, upload_id)


@router.get("/permissions", response_model=list[UploadPermissionResponse])
async def list_permissions(
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_UPLOAD_PERMISSIONS))
):
    """부서 유형별 업로드 권한 목록 (관리자)"""
    return BulkUploadService.list_permissions(db)


@router.patch("/permissions/{department_type}", response_model=UploadPermissionResponse)
async def update_permission(
        department_type: DepartmentType,
        permission_data: UploadPermissionUpdate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission(Action.MANAGE_UPLOAD_PERMISSIONS))
):
    """부서 유형별 업로드 권한 수정 (관리자)"""
    return BulkUploadService.update_permission(db, current_user, department_type, permission_data)
