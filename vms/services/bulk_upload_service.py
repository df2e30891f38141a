"""
PDF 일괄 등록 서비스
업로드 → 텍스트 추출/행 해석 → 선택한 행을 방문 신청으로 등록
"""
import logging
from datetime import datetime
from pathlib import Path
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional
from vms.config import settings
from vms.models.bulk_upload import (
    BulkUpload, BulkUploadRow, BulkUploadPermission, BulkUploadStatus, RowStatus
)
from vms.models.user import User, UserRole, DepartmentType
from vms.schemas.bulk_upload import UploadPermissionUpdate, WEEKDAYS
from vms.schemas.visitor_request import VisitorRequestCreate
from vms.services import pdf_parser
from vms.services.visitor_request_service import VisitorRequestService
from vms.utils.exceptions import (
    AppException, BadRequestException, ForbiddenException, NotFoundException, validation_message
)
from vms.utils.uploads import PDF_CONTENT_TYPE, save_bulk_pdf

logger = logging.getLogger(__name__)

MB = 1024 * 1024


def _in_window(window: dict, now: datetime) -> bool:
    """현재 요일/시각이 허용 시간대 안인지"""
    days = [d.lower() for d in window.get("days_of_week") or WEEKDAYS]
    if WEEKDAYS[now.weekday()] not in days:
        return False
    current = now.strftime("%H:%M")
    return _hhmm(window["start_time"]) <= current <= _hhmm(window["end_time"])


def _hhmm(value: str) -> str:
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


class BulkUploadService:
    """PDF 일괄 등록 서비스"""

    @staticmethod
    def get_permission(db: Session, department_type: DepartmentType) -> Optional[BulkUploadPermission]:
        return db.query(BulkUploadPermission).filter(
            BulkUploadPermission.department_type == department_type,
            BulkUploadPermission.is_active.is_(True),
        ).first()

    @staticmethod
    def check_upload_allowed(db: Session, user: User, now: Optional[datetime] = None) -> int:
        """
        업로드 가능 여부 확인 후 최대 파일 크기(바이트) 반환
        - 부서 유형에 활성 권한이 없으면 허용
        - 있으면 can_upload와 허용 시간대를 확인
        """
        permission = BulkUploadService.get_permission(db, user.department_type)
        if permission is None:
            return settings.max_upload_size_mb * MB

        if not permission.can_upload:
            raise ForbiddenException(detail="Bulk upload is not allowed for your department type")

        windows = permission.allowed_time_windows or []
        if windows:
            now = now or datetime.now()
            if not any(_in_window(window, now) for window in windows):
                raise ForbiddenException(detail="Bulk upload is not allowed at this time")

        return (permission.max_file_size or settings.max_upload_size_mb) * MB

    @staticmethod
    def upload(
            db: Session,
            user: User,
            file_name: str,
            content_type: Optional[str],
            contents: bytes,
            now: Optional[datetime] = None,
    ) -> BulkUpload:
        """PDF 업로드 저장"""
        if content_type != PDF_CONTENT_TYPE:
            raise BadRequestException(detail="Only PDF files are allowed")

        max_bytes = BulkUploadService.check_upload_allowed(db, user, now)
        if len(contents) > max_bytes:
            raise BadRequestException(detail=f"File size exceeds the limit of {max_bytes // MB}MB")

        path = save_bulk_pdf(contents, file_name)
        bulk_upload = BulkUpload(
            file_name=file_name or path.name,
            file_path=str(path),
            file_size=len(contents),
            uploaded_by_id=user.id,
            location=user.location,
            status=BulkUploadStatus.UPLOADED,
        )
        db.add(bulk_upload)
        db.commit()
        db.refresh(bulk_upload)
        logger.info("Bulk upload %s stored by %s (%s bytes)", bulk_upload.id, user.username, len(contents))
        return bulk_upload

    @staticmethod
    def get_upload(db: Session, user: User, upload_id: int) -> BulkUpload:
        """업로드 조회 - 본인 또는 관리자"""
        bulk_upload = db.query(BulkUpload).filter(BulkUpload.id == upload_id).first()
        if not bulk_upload:
            raise NotFoundException(detail="Bulk upload not found")
        if user.role != UserRole.ADMIN and bulk_upload.uploaded_by_id != user.id:
            raise ForbiddenException(detail="Not authorized to access this upload")
        return bulk_upload

    @staticmethod
    def list_uploads(db: Session, user: User) -> List[BulkUpload]:
        query = db.query(BulkUpload)
        if user.role != UserRole.ADMIN:
            query = query.filter(BulkUpload.uploaded_by_id == user.id)
        return query.order_by(BulkUpload.created_at.desc(), BulkUpload.id.desc()).all()

    @staticmethod
    def process(db: Session, user: User, upload_id: int, parser: Optional[pdf_parser.VisitorRowParser] = None) -> BulkUpload:
        """PDF 텍스트를 추출해 방문자 행으로 저장"""
        bulk_upload = BulkUploadService.get_upload(db, user, upload_id)
        if bulk_upload.status != BulkUploadStatus.UPLOADED:
            raise BadRequestException(detail="PDF has already been processed")

        bulk_upload.status = BulkUploadStatus.PROCESSING
        bulk_upload.processing_started_at = datetime.utcnow()
        db.commit()

        parser = parser or pdf_parser.get_row_parser()
        try:
            text = pdf_parser.extract_pdf_text(Path(bulk_upload.file_path))
            parsed = parser.parse(text, department=bulk_upload.uploaded_by.department)
        except Exception as exc:
            logger.exception("Failed to process bulk upload %s", bulk_upload.id)
            bulk_upload.status = BulkUploadStatus.FAILED
            bulk_upload.processing_completed_at = datetime.utcnow()
            db.commit()
            raise AppException(f"Failed to process PDF: {exc}", status_code=500)

        for row in parsed:
            bulk_upload.rows.append(BulkUploadRow(
                row_number=row.row_number,
                visitor_name=row.visitor_name,
                visitor_id=row.visitor_id,
                national_id=row.national_id,
                visitor_phone=row.visitor_phone,
                purpose=row.purpose,
                department=row.department,
                scheduled_date=row.scheduled_date,
                scheduled_time=row.scheduled_time,
                company_name=row.company_name,
                group_size=row.group_size,
                origin_department=row.origin_department,
                status=RowStatus.PENDING,
            ))
        bulk_upload.total_visitors = len(parsed)
        bulk_upload.status = BulkUploadStatus.COMPLETED
        bulk_upload.processing_completed_at = datetime.utcnow()
        db.commit()
        db.refresh(bulk_upload)
        logger.info("Bulk upload %s processed: %s rows", bulk_upload.id, len(parsed))
        return bulk_upload

    @staticmethod
    def _row_to_request(user: User, row: BulkUploadRow) -> VisitorRequestCreate:
        """추출된 행을 일반 신청과 같은 규칙으로 검증"""
        return VisitorRequestCreate(
            visitor_name=row.visitor_name or "",
            visitor_id=row.visitor_id or "",
            national_id=row.national_id or "",
            visitor_phone=row.visitor_phone or "",
            purpose=row.purpose or pdf_parser.DEFAULT_PURPOSE,
            is_group_visit=row.group_size > 1,
            company_name=row.company_name or None,
            group_size=row.group_size,
            origin_department=row.origin_department,
            visit_duration_hours=1,
            scheduled_date=row.scheduled_date,
            scheduled_time=row.scheduled_time or pdf_parser.DEFAULT_SCHEDULED_TIME,
            department_type=user.department_type,
            location=user.location,
        )

    @staticmethod
    def import_rows(db: Session, user: User, upload_id: int, selected_rows: Optional[List[int]] = None) -> dict:
        """
        선택한 행을 방문 신청으로 등록
        - 행마다 독립적으로 검증/저장하고 결과를 행에 기록
        - 이미 등록된 행은 건너뜀
        """
        bulk_upload = BulkUploadService.get_upload(db, user, upload_id)
        if bulk_upload.status != BulkUploadStatus.COMPLETED:
            raise BadRequestException(detail="PDF must be processed before importing")

        # 관리자가 대신 등록해도 신청자는 업로드한 사용자
        submitter = bulk_upload.uploaded_by
        rows_by_number = {row.row_number: row for row in bulk_upload.rows}
        wanted = selected_rows if selected_rows is not None else list(rows_by_number)

        imported, failed = [], []
        for row_number in wanted:
            row = rows_by_number.get(row_number)
            if row is None or row.status == RowStatus.IMPORTED:
                continue

            try:
                request_data = BulkUploadService._row_to_request(submitter, row)
            except ValidationError as exc:
                error = validation_message(exc.errors())
                row.status = RowStatus.FAILED
                row.error_message = error[:500]
                db.commit()
                failed.append({"row_number": row_number, "visitor_name": row.visitor_name, "error": error})
                continue

            visitor_request = VisitorRequestService.build_request(submitter, request_data)
            try:
                db.add(visitor_request)
                db.flush()
                row.status = RowStatus.IMPORTED
                row.error_message = None
                row.imported_at = datetime.utcnow()
                row.imported_request_id = visitor_request.id
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.warning("Bulk upload %s row %s could not be saved: %s", bulk_upload.id, row_number, exc)
                error = str(getattr(exc, "orig", None) or exc)
                row.status = RowStatus.FAILED
                row.error_message = error[:500]
                db.commit()
                failed.append({"row_number": row_number, "visitor_name": row.visitor_name, "error": error})
                continue
            imported.append({
                "row_number": row_number,
                "visitor_name": row.visitor_name,
                "request_id": visitor_request.id,
            })

        bulk_upload.successful_imports = len(imported)
        bulk_upload.failed_imports = len(failed)
        db.commit()
        logger.info(
            "Bulk upload %s imported: %s succeeded, %s failed", bulk_upload.id, len(imported), len(failed)
        )
        return {
            "successful_imports": len(imported),
            "failed_imports": len(failed),
            "imported": imported,
            "failed": failed,
        }

    # ------------------------------------------------------------------
    # 권한 관리 (관리자)
    # ------------------------------------------------------------------
    @staticmethod
    def list_permissions(db: Session) -> List[BulkUploadPermission]:
        return db.query(BulkUploadPermission).order_by(BulkUploadPermission.department_type).all()

    @staticmethod
    def update_permission(
            db: Session,
            admin: User,
            department_type: DepartmentType,
            data: UploadPermissionUpdate,
    ) -> BulkUploadPermission:
        """부서 유형별 업로드 권한 수정 (없으면 생성)"""
        permission = db.query(BulkUploadPermission).filter(
            BulkUploadPermission.department_type == department_type
        ).first()
        if permission is None:
            permission = BulkUploadPermission(
                department_type=department_type,
                created_by_id=admin.id,
                can_upload=False,
                allowed_time_windows=[],
                max_file_size=settings.max_upload_size_mb,
            )
            db.add(permission)

        update_data = data.model_dump(exclude_unset=True, exclude_none=True, mode="json")
        for field, value in update_data.items():
            setattr(permission, field, value)

        db.commit()
        db.refresh(permission)
        logger.info("Upload permission for %s updated by %s", department_type.value, admin.username)
        return permission
