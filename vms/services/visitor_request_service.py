"""
방문 신청 서비스
신청 → 심사 → 입장 → 퇴장 흐름과 역할별 조회 범위를 담당한다.
"""
import logging
import math
import secrets
import string
from datetime import date, datetime, timedelta
from sqlalchemy import func, case, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError
from typing import List, Optional
from vms.models.check_in_out import CheckInOut
from vms.models.user import User, UserRole, Location
from vms.models.visitor_request import VisitorRequest, RequestStatus
from vms.schemas.visitor_request import (
    VisitorRequestCreate,
    VisitorRequestUpdate,
    ReviewDecision,
    CheckInRequest,
    CheckOutRequest,
    ReuseRequest,
)
from vms.utils.exceptions import (
    AppException, BadRequestException, ConflictException, ForbiddenException, NotFoundException
)

logger = logging.getLogger(__name__)

APPROVAL_CODE_PREFIX = "VIS"
_CODE_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_APPROVAL_CODE_ATTEMPTS = 20

# 역할별로 조회 가능한 상태 (없으면 제한 없음)
ROLE_VISIBLE_STATUSES = {
    UserRole.SECURITY: (RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.DECLINED),
    UserRole.GATE: (RequestStatus.APPROVED, RequestStatus.CHECKED_IN),
}

HISTORY_LIMIT = 20


def generate_approval_code() -> str:
    """VIS + 숫자 6자리 + 대문자/숫자 3자리"""
    digits = "".join(secrets.choice(string.digits) for _ in range(6))
    suffix = "".join(secrets.choice(_CODE_SUFFIX_ALPHABET) for _ in range(3))
    return f"{APPROVAL_CODE_PREFIX}{digits}{suffix}"


class VisitorRequestService:
    """방문 신청 서비스"""

    # ------------------------------------------------------------------
    # 생성
    # ------------------------------------------------------------------
    @staticmethod
    def build_request(user: User, request_data: VisitorRequestCreate) -> VisitorRequest:
        """신청자 프로필에서 부서/근무지를 채워 새 신청 객체 생성 (저장 전)"""
        data = request_data.model_dump(exclude={"location"})
        return VisitorRequest(
            **data,
            location=request_data.location or user.location,
            department=user.department,
            requested_by_id=user.id,
            status=RequestStatus.PENDING,
        )

    @staticmethod
    def create_request(db: Session, user: User, request_data: VisitorRequestCreate) -> VisitorRequest:
        """방문 신청 생성 (부서 사용자)"""
        if not user.department:
            raise BadRequestException(detail="Department is required to submit a request")
        visitor_request = VisitorRequestService.build_request(user, request_data)
        db.add(visitor_request)
        db.commit()
        db.refresh(visitor_request)
        logger.info("Visitor request %s created by %s", visitor_request.id, user.username)
        return visitor_request

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    @staticmethod
    def get_request_by_id(db: Session, request_id: int) -> VisitorRequest:
        """ID로 방문 신청 조회"""
        visitor_request = db.query(VisitorRequest).filter(VisitorRequest.id == request_id).first()
        if not visitor_request:
            raise NotFoundException(detail="Visitor request not found")
        return visitor_request

    @staticmethod
    def get_request_for_user(db: Session, user: User, request_id: int) -> VisitorRequest:
        """역할에 따라 단건 조회 - 부서 사용자는 본인 신청만"""
        visitor_request = VisitorRequestService.get_request_by_id(db, request_id)
        if user.role == UserRole.DEPARTMENT_USER and visitor_request.requested_by_id != user.id:
            raise ForbiddenException(detail="Not authorized to view this request")
        return visitor_request

    @staticmethod
    def scoped_query(db: Session, user: User):
        """역할별 조회 범위가 적용된 기본 쿼리"""
        query = db.query(VisitorRequest)
        if user.role == UserRole.DEPARTMENT_USER:
            query = query.filter(VisitorRequest.requested_by_id == user.id)
        visible = ROLE_VISIBLE_STATUSES.get(user.role)
        if visible is not None:
            query = query.filter(VisitorRequest.status.in_(visible))
        return query

    @staticmethod
    def list_requests(
            db: Session,
            user: User,
            status: Optional[RequestStatus] = None,
            department: Optional[str] = None,
            on_date: Optional[date] = None,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            search: Optional[str] = None,
            location: Optional[Location] = None,
            visit_type: Optional[str] = None,
            page: int = 1,
            limit: int = 10,
    ) -> tuple[List[VisitorRequest], int]:
        """
        방문 신청 목록 조회
        - 상태 필터는 역할 범위 안에서만 적용됩니다 (범위를 넓히지 않음).
        """
        query = VisitorRequestService.scoped_query(db, user)

        if status:
            query = query.filter(VisitorRequest.status == status)
        if department:
            query = query.filter(VisitorRequest.department.ilike(f"%{department}%"))
        if on_date:
            query = query.filter(VisitorRequest.scheduled_date == on_date)
        if start_date and end_date:
            query = query.filter(
                VisitorRequest.scheduled_date >= start_date,
                VisitorRequest.scheduled_date <= end_date,
            )
        if search:
            keyword = f"%{search}%"
            query = query.filter(or_(
                VisitorRequest.visitor_name.ilike(keyword),
                VisitorRequest.visitor_id.ilike(keyword),
                VisitorRequest.approval_code.ilike(keyword),
                VisitorRequest.company_name.ilike(keyword),
                VisitorRequest.origin_department.ilike(keyword),
            ))
        if location:
            query = query.filter(VisitorRequest.location == location)
        if visit_type == "group":
            query = query.filter(VisitorRequest.is_group_visit.is_(True))
        elif visit_type == "individual":
            query = query.filter(VisitorRequest.is_group_visit.is_(False))

        total = query.count()
        requests = (
            query.options(joinedload(VisitorRequest.requested_by), joinedload(VisitorRequest.reviewed_by))
            .order_by(VisitorRequest.created_at.desc(), VisitorRequest.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return requests, total

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    # ------------------------------------------------------------------
    # 심사
    # ------------------------------------------------------------------
    @staticmethod
    def _unique_approval_code(db: Session) -> str:
        for _ in range(_APPROVAL_CODE_ATTEMPTS):
            code = generate_approval_code()
            exists = db.query(VisitorRequest.id).filter(VisitorRequest.approval_code == code).first()
            if not exists:
                return code
        raise AppException("Could not allocate a unique approval code")

    @staticmethod
    def review_request(db: Session, reviewer: User, request_id: int, decision: ReviewDecision) -> VisitorRequest:
        """보안 심사 - 심사 대기 상태에서만 승인/반려"""
        visitor_request = VisitorRequestService.get_request_by_id(db, request_id)

        if visitor_request.status != RequestStatus.PENDING:
            raise BadRequestException(detail="Request has already been reviewed")

        new_status = RequestStatus(decision.status)
        # 승인 코드는 처음 승인될 때 한 번만 발급 (변경 전에 조회)
        approval_code = visitor_request.approval_code
        if new_status == RequestStatus.APPROVED and not approval_code:
            approval_code = VisitorRequestService._unique_approval_code(db)

        visitor_request.status = new_status
        visitor_request.reviewed_by_id = reviewer.id
        visitor_request.reviewed_at = datetime.utcnow()
        visitor_request.review_comments = decision.review_comments

        if new_status == RequestStatus.APPROVED:
            visitor_request.approval_code = approval_code

        try:
            db.commit()
        except (StaleDataError, IntegrityError):
            db.rollback()
            raise ConflictException(detail="Request was modified by another reviewer")

        db.refresh(visitor_request)
        logger.info(
            "Visitor request %s %s by %s", visitor_request.id, new_status.value, reviewer.username
        )
        return visitor_request

    # ------------------------------------------------------------------
    # 입퇴장
    # ------------------------------------------------------------------
    @staticmethod
    def get_open_check_in(db: Session, request_id: int) -> Optional[CheckInOut]:
        """퇴장 처리되지 않은 입장 기록"""
        return db.query(CheckInOut).filter(
            CheckInOut.visitor_request_id == request_id,
            CheckInOut.check_out_time.is_(None),
        ).first()

    @staticmethod
    def check_in(db: Session, officer: User, request_id: int, data: CheckInRequest) -> CheckInOut:
        """입장 처리 (출입문 담당자)"""
        visitor_request = VisitorRequestService.get_request_by_id(db, request_id)

        if VisitorRequestService.get_open_check_in(db, request_id):
            raise BadRequestException(detail="Visitor is already checked in")
        if visitor_request.status != RequestStatus.APPROVED:
            raise BadRequestException(detail="Only approved requests can be checked in")

        record = CheckInOut(
            visitor_request_id=visitor_request.id,
            check_in_time=datetime.utcnow(),
            check_in_by_id=officer.id,
            actual_items_brought=data.actual_items_brought,
            check_in_notes=data.notes,
        )
        db.add(record)
        visitor_request.status = RequestStatus.CHECKED_IN

        try:
            db.commit()
        except IntegrityError:
            # 동시에 들어온 입장 요청이 먼저 기록된 경우
            db.rollback()
            raise BadRequestException(detail="Visitor is already checked in")
        except StaleDataError:
            db.rollback()
            raise ConflictException(detail="Request was modified by another request")

        db.refresh(record)
        logger.info("Visitor request %s checked in by %s", request_id, officer.username)
        return record

    @staticmethod
    def check_out(db: Session, officer: User, request_id: int, data: CheckOutRequest) -> CheckInOut:
        """퇴장 처리 (출입문 담당자)"""
        record = VisitorRequestService.get_open_check_in(db, request_id)
        if not record:
            raise NotFoundException(detail="No active check-in found for this visitor")

        visitor_request = record.visitor_request
        record.close(officer.id, datetime.utcnow(), data.notes)
        visitor_request.status = RequestStatus.CHECKED_OUT

        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            raise ConflictException(detail="Request was modified by another request")

        db.refresh(record)
        logger.info(
            "Visitor request %s checked out by %s after %s minutes", request_id, officer.username, record.duration
        )
        return record

    # ------------------------------------------------------------------
    # 관리자
    # ------------------------------------------------------------------
    @staticmethod
    def update_request(db: Session, request_id: int, request_data: VisitorRequestUpdate) -> VisitorRequest:
        """방문 신청 수정 (관리자)"""
        visitor_request = VisitorRequestService.get_request_by_id(db, request_id)

        update_data = request_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(visitor_request, field, value)

        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            raise ConflictException(detail="Request was modified by another request")
        db.refresh(visitor_request)
        return visitor_request

    @staticmethod
    def delete_request(db: Session, request_id: int) -> None:
        """방문 신청 삭제 (관리자)"""
        visitor_request = VisitorRequestService.get_request_by_id(db, request_id)
        db.delete(visitor_request)
        db.commit()

    @staticmethod
    def set_photo(db: Session, user: User, request_id: int, photo_path: str) -> VisitorRequest:
        """사진 경로 기록 - 신청자 본인 또는 관리자"""
        visitor_request = VisitorRequestService.get_request_by_id(db, request_id)
        if visitor_request.requested_by_id != user.id and user.role != UserRole.ADMIN:
            raise ForbiddenException(detail="Not authorized to update this request")
        visitor_request.photo = photo_path
        db.commit()
        db.refresh(visitor_request)
        return visitor_request

    @staticmethod
    def analytics(
            db: Session,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            department: Optional[str] = None,
            location: Optional[Location] = None,
    ) -> dict:
        """상태별/부서별 집계 (관리자)"""
        filters = []
        if start_date and end_date:
            filters.append(VisitorRequest.created_at >= datetime.combine(start_date, datetime.min.time()))
            filters.append(VisitorRequest.created_at < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))
        if department:
            filters.append(VisitorRequest.department == department)
        if location:
            filters.append(VisitorRequest.location == location)

        def count_status(status: RequestStatus):
            return func.coalesce(func.sum(case((VisitorRequest.status == status, 1), else_=0)), 0)

        totals = db.query(
            func.count(VisitorRequest.id),
            count_status(RequestStatus.APPROVED),
            count_status(RequestStatus.DECLINED),
            count_status(RequestStatus.PENDING),
            count_status(RequestStatus.CHECKED_IN),
            count_status(RequestStatus.CHECKED_OUT),
        ).filter(*filters).one()

        department_rows = (
            db.query(
                VisitorRequest.department,
                func.count(VisitorRequest.id).label("count"),
                count_status(RequestStatus.APPROVED),
                count_status(RequestStatus.DECLINED),
                count_status(RequestStatus.PENDING),
                count_status(RequestStatus.CHECKED_IN),
                count_status(RequestStatus.CHECKED_OUT),
            )
            .filter(*filters)
            .group_by(VisitorRequest.department)
            .order_by(func.count(VisitorRequest.id).desc())
            .all()
        )

        return {
            "analytics": {
                "total_requests": totals[0],
                "approved_requests": totals[1],
                "declined_requests": totals[2],
                "pending_requests": totals[3],
                "checked_in_requests": totals[4],
                "checked_out_requests": totals[5],
            },
            "department_stats": [
                {
                    "department": row[0],
                    "count": row[1],
                    "approved": row[2],
                    "declined": row[3],
                    "pending": row[4],
                    "checked_in": row[5],
                    "checked_out": row[6],
                }
                for row in department_rows
            ],
        }

    # ------------------------------------------------------------------
    # 이력 / 재사용
    # ------------------------------------------------------------------
    @staticmethod
    def visitor_history(
            db: Session,
            user: User,
            visitor_id: Optional[str] = None,
            national_id: Optional[str] = None,
            visitor_name: Optional[str] = None,
    ) -> List[VisitorRequest]:
        """이전 방문 이력 검색 (최근 20건)"""
        if not (visitor_id or national_id or visitor_name):
            raise BadRequestException(detail="Please provide visitor_id, national_id, or visitor_name")

        query = db.query(VisitorRequest)
        if visitor_id:
            query = query.filter(VisitorRequest.visitor_id.ilike(f"%{visitor_id}%"))
        if national_id:
            query = query.filter(VisitorRequest.national_id.ilike(f"%{national_id}%"))
        if visitor_name:
            query = query.filter(VisitorRequest.visitor_name.ilike(f"%{visitor_name}%"))
        if user.role != UserRole.ADMIN:
            query = query.filter(VisitorRequest.requested_by_id == user.id)

        return query.order_by(VisitorRequest.created_at.desc(), VisitorRequest.id.desc()).limit(HISTORY_LIMIT).all()

    @staticmethod
    def reuse_request(db: Session, user: User, original_id: int, data: ReuseRequest) -> VisitorRequest:
        """이전 신청의 방문자 정보로 새 신청 생성"""
        original = VisitorRequestService.get_request_by_id(db, original_id)
        if original.requested_by_id != user.id and user.role != UserRole.ADMIN:
            raise ForbiddenException(detail="Not authorized to reuse this request")

        department = (user.department or "").strip() or original.department
        location = user.location or original.location

        scheduled_date = data.scheduled_date or date.today()
        if scheduled_date < date.today():
            raise BadRequestException(detail="Scheduled date cannot be in the past")

        if data.items_brought is not None:
            items = [item.strip() for item in data.items_brought.split(",") if item.strip()]
        else:
            items = list(original.items_brought or [])

        new_request = VisitorRequest(
            visitor_name=original.visitor_name,
            visitor_id=original.visitor_id,
            national_id=original.national_id,
            visitor_phone=original.visitor_phone,
            visitor_email=original.visitor_email,
            photo=original.photo,
            purpose=data.purpose or original.purpose,
            items_brought=items,
            department=department,
            department_type=original.department_type,
            gate_assignment=original.gate_assignment,
            access_type=original.access_type,
            location=location,
            is_group_visit=original.is_group_visit,
            company_name=original.company_name,
            group_size=original.group_size,
            origin_department=original.origin_department,
            requested_by_id=user.id,
            visit_duration_hours=1,
            visit_duration_days=0,
            scheduled_date=scheduled_date,
            scheduled_time=data.scheduled_time,
            status=RequestStatus.PENDING,
        )
        db.add(new_request)
        db.commit()
        db.refresh(new_request)
        return new_request
