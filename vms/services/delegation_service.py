"""
권한 위임 서비스
요청 → 관리자 승인 → 활성화 → 완료/취소
"""
import logging
from datetime import datetime
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
from vms.models.delegation import Delegation, DelegationStatus, OPEN_DELEGATION_STATUSES
from vms.models.user import User, UserRole, DepartmentType
from vms.schemas.delegation import DelegationCreate, DelegationReview
from vms.utils.exceptions import BadRequestException, ForbiddenException, NotFoundException

logger = logging.getLogger(__name__)

# wing 부서는 director/division 사용자에게만 위임 가능
WING_DELEGATION_TARGETS = (DepartmentType.DIRECTOR, DepartmentType.DIVISION)


class DelegationService:
    """권한 위임 서비스"""

    @staticmethod
    def get_delegation_by_id(db: Session, delegation_id: int) -> Delegation:
        """ID로 위임 조회"""
        delegation = db.query(Delegation).filter(Delegation.id == delegation_id).first()
        if not delegation:
            raise NotFoundException(detail="Delegation not found")
        return delegation

    @staticmethod
    def request_delegation(db: Session, requester: User, data: DelegationCreate) -> Delegation:
        """
        위임 요청 생성
        - 종료일은 시작일 이후
        - 본인에게는 위임 불가, 진행 중인 위임은 1건만
        """
        if data.end_date <= data.start_date:
            raise BadRequestException(detail="End date must be after start date")

        target = db.query(User).filter(User.id == data.requested_to).first()
        if not target:
            raise NotFoundException(detail="Target user not found")
        if target.id == requester.id:
            raise BadRequestException(detail="Cannot delegate to yourself")

        if requester.department_type == DepartmentType.WING and target.department_type not in WING_DELEGATION_TARGETS:
            raise BadRequestException(detail="Wing users can only delegate to director or division users")

        existing = db.query(Delegation).filter(
            Delegation.requested_by_id == requester.id,
            Delegation.status.in_(OPEN_DELEGATION_STATUSES),
        ).first()
        if existing:
            raise BadRequestException(detail="You already have an active or pending delegation request")

        delegation = Delegation(
            requested_by_id=requester.id,
            requested_to_id=target.id,
            reason=data.reason,
            start_date=data.start_date,
            end_date=data.end_date,
            status=DelegationStatus.PENDING,
            permissions=data.permissions.model_dump(mode="json"),
        )
        db.add(delegation)
        db.commit()
        db.refresh(delegation)
        logger.info("Delegation %s requested by %s to %s", delegation.id, requester.username, target.username)
        return delegation

    @staticmethod
    def list_delegations(
            db: Session,
            user: User,
            received: bool = False,
            status: Optional[DelegationStatus] = None,
    ) -> List[Delegation]:
        """위임 목록 - 관리자는 전체, 그 외는 보낸/받은 위임"""
        query = db.query(Delegation).options(
            joinedload(Delegation.requested_by),
            joinedload(Delegation.requested_to),
            joinedload(Delegation.approved_by),
        )
        if user.role != UserRole.ADMIN:
            if received:
                query = query.filter(Delegation.requested_to_id == user.id)
            else:
                query = query.filter(Delegation.requested_by_id == user.id)
        if status:
            query = query.filter(Delegation.status == status)
        return query.order_by(Delegation.created_at.desc(), Delegation.id.desc()).all()

    @staticmethod
    def review_delegation(db: Session, admin: User, delegation_id: int, review: DelegationReview) -> Delegation:
        """위임 승인/거절 (관리자)"""
        delegation = DelegationService.get_delegation_by_id(db, delegation_id)
        if delegation.status != DelegationStatus.PENDING:
            raise BadRequestException(detail="Delegation has already been reviewed")

        delegation.status = DelegationStatus(review.status)
        delegation.approved_by_id = admin.id
        delegation.approved_at = datetime.utcnow()
        if delegation.status == DelegationStatus.REJECTED:
            delegation.rejection_reason = review.rejection_reason

        db.commit()
        db.refresh(delegation)
        logger.info("Delegation %s %s by %s", delegation.id, delegation.status.value, admin.username)
        return delegation

    @staticmethod
    def activate_delegation(db: Session, user: User, delegation_id: int, now: Optional[datetime] = None) -> Delegation:
        """
        승인된 위임 활성화
        - 기간이 지났으면 completed로 저장한 뒤 400
        - 활성화되면 위임 정보를 대상 사용자에게 복사
        """
        delegation = DelegationService.get_delegation_by_id(db, delegation_id)
        if user.role != UserRole.ADMIN and user.id not in (delegation.requested_by_id, delegation.requested_to_id):
            raise ForbiddenException(detail="Not authorized to activate this delegation")
        if delegation.status != DelegationStatus.APPROVED:
            raise BadRequestException(detail="Only approved delegations can be activated")

        now = now or datetime.utcnow()
        if now < delegation.start_date:
            raise BadRequestException(detail="Delegation has not started yet")
        if now > delegation.end_date:
            delegation.status = DelegationStatus.COMPLETED
            delegation.is_active = False
            db.commit()
            raise BadRequestException(detail="Delegation has expired")

        delegate = delegation.requested_to
        delegation.status = DelegationStatus.ACTIVE
        delegate.is_delegated = True
        delegate.delegated_by_id = delegation.requested_by_id
        delegate.delegation_reason = delegation.reason
        delegate.delegation_start_date = delegation.start_date
        delegate.delegation_end_date = delegation.end_date

        db.commit()
        db.refresh(delegation)
        logger.info("Delegation %s activated for %s", delegation.id, delegate.username)
        return delegation

    @staticmethod
    def cancel_delegation(db: Session, user: User, delegation_id: int) -> Delegation:
        """
        위임 취소 (요청자 또는 관리자)
        - 활성 상태였던 경우 대상 사용자의 위임 정보도 같은 트랜잭션에서 해제
        """
        delegation = DelegationService.get_delegation_by_id(db, delegation_id)
        if user.role != UserRole.ADMIN and delegation.requested_by_id != user.id:
            raise ForbiddenException(detail="Not authorized to cancel this delegation")
        if not delegation.is_open:
            raise BadRequestException(detail="Delegation cannot be cancelled in its current state")

        was_active = delegation.status == DelegationStatus.ACTIVE
        delegation.status = DelegationStatus.CANCELLED
        delegation.is_active = False
        if was_active:
            delegation.requested_to.clear_delegation()

        db.commit()
        db.refresh(delegation)
        logger.info("Delegation %s cancelled by %s (was active: %s)", delegation.id, user.username, was_active)
        return delegation

    @staticmethod
    def active_for(db: Session, user: User) -> List[Delegation]:
        """본인이 위임받아 활성화된 위임 목록"""
        return (
            db.query(Delegation)
            .filter(Delegation.requested_to_id == user.id, Delegation.status == DelegationStatus.ACTIVE)
            .order_by(Delegation.start_date.desc())
            .all()
        )
