"""
역할별 권한 표
모든 엔드포인트는 이 표 하나로 역할 허용 여부를 판단한다.
소유권 같은 행 단위 규칙은 서비스 계층에서 검사한다.
"""
import enum
from vms.models.user import UserRole


class Action(str, enum.Enum):
    """권한 검사 대상 동작"""
    SUBMIT_REQUEST = "submit_request"
    LIST_REQUESTS = "list_requests"
    VIEW_REQUEST = "view_request"
    UPLOAD_PHOTO = "upload_photo"
    REVIEW_REQUEST = "review_request"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_REQUESTS = "manage_requests"
    VIEW_HISTORY = "view_history"
    REUSE_REQUEST = "reuse_request"

    BULK_UPLOAD = "bulk_upload"
    PROCESS_BULK_UPLOAD = "process_bulk_upload"
    MANAGE_UPLOAD_PERMISSIONS = "manage_upload_permissions"

    REQUEST_DELEGATION = "request_delegation"
    LIST_DELEGATIONS = "list_delegations"
    REVIEW_DELEGATION = "review_delegation"
    VIEW_ACTIVE_DELEGATIONS = "view_active_delegations"
    ACTIVATE_DELEGATION = "activate_delegation"
    CANCEL_DELEGATION = "cancel_delegation"

    MANAGE_USERS = "manage_users"
    APPROVE_USER = "approve_user"
    VIEW_AUDIT_LOGS = "view_audit_logs"


_COMMON = frozenset({
    Action.LIST_REQUESTS,
    Action.VIEW_REQUEST,
    Action.LIST_DELEGATIONS,
    Action.VIEW_ACTIVE_DELEGATIONS,
    Action.ACTIVATE_DELEGATION,
    Action.CANCEL_DELEGATION,
})

PERMISSION_MATRIX: dict[UserRole, frozenset] = {
    UserRole.ADMIN: _COMMON | {
        Action.UPLOAD_PHOTO,
        Action.VIEW_ANALYTICS,
        Action.MANAGE_REQUESTS,
        Action.VIEW_HISTORY,
        Action.REUSE_REQUEST,
        Action.PROCESS_BULK_UPLOAD,
        Action.MANAGE_UPLOAD_PERMISSIONS,
        Action.REVIEW_DELEGATION,
        Action.MANAGE_USERS,
        Action.VIEW_AUDIT_LOGS,
    },
    UserRole.DEPARTMENT_USER: _COMMON | {
        Action.SUBMIT_REQUEST,
        Action.UPLOAD_PHOTO,
        Action.VIEW_HISTORY,
        Action.REUSE_REQUEST,
        Action.BULK_UPLOAD,
        Action.PROCESS_BULK_UPLOAD,
        Action.REQUEST_DELEGATION,
    },
    UserRole.SECURITY: _COMMON | {
        Action.REVIEW_REQUEST,
        Action.APPROVE_USER,
    },
    UserRole.GATE: _COMMON | {
        Action.CHECK_IN,
        Action.CHECK_OUT,
    },
}


def has_permission(user, action: Action) -> bool:
    """사용자의 역할이 해당 동작을 허용하는지 확인"""
    if user is None or getattr(user, "role", None) is None:
        return False
    return action in PERMISSION_MATRIX.get(user.role, frozenset())
