from datetime import datetime, timedelta

import pytest

from conftest import auth_header
from vms.models.delegation import DelegationStatus
from vms.models.user import UserRole, DepartmentType
from vms.schemas.delegation import DelegationCreate, DelegationReview
from vms.services.delegation_service import DelegationService
from vms.utils.exceptions import BadRequestException, ForbiddenException


@pytest.fixture
def delegate(make_user):
    return make_user(UserRole.DEPARTMENT_USER, username="delegate", department="Finance")


def delegation_payload(target, start=None, end=None, **overrides):
    start = start or datetime.utcnow() - timedelta(hours=1)
    end = end or datetime.utcnow() + timedelta(days=3)
    payload = {
        "requested_to": target.id,
        "reason": "Annual leave",
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }
    payload.update(overrides)
    return payload


def request_and_approve(db, requester, target, admin, start=None, end=None):
    delegation = DelegationService.request_delegation(
        db, requester, DelegationCreate(**delegation_payload(target, start, end))
    )
    return DelegationService.review_delegation(db, admin, delegation.id, DelegationReview(status="approved"))


def test_request_delegation(client, submitter, delegate):
    response = client.post(
        "/api/delegations/request", json=delegation_payload(delegate), headers=auth_header(submitter)
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["requested_to_id"] == delegate.id
    assert body["permissions"]["can_create_requests"] is True


def test_end_must_follow_start(client, submitter, delegate):
    start = datetime.utcnow() + timedelta(days=2)
    response = client.post(
        "/api/delegations/request",
        json=delegation_payload(delegate, start=start, end=start - timedelta(hours=1)),
        headers=auth_header(submitter),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "End date must be after start date"


def test_cannot_delegate_to_self(db, submitter):
    with pytest.raises(BadRequestException):
        DelegationService.request_delegation(db, submitter, DelegationCreate(**delegation_payload(submitter)))


def test_unknown_target_is_not_found(client, submitter):
    payload = delegation_payload(submitter)
    payload["requested_to"] = 9999

    response = client.post("/api/delegations/request", json=payload, headers=auth_header(submitter))

    assert response.status_code == 404


def test_wing_user_can_only_delegate_to_director_or_division(db, make_user):
    wing_user = make_user(UserRole.DEPARTMENT_USER, department_type=DepartmentType.WING, username="winguser")
    other_wing = make_user(UserRole.DEPARTMENT_USER, department_type=DepartmentType.WING, username="otherwing")
    director = make_user(UserRole.DEPARTMENT_USER, department_type=DepartmentType.DIRECTOR, username="director")

    with pytest.raises(BadRequestException):
        DelegationService.request_delegation(db, wing_user, DelegationCreate(**delegation_payload(other_wing)))

    delegation = DelegationService.request_delegation(db, wing_user, DelegationCreate(**delegation_payload(director)))
    assert delegation.status == DelegationStatus.PENDING


def test_only_one_open_delegation(client, submitter, delegate):
    client.post("/api/delegations/request", json=delegation_payload(delegate), headers=auth_header(submitter))

    response = client.post(
        "/api/delegations/request", json=delegation_payload(delegate), headers=auth_header(submitter)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "You already have an active or pending delegation request"


def test_timezone_aware_dates_are_stored_as_utc():
    data = DelegationCreate(
        requested_to=1,
        reason="Travel",
        start_date="2026-03-01T10:00:00+03:00",
        end_date="2026-03-02T10:00:00+03:00",
    )

    assert data.start_date == datetime(2026, 3, 1, 7, 0)
    assert data.start_date.tzinfo is None


def test_review_is_admin_only(client, db, submitter, delegate, reviewer):
    delegation = DelegationService.request_delegation(db, submitter, DelegationCreate(**delegation_payload(delegate)))

    response = client.patch(
        f"/api/delegations/{delegation.id}/review", json={"status": "approved"}, headers=auth_header(reviewer)
    )

    assert response.status_code == 403


def test_reject_records_reason(client, db, admin, submitter, delegate):
    delegation = DelegationService.request_delegation(db, submitter, DelegationCreate(**delegation_payload(delegate)))

    response = client.patch(
        f"/api/delegations/{delegation.id}/review",
        json={"status": "rejected", "rejection_reason": "Not needed"},
        headers=auth_header(admin),
    )

    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "Not needed"
    assert response.json()["approved_by_id"] == admin.id


def test_activate_projects_onto_delegate(client, db, admin, submitter, delegate):
    delegation = request_and_approve(db, submitter, delegate, admin)

    response = client.patch(f"/api/delegations/{delegation.id}/activate", headers=auth_header(delegate))

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    db.expire_all()
    assert delegate.is_delegated is True
    assert delegate.delegated_by_id == submitter.id
    assert delegate.delegation_reason == "Annual leave"

    active = client.get("/api/delegations/active", headers=auth_header(delegate)).json()
    assert [item["id"] for item in active] == [delegation.id]


def test_activate_requires_approval(db, submitter, delegate):
    delegation = DelegationService.request_delegation(db, submitter, DelegationCreate(**delegation_payload(delegate)))

    with pytest.raises(BadRequestException):
        DelegationService.activate_delegation(db, submitter, delegation.id)


def test_activate_before_start_is_rejected(db, admin, submitter, delegate):
    start = datetime.utcnow() + timedelta(days=1)
    delegation = request_and_approve(db, submitter, delegate, admin, start=start, end=start + timedelta(days=1))

    with pytest.raises(BadRequestException) as exc_info:
        DelegationService.activate_delegation(db, submitter, delegation.id)

    assert exc_info.value.detail == "Delegation has not started yet"


def test_activate_after_end_completes_delegation(db, admin, submitter, delegate):
    delegation = request_and_approve(db, submitter, delegate, admin)
    later = delegation.end_date + timedelta(minutes=1)

    with pytest.raises(BadRequestException) as exc_info:
        DelegationService.activate_delegation(db, submitter, delegation.id, now=later)

    assert exc_info.value.detail == "Delegation has expired"
    db.expire_all()
    assert DelegationService.get_delegation_by_id(db, delegation.id).status == DelegationStatus.COMPLETED
    assert delegate.is_delegated is False


def test_unrelated_user_cannot_activate(db, make_user, admin, submitter, delegate):
    stranger = make_user(UserRole.DEPARTMENT_USER, username="stranger")
    delegation = request_and_approve(db, submitter, delegate, admin)

    with pytest.raises(ForbiddenException):
        DelegationService.activate_delegation(db, stranger, delegation.id)


def test_cancel_active_delegation_clears_projection(client, db, admin, submitter, delegate):
    delegation = request_and_approve(db, submitter, delegate, admin)
    DelegationService.activate_delegation(db, delegate, delegation.id)

    response = client.patch(f"/api/delegations/{delegation.id}/cancel", headers=auth_header(submitter))

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    db.expire_all()
    assert delegate.is_delegated is False
    assert delegate.delegated_by_id is None
    assert delegate.delegation_end_date is None


def test_cancel_approved_delegation_leaves_delegate_untouched(db, admin, submitter, delegate):
    delegation = request_and_approve(db, submitter, delegate, admin)

    cancelled = DelegationService.cancel_delegation(db, submitter, delegation.id)

    assert cancelled.status == DelegationStatus.CANCELLED
    assert delegate.is_delegated is False


def test_cancel_by_delegate_is_forbidden(client, db, admin, submitter, delegate):
    delegation = request_and_approve(db, submitter, delegate, admin)

    response = client.patch(f"/api/delegations/{delegation.id}/cancel", headers=auth_header(delegate))

    assert response.status_code == 403


def test_cancel_terminal_delegation_is_rejected(db, admin, submitter, delegate):
    delegation = request_and_approve(db, submitter, delegate, admin)
    DelegationService.cancel_delegation(db, submitter, delegation.id)

    with pytest.raises(BadRequestException):
        DelegationService.cancel_delegation(db, admin, delegation.id)


def test_list_sent_and_received(client, db, admin, submitter, delegate):
    delegation = DelegationService.request_delegation(db, submitter, DelegationCreate(**delegation_payload(delegate)))

    sent = client.get("/api/delegations", headers=auth_header(submitter)).json()
    received_default = client.get("/api/delegations", headers=auth_header(delegate)).json()
    received = client.get("/api/delegations?type=received", headers=auth_header(delegate)).json()
    everything = client.get("/api/delegations?status=pending", headers=auth_header(admin)).json()

    assert [item["id"] for item in sent["items"]] == [delegation.id]
    assert received_default["total"] == 0
    assert [item["id"] for item in received["items"]] == [delegation.id]
    assert everything["total"] == 1


def test_active_delegations_need_login_but_any_role(client, gate_officer):
    anonymous = client.get("/api/delegations/active")
    gate = client.get("/api/delegations/active", headers=auth_header(gate_officer))

    assert anonymous.status_code == 401
    assert gate.status_code == 200
    assert gate.json() == []
