import re
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import text

from conftest import auth_header, request_payload
from vms.models.check_in_out import CheckInOut
from vms.models.user import UserRole, DepartmentType, Location
from vms.models.visitor_request import VisitorRequest, RequestStatus
from vms.schemas.visitor_request import ReviewDecision, VisitorRequestCreate, ReuseRequest
from vms.services.visitor_request_service import VisitorRequestService, generate_approval_code
from vms.utils.exceptions import BadRequestException, ConflictException, ForbiddenException

APPROVAL_CODE_RE = re.compile(r"^VIS\d{6}[A-Z0-9]{3}$")


def submit(client, user, **overrides):
    response = client.post("/api/visitors/request", json=request_payload(**overrides), headers=auth_header(user))
    assert response.status_code == 201, response.text
    return response.json()


def approve(client, reviewer, request_id):
    response = client.patch(
        f"/api/visitors/requests/{request_id}/review",
        json={"status": "approved", "review_comments": "ok"},
        headers=auth_header(reviewer),
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_submit_copies_department_and_location_from_submitter(client, submitter):
    body = submit(client, submitter)

    assert body["status"] == "pending"
    assert body["department"] == "Logistics"
    assert body["location"] == "Wollo Sefer"
    assert body["requested_by_id"] == submitter.id
    assert body["approval_code"] is None


def test_submit_is_forbidden_for_gate_officer(client, gate_officer):
    response = client.post("/api/visitors/request", json=request_payload(), headers=auth_header(gate_officer))

    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied. Insufficient permissions."


def test_submit_validation_errors_are_joined(client, submitter):
    response = client.post(
        "/api/visitors/request",
        json=request_payload(visitor_phone="abc", scheduled_time="25:00"),
        headers=auth_header(submitter),
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert "visitor_phone" in detail
    assert "scheduled_time" in detail
    assert ". " in detail


def test_submit_rejects_past_date(client, submitter):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    response = client.post(
        "/api/visitors/request", json=request_payload(scheduled_date=yesterday), headers=auth_header(submitter)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Scheduled date cannot be in the past"


def test_wing_request_requires_gate_and_access_type(client, submitter):
    response = client.post(
        "/api/visitors/request", json=request_payload(department_type="wing"), headers=auth_header(submitter)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Gate assignment is required for wing departments"


def test_group_visit_requires_company_and_size(client, submitter):
    response = client.post(
        "/api/visitors/request", json=request_payload(is_group_visit=True), headers=auth_header(submitter)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Company name and group size are required for group visits"


def test_approval_assigns_code(client, submitter, reviewer):
    created = submit(client, submitter)

    body = approve(client, reviewer, created["id"])

    assert body["status"] == "approved"
    assert body["reviewed_by_id"] == reviewer.id
    assert body["reviewed_at"] is not None
    assert APPROVAL_CODE_RE.match(body["approval_code"])


def test_decline_has_no_code(client, submitter, reviewer):
    created = submit(client, submitter)

    response = client.patch(
        f"/api/visitors/requests/{created['id']}/review",
        json={"status": "declined", "review_comments": "incomplete"},
        headers=auth_header(reviewer),
    )

    assert response.json()["status"] == "declined"
    assert response.json()["approval_code"] is None


def test_review_twice_is_rejected(client, submitter, reviewer):
    created = submit(client, submitter)
    approve(client, reviewer, created["id"])

    response = client.patch(
        f"/api/visitors/requests/{created['id']}/review",
        json={"status": "declined"},
        headers=auth_header(reviewer),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Request has already been reviewed"


def test_review_rejects_unknown_status(client, submitter, reviewer):
    created = submit(client, submitter)

    response = client.patch(
        f"/api/visitors/requests/{created['id']}/review",
        json={"status": "checked_in"},
        headers=auth_header(reviewer),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid status. Must be approved or declined."


def test_review_unknown_request_is_not_found(client, reviewer):
    response = client.patch("/api/visitors/requests/999/review", json={"status": "approved"}, headers=auth_header(reviewer))

    assert response.status_code == 404


def test_check_in_requires_approval(client, submitter, gate_officer):
    created = submit(client, submitter)

    response = client.post(f"/api/visitors/checkin/{created['id']}", json={}, headers=auth_header(gate_officer))

    assert response.status_code == 400
    assert response.json()["detail"] == "Only approved requests can be checked in"


def test_check_in_twice_reports_already_checked_in(client, submitter, reviewer, gate_officer):
    created = submit(client, submitter)
    approve(client, reviewer, created["id"])

    first = client.post(
        f"/api/visitors/checkin/{created['id']}",
        json={"actual_items_brought": ["laptop"], "notes": "badge 12"},
        headers=auth_header(gate_officer),
    )
    second = client.post(f"/api/visitors/checkin/{created['id']}", json={}, headers=auth_header(gate_officer))

    assert first.status_code == 201
    assert first.json()["check_in_by_id"] == gate_officer.id
    assert second.status_code == 400
    assert second.json()["detail"] == "Visitor is already checked in"


def test_check_out_computes_duration(client, db, submitter, reviewer, gate_officer):
    created = submit(client, submitter)
    approve(client, reviewer, created["id"])
    client.post(f"/api/visitors/checkin/{created['id']}", json={}, headers=auth_header(gate_officer))

    record = db.query(CheckInOut).filter(CheckInOut.visitor_request_id == created["id"]).one()
    record.check_in_time = datetime.utcnow() - timedelta(minutes=90, seconds=5)
    db.commit()

    response = client.patch(
        f"/api/visitors/checkout/{created['id']}", json={"notes": "left"}, headers=auth_header(gate_officer)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["duration"] == 90
    assert body["check_out_by_id"] == gate_officer.id
    db.expire_all()
    assert db.get(VisitorRequest, created["id"]).status == RequestStatus.CHECKED_OUT


def test_check_out_without_open_record(client, submitter, reviewer, gate_officer):
    created = submit(client, submitter)
    approve(client, reviewer, created["id"])

    response = client.patch(f"/api/visitors/checkout/{created['id']}", json={}, headers=auth_header(gate_officer))

    assert response.status_code == 404
    assert response.json()["detail"] == "No active check-in found for this visitor"


def test_check_out_time_never_precedes_check_in():
    check_in = datetime(2026, 1, 1, 12, 0)
    record = CheckInOut(visitor_request_id=1, check_in_time=check_in, check_in_by_id=1)

    record.close(2, check_in - timedelta(seconds=30), "clock skew")

    assert record.check_out_time > record.check_in_time
    assert record.duration == 0


def test_overdue_pending_request_expires_on_write(db, submitter):
    visitor_request = VisitorRequest(
        visitor_name="Late Visitor",
        visitor_id="V-9",
        national_id="N-9",
        visitor_phone="911000000",
        purpose="Meeting",
        items_brought=[],
        department="Logistics",
        department_type=DepartmentType.DIVISION,
        location=Location.OPERATION,
        requested_by_id=submitter.id,
        scheduled_date=date.today() - timedelta(days=2),
        scheduled_time="09:00",
        status=RequestStatus.PENDING,
    )
    db.add(visitor_request)
    db.commit()

    assert visitor_request.status == RequestStatus.EXPIRED


def test_expiry_uses_date_not_time():
    visitor_request = VisitorRequest(status=RequestStatus.PENDING, scheduled_date=date.today())

    assert visitor_request.expire_if_overdue() is False
    assert visitor_request.expire_if_overdue(today=date.today() + timedelta(days=1)) is True
    assert visitor_request.status == RequestStatus.EXPIRED


def test_listing_is_scoped_by_role(client, make_user, submitter, reviewer, gate_officer):
    other = make_user(UserRole.DEPARTMENT_USER, username="other", department="Finance")
    mine = submit(client, submitter)
    submit(client, other, visitor_name="Someone Else")
    approve(client, reviewer, mine["id"])

    own = client.get("/api/visitors/requests", headers=auth_header(submitter)).json()
    security_view = client.get("/api/visitors/requests", headers=auth_header(reviewer)).json()
    gate_view = client.get("/api/visitors/requests", headers=auth_header(gate_officer)).json()

    assert [item["id"] for item in own["items"]] == [mine["id"]]
    assert security_view["total"] == 2
    assert [item["id"] for item in gate_view["items"]] == [mine["id"]]


def test_status_filter_never_widens_role_scope(client, submitter, reviewer, gate_officer):
    submit(client, submitter)

    response = client.get("/api/visitors/requests?status=pending", headers=auth_header(gate_officer))

    assert response.json()["total"] == 0


def test_listing_filters_and_paginates(client, submitter):
    for n in range(3):
        submit(client, submitter, visitor_name=f"Visitor {n}", is_group_visit=n == 0,
               company_name="Acme" if n == 0 else None, group_size=4 if n == 0 else None)

    page = client.get("/api/visitors/requests?limit=2&page=2", headers=auth_header(submitter)).json()
    groups = client.get("/api/visitors/requests?visit_type=group", headers=auth_header(submitter)).json()
    searched = client.get("/api/visitors/requests?search=acme", headers=auth_header(submitter)).json()

    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert len(page["items"]) == 1
    assert groups["total"] == 1
    assert searched["items"][0]["company_name"] == "Acme"


def test_department_user_cannot_view_others_request(client, make_user, submitter):
    other = make_user(UserRole.DEPARTMENT_USER, username="other", department="Finance")
    created = submit(client, other)

    response = client.get(f"/api/visitors/requests/{created['id']}", headers=auth_header(submitter))

    assert response.status_code == 403


def test_concurrent_review_conflicts(db, submitter, reviewer):
    data = VisitorRequestCreate(**request_payload())
    visitor_request = VisitorRequestService.create_request(db, submitter, data)

    # 다른 트랜잭션이 먼저 같은 신청을 수정한 상황
    db.connection().execute(
        text("UPDATE visitor_requests SET version = version + 1 WHERE id = :id"), {"id": visitor_request.id}
    )

    with pytest.raises(ConflictException):
        VisitorRequestService.review_request(db, reviewer, visitor_request.id, ReviewDecision(status="declined"))


def test_generated_codes_match_format():
    codes = {generate_approval_code() for _ in range(50)}

    assert all(APPROVAL_CODE_RE.match(code) for code in codes)


def test_analytics_counts_by_status_and_department(client, make_user, admin, submitter, reviewer):
    other = make_user(UserRole.DEPARTMENT_USER, username="other", department="Finance")
    first = submit(client, submitter)
    submit(client, submitter)
    submit(client, other)
    approve(client, reviewer, first["id"])

    response = client.get("/api/visitors/analytics", headers=auth_header(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["analytics"]["total_requests"] == 3
    assert body["analytics"]["approved_requests"] == 1
    assert body["analytics"]["pending_requests"] == 2
    by_department = {row["department"]: row for row in body["department_stats"]}
    assert by_department["Logistics"]["count"] == 2
    assert by_department["Finance"]["pending"] == 1


def test_analytics_is_admin_only(client, reviewer):
    assert client.get("/api/visitors/analytics", headers=auth_header(reviewer)).status_code == 403


def test_history_requires_a_search_field(db, submitter):
    with pytest.raises(BadRequestException):
        VisitorRequestService.visitor_history(db, submitter)


def test_history_and_reuse(client, submitter):
    original = submit(client, submitter, visitor_id="V-777")

    history = client.get("/api/visitors/history?visitor_id=V-777", headers=auth_header(submitter))
    reused = client.post(
        f"/api/visitors/requests/{original['id']}/reuse",
        json={"purpose": "Follow-up", "items_brought": "tablet, charger"},
        headers=auth_header(submitter),
    )

    assert [item["id"] for item in history.json()] == [original["id"]]
    assert reused.status_code == 201
    body = reused.json()
    assert body["id"] != original["id"]
    assert body["visitor_id"] == "V-777"
    assert body["purpose"] == "Follow-up"
    assert body["items_brought"] == ["tablet", "charger"]
    assert body["scheduled_date"] == date.today().isoformat()
    assert body["status"] == "pending"


def test_reuse_of_someone_elses_request_is_forbidden(db, make_user, submitter):
    other = make_user(UserRole.DEPARTMENT_USER, username="other", department="Finance")
    original = VisitorRequestService.create_request(db, other, VisitorRequestCreate(**request_payload()))

    with pytest.raises(ForbiddenException):
        VisitorRequestService.reuse_request(db, submitter, original.id, ReuseRequest())


def test_admin_update_and_delete(client, admin, submitter):
    created = submit(client, submitter)

    updated = client.patch(
        f"/api/visitors/requests/{created['id']}", json={"priority": "high"}, headers=auth_header(admin)
    )
    deleted = client.delete(f"/api/visitors/requests/{created['id']}", headers=auth_header(admin))
    missing = client.get(f"/api/visitors/requests/{created['id']}", headers=auth_header(admin))

    assert updated.json()["priority"] == "high"
    assert updated.json()["department"] == "Logistics"
    assert deleted.status_code == 200
    assert missing.status_code == 404


def test_admin_update_cannot_change_status(client, admin, submitter, gate_officer):
    created = submit(client, submitter)

    updated = client.patch(
        f"/api/visitors/requests/{created['id']}", json={"status": "approved"}, headers=auth_header(admin)
    )
    check_in = client.post(f"/api/visitors/checkin/{created['id']}", json={}, headers=auth_header(gate_officer))

    assert updated.status_code == 200
    assert updated.json()["status"] == "pending"
    assert updated.json()["approval_code"] is None
    assert check_in.status_code == 400


def test_photo_upload_rejects_unsupported_type(client, submitter):
    created = submit(client, submitter)

    response = client.post(
        f"/api/visitors/requests/{created['id']}/photo",
        files={"photo": ("notes.txt", b"hello", "text/plain")},
        headers=auth_header(submitter),
    )

    assert response.status_code == 415


def test_photo_upload_stores_path(client, submitter):
    import io
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (20, 20), "red").save(buffer, format="PNG")
    created = submit(client, submitter)

    response = client.post(
        f"/api/visitors/requests/{created['id']}/photo",
        files={"photo": ("face.png", buffer.getvalue(), "image/png")},
        headers=auth_header(submitter),
    )

    assert response.status_code == 200
    assert response.json()["photo"].startswith("/uploads/photos/request-")
