from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient


async def _submit(client: AsyncClient, headers, **overrides):
    payload = {
        "category": "PLUMBING",
        "title": "Leaking tap",
        "description": "The bathroom tap has been leaking since Monday.",
        "priority": "HIGH",
    }
    payload.update(overrides)
    return await client.post("/api/student/complaints", json=payload, headers=headers)


async def _set_status(client: AsyncClient, headers, complaint_id: str, status: str, **extra):
    return await client.patch(
        f"/api/admin/complaints/{complaint_id}/status",
        json={"status": status, **extra},
        headers=headers,
    )


@pytest.fixture()
async def complaint(client: AsyncClient, student_headers, allocated_student):
    response = await _submit(client, student_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.asyncio
async def test_submit_defaults_to_allocated_room(complaint, room) -> None:
    assert complaint["status"] == "PENDING"
    assert complaint["room_id"] == room["id"]
    assert complaint["room_number"] == "101"
    assert complaint["priority"] == "HIGH"


@pytest.mark.asyncio
async def test_submit_without_allocation(client: AsyncClient, other_student_headers) -> None:
    response = await _submit(client, other_student_headers, category="INTERNET", title="No wifi signal")
    assert response.status_code == 201
    assert response.json()["data"]["room_id"] is None


@pytest.mark.asyncio
async def test_submit_validates_lengths(client: AsyncClient, student_headers) -> None:
    response = await _submit(client, student_headers, title="Tap")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_full_lifecycle(client: AsyncClient, admin_headers, student_headers, complaint) -> None:
    cid = complaint["id"]
    acknowledged = await _set_status(client, admin_headers, cid, "ACKNOWLEDGED")
    assert acknowledged.status_code == 200
    assert acknowledged.json()["data"]["acknowledged_at"] is not None

    in_progress = await _set_status(client, admin_headers, cid, "IN_PROGRESS", note="Plumber assigned")
    assert in_progress.json()["data"]["status"] == "IN_PROGRESS"

    resolved = await client.patch(
        f"/api/admin/complaints/{cid}/resolve",
        json={"resolution_notes": "Replaced the tap washer and tested."},
        headers=admin_headers,
    )
    assert resolved.status_code == 200
    data = resolved.json()["data"]
    assert data["status"] == "RESOLVED"
    assert data["resolved_at"] is not None
    assert data["resolved_by"] is not None

    closed = await _set_status(client, admin_headers, cid, "CLOSED")
    assert closed.json()["data"]["closed_at"] is not None

    reopened = await _set_status(client, admin_headers, cid, "IN_PROGRESS")
    assert reopened.status_code == 400
    assert reopened.json()["message"] == "Cannot change complaint status from CLOSED to IN_PROGRESS"

    detail = await client.get(f"/api/student/complaints/{cid}", headers=student_headers)
    comments = detail.json()["data"]["comments"]
    assert [c["comment_type"] for c in comments] == [
        "STATUS_UPDATE",
        "STATUS_UPDATE",
        "RESOLUTION",
        "STATUS_UPDATE",
    ]
    assert comments[1]["comment"] == "Status changed from ACKNOWLEDGED to IN_PROGRESS: Plumber assigned"
    assert comments[2]["comment"] == "Replaced the tap washer and tested."


@pytest.mark.asyncio
async def test_illegal_transition_rejected(client: AsyncClient, admin_headers, complaint) -> None:
    response = await _set_status(client, admin_headers, complaint["id"], "CLOSED")
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot change complaint status from PENDING to CLOSED"


@pytest.mark.asyncio
async def test_rejected_is_terminal(client: AsyncClient, warden_headers, complaint) -> None:
    rejected = await _set_status(client, warden_headers, complaint["id"], "REJECTED", note="Duplicate")
    assert rejected.status_code == 200
    assert rejected.json()["data"]["rejected_at"] is not None

    response = await _set_status(client, warden_headers, complaint["id"], "ACKNOWLEDGED")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_resolve_requires_notes(client: AsyncClient, admin_headers, complaint) -> None:
    await _set_status(client, admin_headers, complaint["id"], "IN_PROGRESS")
    response = await client.patch(
        f"/api/admin/complaints/{complaint['id']}/resolve",
        json={"resolution_notes": "Fixed"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Resolution notes must be at least 10 characters"

    via_status = await _set_status(client, admin_headers, complaint["id"], "RESOLVED")
    assert via_status.status_code == 400

    detail = await client.get(f"/api/admin/complaints/{complaint['id']}", headers=admin_headers)
    assert detail.json()["data"]["status"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_reopen_clears_resolution(client: AsyncClient, admin_headers, complaint) -> None:
    cid = complaint["id"]
    await _set_status(client, admin_headers, cid, "IN_PROGRESS")
    await _set_status(
        client, admin_headers, cid, "RESOLVED", resolution_notes="Cleaned the drain pipe fully."
    )
    reopened = await _set_status(client, admin_headers, cid, "IN_PROGRESS", note="Leaking again")
    assert reopened.status_code == 200
    data = reopened.json()["data"]
    assert data["status"] == "IN_PROGRESS"
    assert data["resolved_at"] is None


@pytest.mark.asyncio
async def test_internal_comments_hidden_from_student(
    client: AsyncClient, admin_headers, student_headers, complaint
) -> None:
    cid = complaint["id"]
    internal = await client.post(
        f"/api/admin/complaints/{cid}/comments",
        json={"comment": "Vendor invoice pending", "is_internal": True},
        headers=admin_headers,
    )
    assert internal.status_code == 201
    public = await client.post(
        f"/api/admin/complaints/{cid}/comments",
        json={"comment": "We will fix it tomorrow"},
        headers=admin_headers,
    )
    assert public.json()["data"]["user_name"] == "Asha Admin"

    student_view = await client.get(f"/api/student/complaints/{cid}", headers=student_headers)
    assert [c["comment"] for c in student_view.json()["data"]["comments"]] == ["We will fix it tomorrow"]

    admin_view = await client.get(f"/api/admin/complaints/{cid}", headers=admin_headers)
    assert len(admin_view.json()["data"]["comments"]) == 2


@pytest.mark.asyncio
async def test_student_cannot_post_internal_comment(client: AsyncClient, student_headers, complaint) -> None:
    response = await client.post(
        f"/api/student/complaints/{complaint['id']}/comments",
        json={"comment": "Secret", "is_internal": True},
        headers=student_headers,
    )
    assert response.status_code == 403

    ok = await client.post(
        f"/api/student/complaints/{complaint['id']}/comments",
        json={"comment": "Still leaking"},
        headers=student_headers,
    )
    assert ok.status_code == 201
    assert ok.json()["data"]["comment_type"] == "COMMENT"


@pytest.mark.asyncio
async def test_students_only_see_their_own(
    client: AsyncClient, other_student_headers, student_headers, complaint
) -> None:
    detail = await client.get(f"/api/student/complaints/{complaint['id']}", headers=other_student_headers)
    assert detail.status_code == 404

    comment = await client.post(
        f"/api/student/complaints/{complaint['id']}/comments",
        json={"comment": "Me too"},
        headers=other_student_headers,
    )
    assert comment.status_code == 404

    mine = await client.get("/api/student/complaints", headers=other_student_headers)
    assert mine.json()["data"]["total"] == 0
    theirs = await client.get("/api/student/complaints", headers=student_headers)
    assert theirs.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_admin_list_filters(client: AsyncClient, admin_headers, student_headers, complaint) -> None:
    await _submit(client, student_headers, category="ELECTRICAL", title="Fan not working", priority="LOW")

    everything = await client.get("/api/admin/complaints", headers=admin_headers)
    assert everything.json()["data"]["total"] == 2

    electrical = await client.get(
        "/api/admin/complaints", params={"category": "ELECTRICAL"}, headers=admin_headers
    )
    assert [c["title"] for c in electrical.json()["data"]["complaints"]] == ["Fan not working"]

    high = await client.get("/api/admin/complaints", params={"priority": "HIGH"}, headers=admin_headers)
    assert high.json()["data"]["total"] == 1


@pytest.mark.asyncio
async def test_stats_and_categories(client: AsyncClient, admin_headers, student_headers, complaint) -> None:
    await _submit(client, student_headers, category="PLUMBING", title="Blocked drain")
    await _submit(client, student_headers, category="NOISE", title="Loud music at night")
    await _set_status(client, admin_headers, complaint["id"], "ACKNOWLEDGED")

    stats = (await client.get("/api/admin/complaints/stats", headers=admin_headers)).json()["data"]
    assert stats["total"] == 3
    assert stats["pending"] == 2
    assert stats["acknowledged"] == 1

    categories = (await client.get("/api/admin/complaints/by-category", headers=admin_headers)).json()["data"]
    assert categories == [{"category": "PLUMBING", "count": 2}, {"category": "NOISE", "count": 1}]


@pytest.mark.asyncio
async def test_report_end_date_is_inclusive(client: AsyncClient, admin_headers, complaint) -> None:
    today = datetime.utcnow().date()
    report = await client.get(
        "/api/admin/complaints/report",
        params={"start_date": today.isoformat(), "end_date": today.isoformat()},
        headers=admin_headers,
    )
    assert report.status_code == 200
    assert report.json()["data"]["count"] == 1

    yesterday = (today - timedelta(days=1)).isoformat()
    empty = await client.get(
        "/api/admin/complaints/report",
        params={"start_date": yesterday, "end_date": yesterday},
        headers=admin_headers,
    )
    assert empty.json()["data"]["count"] == 0

    reversed_range = await client.get(
        "/api/admin/complaints/report",
        params={"start_date": today.isoformat(), "end_date": yesterday},
        headers=admin_headers,
    )
    assert reversed_range.status_code == 400


@pytest.mark.asyncio
async def test_student_cannot_use_admin_routes(client: AsyncClient, student_headers, complaint) -> None:
    response = await client.get("/api/admin/complaints", headers=student_headers)
    assert response.status_code == 403
