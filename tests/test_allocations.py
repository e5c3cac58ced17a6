from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Room, RoomAllocation


async def _single_room(client: AsyncClient, headers, building, number: str = "S1") -> dict:
    response = await client.post(
        f"/api/hostel/buildings/{building['id']}/rooms",
        json={"room_number": number, "floor_number": 1, "room_type": "SINGLE", "capacity": 1},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.asyncio
async def test_allocate_student(client: AsyncClient, admin_headers, room, allocated_student, student) -> None:
    assert allocated_student["status"] == "ACTIVE"
    assert allocated_student["student_id"] == str(student.id)
    assert allocated_student["room_number"] == "101"
    assert allocated_student["floor_number"] == 1

    detail = await client.get(f"/api/hostel/rooms/{room['id']}", headers=admin_headers)
    data = detail.json()["data"]
    assert data["occupied"] == 1
    assert data["available"] == 1
    assert data["status"] == "AVAILABLE"


@pytest.mark.asyncio
async def test_second_active_allocation_rejected(
    client: AsyncClient, admin_headers, building, allocated_student, student
) -> None:
    other_room = await _single_room(client, admin_headers, building)
    response = await client.post(
        "/api/hostel/allocations",
        json={"student_id": str(student.id), "room_id": other_room["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Student already has an active room allocation"

    detail = await client.get(f"/api/hostel/rooms/{other_room['id']}", headers=admin_headers)
    assert detail.json()["data"]["occupied"] == 0


@pytest.mark.asyncio
async def test_full_room_rejected(
    client: AsyncClient, admin_headers, building, student, other_student
) -> None:
    single = await _single_room(client, admin_headers, building)
    first = await client.post(
        "/api/hostel/allocations",
        json={"student_id": str(student.id), "room_id": single["id"]},
        headers=admin_headers,
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/hostel/allocations",
        json={"student_id": str(other_student.id), "room_id": single["id"]},
        headers=admin_headers,
    )
    assert second.status_code == 400
    assert second.json()["message"] == "Room is at full capacity"

    detail = await client.get(f"/api/hostel/rooms/{single['id']}", headers=admin_headers)
    assert detail.json()["data"]["status"] == "FULL"
    assert detail.json()["data"]["occupied"] == 1


@pytest.mark.asyncio
async def test_maintenance_room_rejected(client: AsyncClient, admin_headers, room, student) -> None:
    await client.put(f"/api/hostel/rooms/{room['id']}", json={"status": "MAINTENANCE"}, headers=admin_headers)
    response = await client.post(
        "/api/hostel/allocations",
        json={"student_id": str(student.id), "room_id": room["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Room is MAINTENANCE and cannot be allocated"


@pytest.mark.asyncio
async def test_allocate_unknown_student(client: AsyncClient, admin_headers, room, admin) -> None:
    response = await client.post(
        "/api/hostel/allocations",
        json={"student_id": str(admin.id), "room_id": room["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Student not found"


@pytest.mark.asyncio
async def test_deallocate_releases_room(
    client: AsyncClient, admin_headers, room, allocated_student
) -> None:
    url = f"/api/hostel/allocations/{allocated_student['id']}/deallocate"
    response = await client.post(url, json={"remarks": "Semester ended"}, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "INACTIVE"
    assert data["checkout_at"] is not None
    assert data["remarks"] == "Semester ended"

    detail = await client.get(f"/api/hostel/rooms/{room['id']}", headers=admin_headers)
    assert detail.json()["data"]["occupied"] == 0

    again = await client.post(url, json={}, headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Allocation is not active"


@pytest.mark.asyncio
async def test_transfer_moves_occupancy(
    client: AsyncClient, admin_headers, building, room, allocated_student
) -> None:
    target = await _single_room(client, admin_headers, building)
    response = await client.put(
        f"/api/hostel/allocations/{allocated_student['id']}",
        json={"room_id": target["id"], "remarks": "Requested a single"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["room_id"] == target["id"]

    old = await client.get(f"/api/hostel/rooms/{room['id']}", headers=admin_headers)
    new = await client.get(f"/api/hostel/rooms/{target['id']}", headers=admin_headers)
    assert old.json()["data"]["occupied"] == 0
    assert new.json()["data"]["occupied"] == 1
    assert new.json()["data"]["status"] == "FULL"


@pytest.mark.asyncio
async def test_bulk_allocation_reports_failures(
    client: AsyncClient, admin_headers, room, student, other_student, db_session: AsyncSession
) -> None:
    response = await client.post(
        "/api/hostel/allocations/bulk",
        json={
            "allocations": [
                {"student_id": str(student.id), "room_id": room["id"]},
                {"student_id": str(student.id), "room_id": room["id"]},
                {"student_id": str(other_student.id), "room_id": room["id"]},
            ]
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["successful"] == 2
    assert data["failed"] == 1
    assert data["errors"][0]["error"] == "Student already has an active room allocation"

    stored = await db_session.scalar(select(Room).where(Room.id == UUID(room["id"])))
    assert stored.occupied == 2
    assert stored.status == "FULL"
    active = (
        await db_session.execute(select(RoomAllocation).where(RoomAllocation.status == "ACTIVE"))
    ).scalars().all()
    assert len(active) == 2


@pytest.mark.asyncio
async def test_allocation_history(
    client: AsyncClient, warden_headers, admin_headers, building, allocated_student, student
) -> None:
    await client.post(
        f"/api/hostel/allocations/{allocated_student['id']}/deallocate",
        json={},
        headers=admin_headers,
    )
    single = await _single_room(client, admin_headers, building)
    await client.post(
        "/api/hostel/allocations",
        json={"student_id": str(student.id), "room_id": single["id"]},
        headers=admin_headers,
    )

    response = await client.get(f"/api/hostel/allocations/student/{student.id}/history", headers=warden_headers)
    assert response.status_code == 200
    history = response.json()["data"]
    assert [h["status"] for h in history] == ["ACTIVE", "INACTIVE"]
    assert history[1]["room_number"] == "101"
    assert all(h["duration_days"] >= 0 for h in history)


@pytest.mark.asyncio
async def test_list_allocations_filters(
    client: AsyncClient, warden_headers, room, allocated_student
) -> None:
    response = await client.get(
        "/api/hostel/allocations",
        params={"status": "ACTIVE", "room_id": room["id"]},
        headers=warden_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 1
    assert data["allocations"][0]["id"] == allocated_student["id"]


@pytest.mark.asyncio
async def test_check_allocation_preflight(
    client: AsyncClient, admin_headers, room, allocated_student, student, other_student
) -> None:
    ok = await client.get(
        "/api/hostel/rooms/check-allocation",
        params={"room_id": room["id"], "student_id": str(other_student.id)},
        headers=admin_headers,
    )
    assert ok.status_code == 200
    assert ok.json()["data"]["can_allocate"] is True

    conflict = await client.get(
        "/api/hostel/rooms/check-allocation",
        params={"room_id": room["id"], "student_id": str(student.id)},
        headers=admin_headers,
    )
    assert conflict.status_code == 400
