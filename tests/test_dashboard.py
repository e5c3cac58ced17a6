from datetime import date, datetime
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Payment, PaymentDue


@pytest.fixture()
async def dues(client: AsyncClient, student_headers, allocated_student, fee_settings):
    response = await client.get("/api/student/payments/dues", headers=student_headers)
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.asyncio
async def test_dashboard_metrics(client: AsyncClient, admin_headers, student_headers, dues) -> None:
    submitted = await client.post(
        "/api/student/complaints",
        json={
            "category": "ELECTRICAL",
            "title": "Fan not working",
            "description": "The ceiling fan stopped working last night.",
        },
        headers=student_headers,
    )
    assert submitted.status_code == 201

    response = await client.get("/api/admin/dashboard/metrics", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]

    metrics = data["metrics"]
    assert metrics["total_rooms"] == 1
    assert metrics["occupied_rooms"] == 1
    assert metrics["available_rooms"] == 1
    assert metrics["total_capacity"] == 2
    assert metrics["occupied_beds"] == 1
    assert metrics["occupancy_rate"] == 50.0
    assert metrics["total_students"] == 1
    assert metrics["active_allocations"] == 1
    assert metrics["active_complaints"] == 1
    assert metrics["pending_payments"] == 4
    assert metrics["total_fee_collected"] == 0.0

    assert data["room_status"] == {"available": 1, "full": 0, "maintenance": 0, "inactive": 0}
    assert data["complaints"]["total"] == 1
    assert data["complaints"]["pending"] == 1
    assert data["fees"] == {
        "total_due": 20000.0,
        "total_collected": 0.0,
        "total_defaulters": 0,
        "collection_rate": 0.0,
    }


@pytest.mark.asyncio
async def test_dashboard_fee_figures(
    client: AsyncClient, admin_headers, db_session: AsyncSession, tenant, student, dues
) -> None:
    db_session.add(
        PaymentDue(
            tenant_id=tenant.id,
            student_id=student.id,
            month_year="2020-01",
            due_amount=Decimal("5000"),
            due_date=date(2020, 2, 10),
            status="OVERDUE",
        )
    )
    db_session.add(
        Payment(
            tenant_id=tenant.id,
            student_id=student.id,
            amount=Decimal("5000"),
            month_year="2019-12",
            status="PAID",
            payment_date=datetime.utcnow(),
        )
    )
    await db_session.commit()

    response = await client.get("/api/admin/dashboard/metrics", headers=admin_headers)
    fees = response.json()["data"]["fees"]
    assert fees["total_due"] == 25000.0
    assert fees["total_collected"] == 5000.0
    assert fees["total_defaulters"] == 1
    assert fees["collection_rate"] == 16.67


@pytest.mark.asyncio
async def test_occupancy_trend_tracks_checkouts(client: AsyncClient, admin_headers, allocated_student) -> None:
    response = await client.get("/api/admin/dashboard/occupancy-trend?months=3", headers=admin_headers)
    assert response.status_code == 200
    points = response.json()["data"]["points"]
    assert len(points) == 3
    current = points[-1]
    assert current["month"] == datetime.utcnow().strftime("%Y-%m")
    assert (current["allocations"], current["checkouts"], current["active_students"]) == (1, 0, 1)
    assert points[0]["allocations"] == 0

    await client.post(
        f"/api/hostel/allocations/{allocated_student['id']}/deallocate", json={}, headers=admin_headers
    )
    response = await client.get("/api/admin/dashboard/occupancy-trend?months=3", headers=admin_headers)
    current = response.json()["data"]["points"][-1]
    assert (current["allocations"], current["checkouts"], current["active_students"]) == (1, 1, 0)


@pytest.mark.asyncio
async def test_complaint_trend(client: AsyncClient, admin_headers, student_headers) -> None:
    for title in ("Broken window latch", "Water heater cold"):
        await client.post(
            "/api/student/complaints",
            json={"category": "MAINTENANCE", "title": title, "description": "Needs attention as soon as possible."},
            headers=student_headers,
        )

    response = await client.get("/api/admin/dashboard/complaint-trend?days=7", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert {s["status"]: s["count"] for s in data["by_status"]}["PENDING"] == 2
    assert len(data["daily"]) == 8
    assert data["daily"][-1] == {"day": datetime.utcnow().date().isoformat(), "count": 2}


@pytest.mark.asyncio
async def test_dashboard_is_admin_only(client: AsyncClient, warden_headers) -> None:
    response = await client.get("/api/admin/dashboard/metrics", headers=warden_headers)
    assert response.status_code == 403
