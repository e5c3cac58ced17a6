from datetime import date, datetime
from decimal import Decimal

import pytest
from httpx import AsyncClient
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.models import FeeAuditLog, PaymentDue


def _month_start(offset: int = 0) -> date:
    today = datetime.utcnow().date()
    index = today.month - 1 + offset
    return date(today.year + index // 12, index % 12 + 1, 1)


def _month(offset: int = 0) -> str:
    return _month_start(offset).strftime("%Y-%m")


@pytest.mark.asyncio
async def test_dues_require_active_allocation(client: AsyncClient, student_headers, room, fee_settings) -> None:
    response = await client.get("/api/student/payments/dues", headers=student_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Student does not have an active room allocation"


@pytest.mark.asyncio
async def test_dues_require_fee_structure(client: AsyncClient, student_headers, allocated_student) -> None:
    response = await client.get("/api/student/payments/dues", headers=student_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "No active fee structure found for the student's room"


@pytest.mark.asyncio
async def test_first_read_generates_four_months(
    client: AsyncClient, student_headers, allocated_student, fee_settings
) -> None:
    response = await client.get("/api/student/payments/dues", headers=student_headers)
    assert response.status_code == 200
    dues = response.json()["data"]

    assert [d["month_year"] for d in dues] == [_month(3), _month(2), _month(1), _month(0)]
    assert all(d["due_amount"] == 5000.0 for d in dues)
    assert all(d["status"] == "PENDING" for d in dues)
    assert dues[-1]["due_date"] == _month_start(1).replace(day=10).isoformat()


@pytest.mark.asyncio
async def test_dues_read_is_idempotent(
    client: AsyncClient, student_headers, allocated_student, fee_settings
) -> None:
    first = await client.get("/api/student/payments/dues", headers=student_headers)
    second = await client.get("/api/student/payments/dues", headers=student_headers)
    assert first.json() == second.json()
    assert len(second.json()["data"]) == 4


@pytest.mark.asyncio
async def test_fee_change_reprices_unpaid_dues(
    client: AsyncClient,
    admin_headers,
    student_headers,
    room,
    allocated_student,
    fee_settings,
    student,
    db_session: AsyncSession,
) -> None:
    await client.get("/api/student/payments/dues", headers=student_headers)
    await db_session.execute(
        update(PaymentDue)
        .where(PaymentDue.student_id == student.id, PaymentDue.month_year == _month(0))
        .values(status="PAID", paid_amount=Decimal("5000"))
    )
    await db_session.commit()

    changed = await client.put(
        f"/api/hostel/rooms/{room['id']}/fee-structure",
        json={"monthly_fee": "6000", "effective_from": datetime.utcnow().date().isoformat()},
        headers=admin_headers,
    )
    assert changed.status_code == 200

    response = await client.get("/api/student/payments/dues", headers=student_headers)
    amounts = {d["month_year"]: (d["due_amount"], d["status"]) for d in response.json()["data"]}
    assert amounts[_month(0)] == (5000.0, "PAID")
    for offset in (1, 2, 3):
        assert amounts[_month(offset)] == (6000.0, "PENDING")

    repriced = (
        await db_session.execute(select(FeeAuditLog).where(FeeAuditLog.action_type == "REPRICE"))
    ).scalars().all()
    assert len(repriced) == 3
    assert Decimal(repriced[0].old_value["due_amount"]) == Decimal("5000")
    assert Decimal(repriced[0].new_value["due_amount"]) == Decimal("6000")


@pytest.mark.asyncio
async def test_past_due_marked_overdue(
    client: AsyncClient,
    student_headers,
    allocated_student,
    fee_settings,
    student,
    tenant,
    db_session: AsyncSession,
) -> None:
    db_session.add(
        PaymentDue(
            tenant_id=tenant.id,
            student_id=student.id,
            month_year="2020-01",
            due_amount=Decimal("5000"),
            due_date=date(2020, 2, 10),
            status="PENDING",
        )
    )
    await db_session.commit()

    response = await client.get("/api/student/payments/dues", headers=student_headers)
    dues = response.json()["data"]
    assert len(dues) == 1
    assert dues[0]["status"] == "OVERDUE"


@pytest.mark.asyncio
async def test_admin_reprice_endpoint(
    client: AsyncClient,
    admin_headers,
    student_headers,
    room,
    allocated_student,
    fee_settings,
    student,
) -> None:
    await client.get("/api/student/payments/dues", headers=student_headers)
    await client.put(
        f"/api/hostel/rooms/{room['id']}/fee-structure",
        json={"monthly_fee": "5200", "effective_from": datetime.utcnow().date().isoformat()},
        headers=admin_headers,
    )

    response = await client.post(f"/api/admin/payments/dues/{student.id}/reprice", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["monthly_fee"] == 5200.0
    assert data["repriced_count"] == 4
    assert {d["due_amount"] for d in data["dues"]} == {5200.0}

    again = await client.post(f"/api/admin/payments/dues/{student.id}/reprice", headers=admin_headers)
    assert again.json()["data"]["repriced_count"] == 0


@pytest.mark.asyncio
async def test_admin_reprice_unknown_student(client: AsyncClient, admin_headers, admin) -> None:
    response = await client.post(f"/api/admin/payments/dues/{admin.id}/reprice", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.parametrize("day", ["0", "29", "31"])
def test_due_day_must_exist_in_every_month(monkeypatch, day: str) -> None:
    monkeypatch.setenv("DUE_DAY_OF_MONTH", day)
    with pytest.raises(ValidationError):
        Settings()


def test_due_day_upper_bound_accepted(monkeypatch) -> None:
    monkeypatch.setenv("DUE_DAY_OF_MONTH", "28")
    assert Settings().due_day_of_month == 28
