from datetime import datetime, timedelta
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import FeeAuditLog, FeeStructure


def _today() -> str:
    return datetime.utcnow().date().isoformat()


@pytest.mark.asyncio
async def test_defaults_when_nothing_configured(client: AsyncClient, admin_headers) -> None:
    response = await client.get("/api/admin/payments/fee-settings", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["is_default"] is True
    assert data["monthly_fee"] == 5000.0
    assert data["total_monthly_fee"] == 5000.0
    assert data["room_type"] == "ALL"
    assert data["effective_from"] == _today()


@pytest.mark.asyncio
async def test_update_fee_settings_versions_rows(
    client: AsyncClient, admin_headers, room, fee_settings, db_session: AsyncSession
) -> None:
    assert fee_settings["rooms_updated"] == 1
    assert fee_settings["monthly_fee"] == 4500.0
    assert fee_settings["total_monthly_fee"] == 5000.0
    assert fee_settings["is_default"] is False

    response = await client.put(
        "/api/admin/payments/fee-settings",
        json={"monthly_fee": "5500", "effective_from": _today()},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["total_monthly_fee"] == 5500.0

    rows = (
        await db_session.execute(select(FeeStructure).where(FeeStructure.room_id == UUID(room["id"])))
    ).scalars().all()
    assert len(rows) == 2
    current = [r for r in rows if r.effective_to is None]
    assert len(current) == 1
    assert float(current[0].total_monthly_fee) == 5500.0

    actions = (await db_session.execute(select(FeeAuditLog.action_type))).scalars().all()
    assert sorted(actions) == ["CREATE", "CREATE", "SUPERSEDE"]

    settings = await client.get("/api/admin/payments/fee-settings", headers=admin_headers)
    assert settings.json()["data"]["total_monthly_fee"] == 5500.0


@pytest.mark.asyncio
async def test_effective_date_in_past_rejected(client: AsyncClient, admin_headers, room) -> None:
    yesterday = (datetime.utcnow().date() - timedelta(days=1)).isoformat()
    response = await client.put(
        "/api/admin/payments/fee-settings",
        json={"monthly_fee": "5000", "effective_from": yesterday},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Effective date cannot be in the past"


@pytest.mark.asyncio
async def test_fee_must_be_positive(client: AsyncClient, admin_headers, room) -> None:
    response = await client.put(
        "/api/admin/payments/fee-settings",
        json={"monthly_fee": "0", "effective_from": _today()},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_without_rooms_rejected(client: AsyncClient, admin_headers) -> None:
    response = await client.put(
        "/api/admin/payments/fee-settings",
        json={"monthly_fee": "5000", "effective_from": _today()},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"].startswith("No rooms found for this tenant")


@pytest.mark.asyncio
async def test_warden_cannot_change_fees(client: AsyncClient, warden_headers, room) -> None:
    response = await client.put(
        "/api/admin/payments/fee-settings",
        json={"monthly_fee": "5000", "effective_from": _today()},
        headers=warden_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_room_fee_structure_history(client: AsyncClient, admin_headers, room, fee_settings) -> None:
    url = f"/api/hostel/rooms/{room['id']}/fee-structure"
    updated = await client.put(
        url,
        json={"monthly_fee": "6000", "electricity_charge": "250.50", "effective_from": _today()},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["total_monthly_fee"] == 6250.5
    assert updated.json()["data"]["room_type"] == "DOUBLE"

    response = await client.get(url, headers=admin_headers)
    data = response.json()["data"]
    assert data["room_number"] == "101"
    assert data["current"]["total_monthly_fee"] == 6250.5
    assert len(data["history"]) == 2
    assert sum(1 for h in data["history"] if h["effective_to"] is None) == 1


@pytest.mark.asyncio
async def test_room_fee_for_unknown_room(client: AsyncClient, admin_headers) -> None:
    response = await client.get(
        "/api/hostel/rooms/00000000-0000-0000-0000-000000000000/fee-structure",
        headers=admin_headers,
    )
    assert response.status_code == 404
