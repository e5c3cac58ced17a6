from datetime import datetime, timedelta
from uuid import UUID

import bcrypt
import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.config import settings
from app.core.models import Tenant


def _register_payload(**overrides):
    payload = {
        "organization_name": "Green Valley Hostel",
        "contact_email": "office@greenvalley.example.com",
        "admin_full_name": "Nisha Rao",
        "admin_email": "nisha@greenvalley.example.com",
        "password": "StrongPass123",
        "confirm_password": "StrongPass123",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_register_tenant_creates_admin(client: AsyncClient, db_session: AsyncSession) -> None:
    response = await client.post("/api/v1/tenants/register", json=_register_payload())
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Hostel registered successfully"

    data = body["data"]
    assert data["organization_code"].startswith("HST-")
    tenant_id = UUID(data["tenant_id"])

    tenant = (await db_session.execute(select(Tenant).where(Tenant.id == tenant_id))).scalar_one()
    assert tenant.organization_name == "Green Valley Hostel"

    admin = (await db_session.execute(select(User).where(User.id == UUID(data["admin_user_id"])))).scalar_one()
    assert admin.role == "ADMIN"
    assert admin.tenant_id == tenant_id
    assert bcrypt.checkpw(b"StrongPass123", admin.password_hash.encode())


@pytest.mark.asyncio
async def test_register_tenant_duplicate_email(client: AsyncClient) -> None:
    first = await client.post("/api/v1/tenants/register", json=_register_payload())
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/tenants/register",
        json=_register_payload(organization_name="Another Hostel"),
    )
    assert second.status_code == 409
    assert second.json() == {"success": False, "message": "Email is already in use"}


@pytest.mark.asyncio
async def test_register_tenant_password_mismatch(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/tenants/register",
        json=_register_payload(confirm_password="SomethingElse1"),
    )
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "do not match" in response.json()["message"]


@pytest.mark.asyncio
async def test_get_my_tenant(client: AsyncClient, admin_headers) -> None:
    response = await client.get("/api/v1/tenants/me", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["organization_code"] == "HST-TEST"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: AsyncClient, tenant) -> None:
    response = await client.get("/api/hostel/rooms")
    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_student_cannot_use_staff_routes(client: AsyncClient, student_headers) -> None:
    response = await client.get("/api/hostel/rooms", headers=student_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Insufficient permissions"


@pytest.mark.asyncio
async def test_create_student_with_room(client: AsyncClient, admin_headers, room) -> None:
    response = await client.post(
        "/api/hostel/students",
        json={"full_name": "Arjun Mehta", "email": "Arjun@Example.com", "room_id": room["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["email"] == "arjun@example.com"
    assert data["temporary_password"]
    assert data["current_room"]["room_number"] == "101"

    detail = await client.get(f"/api/hostel/students/{data['id']}", headers=admin_headers)
    assert detail.status_code == 200
    assert detail.json()["data"]["current_room"]["room_id"] == room["id"]
    assert "temporary_password" not in detail.json()["data"]

    room_after = await client.get(f"/api/hostel/rooms/{room['id']}", headers=admin_headers)
    assert room_after.json()["data"]["occupied"] == 1


@pytest.mark.asyncio
async def test_create_student_duplicate_email(client: AsyncClient, admin_headers, student) -> None:
    response = await client.post(
        "/api/hostel/students",
        json={"full_name": "Someone Else", "email": student.email},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["message"] == "User with this email already exists"


@pytest.mark.asyncio
async def test_tenants_are_isolated(client: AsyncClient, admin_headers, room, make_headers) -> None:
    registered = await client.post("/api/v1/tenants/register", json=_register_payload())
    assert registered.status_code == 201
    data = registered.json()["data"]

    other_headers = make_headers(data["admin_user_id"], data["tenant_id"], "ADMIN")

    response = await client.get(f"/api/hostel/rooms/{room['id']}", headers=other_headers)
    assert response.status_code == 404

    listing = await client.get("/api/hostel/rooms", headers=other_headers)
    assert listing.json()["data"]["total"] == 0


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client: AsyncClient, admin) -> None:
    claims = {
        "user_id": str(admin.id),
        "tenant_id": str(admin.tenant_id),
        "role": admin.role,
        "exp": datetime.utcnow() - timedelta(minutes=1),
    }
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    response = await client.get("/api/v1/tenants/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
