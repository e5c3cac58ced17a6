import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

import hashlib
import hmac
import json
import uuid
from datetime import datetime, timedelta
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.models import User
from app.auth.security import hash_password
from app.core.config import settings
from app.core.models import Tenant
from app.core.payment_gateway import RazorpayGateway, get_payment_gateway
from app.db.session import Base, get_db
from app.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite://"
RAZORPAY_KEY_SECRET = "rzp_test_secret"


def today_iso() -> str:
    return datetime.utcnow().date().isoformat()


class FakeRazorpay:
    """In-memory Razorpay REST API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.down = False

    def capture(self, order_id: str, amount: Optional[int] = None, status: str = "captured") -> str:
        payment_id = f"pay_{uuid.uuid4().hex[:14]}"
        self.payments[payment_id] = {
            "id": payment_id,
            "entity": "payment",
            "order_id": order_id,
            "amount": self.orders[order_id]["amount"] if amount is None else amount,
            "currency": "INR",
            "status": status,
        }
        return payment_id

    @staticmethod
    def sign(order_id: str, payment_id: str) -> str:
        return hmac.new(
            RAZORPAY_KEY_SECRET.encode(),
            f"{order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).hexdigest()

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path.removeprefix("/v1")
        if request.method == "POST" and path == "/orders":
            body = json.loads(request.content)
            order_id = f"order_{uuid.uuid4().hex[:14]}"
            self.orders[order_id] = {"id": order_id, "entity": "order", "status": "created", **body}
            return httpx.Response(200, json=self.orders[order_id])

        if request.method == "GET" and path.startswith("/orders/") and path.endswith("/payments"):
            order_id = path.split("/")[2]
            items: List[Dict[str, Any]] = [p for p in self.payments.values() if p["order_id"] == order_id]
            return httpx.Response(200, json={"entity": "collection", "count": len(items), "items": items})

        if request.method == "GET" and path.startswith("/payments/"):
            payment = self.payments.get(path.split("/")[2])
            if payment is None:
                return httpx.Response(
                    400,
                    json={"error": {"code": "BAD_REQUEST_ERROR", "description": "The id provided does not exist"}},
                )
            return httpx.Response(200, json=payment)

        return httpx.Response(404, json={"error": {"description": "Not found"}})


@pytest.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and inspecting data directly; requests get their own."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def razorpay() -> FakeRazorpay:
    return FakeRazorpay()


@pytest.fixture()
async def client(session_factory, razorpay) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    gateway = RazorpayGateway(
        key_id="rzp_test_key",
        key_secret=RAZORPAY_KEY_SECRET,
        transport=httpx.MockTransport(razorpay.handler),
    )
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(session: AsyncSession, tenant: Tenant, role: str, email: str, name: str) -> User:
    user = User(
        tenant_id=tenant.id,
        full_name=name,
        email=email,
        password_hash=hash_password("Password123"),
        role=role,
        status="ACTIVE",
    )
    session.add(user)
    await session.commit()
    return user


def bearer_headers(user_id, tenant_id, role: str) -> Dict[str, str]:
    """Authorization header carrying a token shaped like the identity service's."""
    claims = {
        "user_id": str(user_id),
        "tenant_id": str(tenant_id),
        "role": role,
        "exp": datetime.utcnow() + timedelta(minutes=30),
    }
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


def _headers(user: User) -> Dict[str, str]:
    return bearer_headers(user.id, user.tenant_id, user.role)


@pytest.fixture()
def make_headers():
    return bearer_headers


@pytest.fixture()
async def tenant(db_session: AsyncSession) -> Tenant:
    tenant = Tenant(organization_code="HST-TEST", organization_name="Sunrise Hostel", status="ACTIVE")
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest.fixture()
async def admin(db_session: AsyncSession, tenant: Tenant) -> User:
    return await _make_user(db_session, tenant, "ADMIN", "admin@sunrise.example.com", "Asha Admin")


@pytest.fixture()
async def warden(db_session: AsyncSession, tenant: Tenant) -> User:
    return await _make_user(db_session, tenant, "WARDEN", "warden@sunrise.example.com", "Ravi Warden")


@pytest.fixture()
async def student(db_session: AsyncSession, tenant: Tenant) -> User:
    return await _make_user(db_session, tenant, "STUDENT", "meera@sunrise.example.com", "Meera Student")


@pytest.fixture()
async def other_student(db_session: AsyncSession, tenant: Tenant) -> User:
    return await _make_user(db_session, tenant, "STUDENT", "kiran@sunrise.example.com", "Kiran Student")


@pytest.fixture()
def admin_headers(admin: User) -> Dict[str, str]:
    return _headers(admin)


@pytest.fixture()
def warden_headers(warden: User) -> Dict[str, str]:
    return _headers(warden)


@pytest.fixture()
def student_headers(student: User) -> Dict[str, str]:
    return _headers(student)


@pytest.fixture()
def other_student_headers(other_student: User) -> Dict[str, str]:
    return _headers(other_student)


@pytest.fixture()
async def building(client: AsyncClient, admin_headers) -> Dict[str, Any]:
    response = await client.post(
        "/api/hostel/buildings",
        json={"name": "Block A", "code": "blk-a"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    building = response.json()["data"]

    response = await client.post(
        "/api/hostel/floors",
        json={"building_id": building["id"], "floor_number": 1},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return building


@pytest.fixture()
async def room(client: AsyncClient, admin_headers, building) -> Dict[str, Any]:
    response = await client.post(
        f"/api/hostel/buildings/{building['id']}/rooms",
        json={"room_number": "101", "floor_number": 1, "room_type": "DOUBLE", "capacity": 2},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture()
async def allocated_student(client: AsyncClient, admin_headers, room, student) -> Dict[str, Any]:
    response = await client.post(
        "/api/hostel/allocations",
        json={"student_id": str(student.id), "room_id": room["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture()
async def fee_settings(client: AsyncClient, admin_headers, room) -> Dict[str, Any]:
    response = await client.put(
        "/api/admin/payments/fee-settings",
        json={
            "monthly_fee": "4500",
            "water_charge": "300",
            "wifi_charge": "200",
            "effective_from": today_iso(),
        },
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]
