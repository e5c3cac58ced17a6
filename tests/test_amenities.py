import uuid

import pytest
from httpx import AsyncClient


async def _create_amenity(client: AsyncClient, headers, name: str, **extra):
    return await client.post("/api/hostel/amenities", json={"amenity_name": name, **extra}, headers=headers)


@pytest.fixture()
async def wifi(client: AsyncClient, admin_headers):
    response = await _create_amenity(client, admin_headers, "Wi-Fi", icon="wifi", description="5 GHz router")
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture()
async def cooler(client: AsyncClient, admin_headers):
    response = await _create_amenity(client, admin_headers, "Air Cooler")
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.asyncio
async def test_create_amenity_rejects_duplicate_name(client: AsyncClient, admin_headers, wifi) -> None:
    assert wifi["amenity_name"] == "Wi-Fi"
    assert wifi["icon"] == "wifi"

    response = await _create_amenity(client, admin_headers, "wi-fi")
    assert response.status_code == 409
    assert response.json()["message"] == "Amenity already exists"


@pytest.mark.asyncio
async def test_warden_cannot_create_amenity(client: AsyncClient, warden_headers) -> None:
    response = await _create_amenity(client, warden_headers, "Geyser")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_add_amenity_to_room(client: AsyncClient, admin_headers, student_headers, room, wifi) -> None:
    response = await client.post(
        "/api/hostel/amenities/room/add",
        json={"room_id": room["id"], "amenity_id": wifi["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == 'Amenity "Wi-Fi" added to Room 101 successfully'
    assert body["data"]["room_number"] == "101"

    again = await client.post(
        "/api/hostel/amenities/room/add",
        json={"room_id": room["id"], "amenity_id": wifi["id"]},
        headers=admin_headers,
    )
    assert again.status_code == 409
    assert again.json()["message"] == 'Amenity "Wi-Fi" already added to Room 101'

    # Students can see what their room offers
    listing = await client.get(f"/api/hostel/rooms/{room['id']}/amenities", headers=student_headers)
    assert listing.status_code == 200
    data = listing.json()["data"]
    assert data["amenities_count"] == 1
    assert data["amenities"][0]["amenity"]["amenity_name"] == "Wi-Fi"

    detail = await client.get(f"/api/hostel/amenities/{wifi['id']}", headers=admin_headers)
    assert [r["room_number"] for r in detail.json()["data"]["rooms"]] == ["101"]


@pytest.mark.asyncio
async def test_add_amenity_to_unknown_room(client: AsyncClient, admin_headers, wifi) -> None:
    response = await client.post(
        "/api/hostel/amenities/room/add",
        json={"room_id": str(uuid.uuid4()), "amenity_id": wifi["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Room not found"


@pytest.mark.asyncio
async def test_bulk_add_reports_skipped_amenities(
    client: AsyncClient, admin_headers, room, wifi, cooler
) -> None:
    await client.post(
        "/api/hostel/amenities/room/add",
        json={"room_id": room["id"], "amenity_id": wifi["id"]},
        headers=admin_headers,
    )
    missing = str(uuid.uuid4())
    response = await client.post(
        "/api/hostel/amenities/room/bulk-add",
        json={"room_id": room["id"], "amenity_ids": [wifi["id"], cooler["id"], missing]},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert [m["amenity_name"] for m in data["added"]] == ["Air Cooler"]
    assert data["errors"] == ['Amenity "Wi-Fi" already added', f"Amenity {missing} not found"]

    listing = await client.get(f"/api/hostel/rooms/{room['id']}/amenities", headers=admin_headers)
    assert listing.json()["data"]["amenities_count"] == 2


@pytest.mark.asyncio
async def test_remove_amenity_from_room(client: AsyncClient, admin_headers, room, wifi) -> None:
    added = await client.post(
        "/api/hostel/amenities/room/add",
        json={"room_id": room["id"], "amenity_id": wifi["id"]},
        headers=admin_headers,
    )
    mapping_id = added.json()["data"]["id"]

    response = await client.delete(f"/api/hostel/amenities/room/remove/{mapping_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["message"] == 'Amenity "Wi-Fi" removed from Room 101 successfully'

    response = await client.delete(f"/api/hostel/amenities/room/remove/{mapping_id}", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Amenity mapping not found"


@pytest.mark.asyncio
async def test_update_and_delete_amenity(client: AsyncClient, admin_headers, room, wifi, cooler) -> None:
    clash = await client.put(
        f"/api/hostel/amenities/{cooler['id']}", json={"amenity_name": "Wi-Fi"}, headers=admin_headers
    )
    assert clash.status_code == 409

    renamed = await client.put(
        f"/api/hostel/amenities/{wifi['id']}", json={"amenity_name": "Wi-Fi 6"}, headers=admin_headers
    )
    assert renamed.status_code == 200
    assert renamed.json()["data"]["amenity_name"] == "Wi-Fi 6"

    await client.post(
        "/api/hostel/amenities/room/add",
        json={"room_id": room["id"], "amenity_id": wifi["id"]},
        headers=admin_headers,
    )
    deleted = await client.delete(f"/api/hostel/amenities/{wifi['id']}", headers=admin_headers)
    assert deleted.status_code == 200

    missing = await client.get(f"/api/hostel/amenities/{wifi['id']}", headers=admin_headers)
    assert missing.status_code == 404
    listing = await client.get(f"/api/hostel/rooms/{room['id']}/amenities", headers=admin_headers)
    assert listing.json()["data"]["amenities_count"] == 0


@pytest.mark.asyncio
async def test_deleting_room_drops_its_amenities(client: AsyncClient, admin_headers, room, wifi) -> None:
    await client.post(
        "/api/hostel/amenities/room/add",
        json={"room_id": room["id"], "amenity_id": wifi["id"]},
        headers=admin_headers,
    )
    response = await client.delete(f"/api/hostel/rooms/{room['id']}", headers=admin_headers)
    assert response.status_code == 200

    listing = await client.get("/api/hostel/amenities", headers=admin_headers)
    assert listing.status_code == 200
    assert listing.json()["data"][0]["rooms"] == []
