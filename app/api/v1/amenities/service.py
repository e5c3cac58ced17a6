"""Amenity catalogue per tenant and the amenities present in each room."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ServiceError
from app.core.models import Room, RoomAmenity, RoomAmenityMapping
from app.core.tenant_scope import TenantScope

from .schemas import (
    AmenityCreate,
    AmenityDetailResponse,
    AmenityResponse,
    AmenityRoomBrief,
    AmenityUpdate,
    RoomAmenitiesResponse,
    RoomAmenityAdd,
    RoomAmenityBulkAdd,
    RoomAmenityBulkAddResponse,
    RoomAmenityItem,
    RoomAmenityMappingResponse,
)

logger = logging.getLogger(__name__)


async def _get_amenity_or_404(scope: TenantScope, amenity_id: UUID) -> RoomAmenity:
    amenity = await scope.get(RoomAmenity, amenity_id)
    if not amenity:
        raise ServiceError("Amenity not found", status.HTTP_404_NOT_FOUND)
    return amenity


async def _get_room_or_404(scope: TenantScope, room_id: UUID) -> Room:
    room = await scope.get(Room, room_id)
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)
    return room


async def _name_taken(scope: TenantScope, name: str, exclude_id: Optional[UUID] = None) -> bool:
    stmt = scope.count(RoomAmenity).where(func.lower(RoomAmenity.amenity_name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(RoomAmenity.id != exclude_id)
    return bool(await scope.db.scalar(stmt))


async def _already_mapped(scope: TenantScope, room_id: UUID, amenity_id: UUID) -> bool:
    return bool(
        await scope.db.scalar(
            scope.count(RoomAmenityMapping).where(
                RoomAmenityMapping.room_id == room_id,
                RoomAmenityMapping.amenity_id == amenity_id,
            )
        )
    )


def _mapping_response(mapping: RoomAmenityMapping, room: Room, amenity: RoomAmenity) -> RoomAmenityMappingResponse:
    return RoomAmenityMappingResponse(
        id=mapping.id,
        room_id=room.id,
        room_number=room.room_number,
        amenity_id=amenity.id,
        amenity_name=amenity.amenity_name,
        created_at=mapping.created_at,
    )


async def create_amenity(scope: TenantScope, payload: AmenityCreate) -> AmenityResponse:
    name = payload.amenity_name.strip()
    if await _name_taken(scope, name):
        raise ServiceError("Amenity already exists", status.HTTP_409_CONFLICT)

    amenity = RoomAmenity(amenity_name=name, description=payload.description, icon=payload.icon)
    scope.add(amenity)
    try:
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("Amenity already exists", status.HTTP_409_CONFLICT)
    await scope.db.refresh(amenity)
    logger.info("Amenity %r created (tenant=%s)", amenity.amenity_name, scope.tenant_id)
    return AmenityResponse.model_validate(amenity)


async def _rooms_for_amenities(scope: TenantScope, amenity_ids: List[UUID]) -> dict:
    rooms: dict = {amenity_id: [] for amenity_id in amenity_ids}
    if not amenity_ids:
        return rooms
    result = await scope.db.execute(
        scope.select(RoomAmenityMapping, RoomAmenityMapping, Room)
        .join(Room, Room.id == RoomAmenityMapping.room_id)
        .where(RoomAmenityMapping.amenity_id.in_(amenity_ids))
        .order_by(Room.room_number)
    )
    for mapping, room in result.all():
        rooms[mapping.amenity_id].append(
            AmenityRoomBrief(
                mapping_id=mapping.id,
                room_id=room.id,
                room_number=room.room_number,
                floor_id=room.floor_id,
                building_id=room.building_id,
            )
        )
    return rooms


async def list_amenities(scope: TenantScope) -> List[AmenityDetailResponse]:
    result = await scope.db.execute(
        scope.select(RoomAmenity).order_by(RoomAmenity.created_at.desc(), RoomAmenity.amenity_name)
    )
    amenities = result.scalars().all()
    rooms = await _rooms_for_amenities(scope, [a.id for a in amenities])
    return [
        AmenityDetailResponse(**AmenityResponse.model_validate(a).model_dump(), rooms=rooms[a.id])
        for a in amenities
    ]


async def get_amenity(scope: TenantScope, amenity_id: UUID) -> AmenityDetailResponse:
    amenity = await _get_amenity_or_404(scope, amenity_id)
    rooms = await _rooms_for_amenities(scope, [amenity.id])
    return AmenityDetailResponse(**AmenityResponse.model_validate(amenity).model_dump(), rooms=rooms[amenity.id])


async def update_amenity(scope: TenantScope, amenity_id: UUID, payload: AmenityUpdate) -> AmenityResponse:
    amenity = await _get_amenity_or_404(scope, amenity_id)
    if payload.amenity_name is not None:
        name = payload.amenity_name.strip()
        if await _name_taken(scope, name, exclude_id=amenity.id):
            raise ServiceError("Amenity already exists", status.HTTP_409_CONFLICT)
        amenity.amenity_name = name
    if payload.description is not None:
        amenity.description = payload.description or None
    if payload.icon is not None:
        amenity.icon = payload.icon or None
    await scope.db.commit()
    await scope.db.refresh(amenity)
    return AmenityResponse.model_validate(amenity)


async def delete_amenity(scope: TenantScope, amenity_id: UUID) -> None:
    amenity = await _get_amenity_or_404(scope, amenity_id)
    await scope.db.execute(delete(RoomAmenityMapping).where(RoomAmenityMapping.amenity_id == amenity.id))
    await scope.db.execute(delete(RoomAmenity).where(RoomAmenity.id == amenity.id))
    await scope.db.commit()
    logger.info("Amenity %s deleted (tenant=%s)", amenity_id, scope.tenant_id)


async def add_amenity_to_room(scope: TenantScope, payload: RoomAmenityAdd) -> RoomAmenityMappingResponse:
    room = await _get_room_or_404(scope, payload.room_id)
    amenity = await _get_amenity_or_404(scope, payload.amenity_id)
    if await _already_mapped(scope, room.id, amenity.id):
        raise ServiceError(
            f'Amenity "{amenity.amenity_name}" already added to Room {room.room_number}',
            status.HTTP_409_CONFLICT,
        )

    mapping = RoomAmenityMapping(room_id=room.id, amenity_id=amenity.id)
    scope.add(mapping)
    try:
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError(
            f'Amenity "{amenity.amenity_name}" already added to Room {room.room_number}',
            status.HTTP_409_CONFLICT,
        )
    return _mapping_response(mapping, room, amenity)


async def bulk_add_amenities_to_room(scope: TenantScope, payload: RoomAmenityBulkAdd) -> RoomAmenityBulkAddResponse:
    """Unknown or already present amenities are reported; the rest are added in one commit."""
    room = await _get_room_or_404(scope, payload.room_id)
    added: List[RoomAmenityMappingResponse] = []
    errors: List[str] = []

    for amenity_id in payload.amenity_ids:
        amenity = await scope.get(RoomAmenity, amenity_id)
        if not amenity:
            errors.append(f"Amenity {amenity_id} not found")
            continue
        if await _already_mapped(scope, room.id, amenity.id):
            errors.append(f'Amenity "{amenity.amenity_name}" already added')
            continue
        mapping = RoomAmenityMapping(room_id=room.id, amenity_id=amenity.id)
        scope.add(mapping)
        await scope.db.flush()
        added.append(_mapping_response(mapping, room, amenity))

    await scope.db.commit()
    logger.info("Room %s: %d amenities added, %d skipped", room.room_number, len(added), len(errors))
    return RoomAmenityBulkAddResponse(added=added, errors=errors)


async def remove_amenity_from_room(scope: TenantScope, mapping_id: UUID) -> str:
    result = await scope.db.execute(
        scope.select(RoomAmenityMapping, RoomAmenityMapping, Room.room_number, RoomAmenity.amenity_name)
        .join(Room, Room.id == RoomAmenityMapping.room_id)
        .join(RoomAmenity, RoomAmenity.id == RoomAmenityMapping.amenity_id)
        .where(RoomAmenityMapping.id == mapping_id)
    )
    row = result.first()
    if not row:
        raise ServiceError("Amenity mapping not found", status.HTTP_404_NOT_FOUND)

    mapping, room_number, amenity_name = row
    await scope.db.execute(delete(RoomAmenityMapping).where(RoomAmenityMapping.id == mapping.id))
    await scope.db.commit()
    return f'Amenity "{amenity_name}" removed from Room {room_number} successfully'


async def get_room_amenities(scope: TenantScope, room_id: UUID) -> RoomAmenitiesResponse:
    room = await _get_room_or_404(scope, room_id)
    result = await scope.db.execute(
        scope.select(RoomAmenityMapping, RoomAmenityMapping, RoomAmenity)
        .join(RoomAmenity, RoomAmenity.id == RoomAmenityMapping.amenity_id)
        .where(RoomAmenityMapping.room_id == room.id)
        .order_by(RoomAmenity.amenity_name)
    )
    items = [
        RoomAmenityItem(mapping_id=mapping.id, amenity=AmenityResponse.model_validate(amenity))
        for mapping, amenity in result.all()
    ]
    return RoomAmenitiesResponse(
        room_id=room.id,
        room_number=room.room_number,
        amenities_count=len(items),
        amenities=items,
    )
