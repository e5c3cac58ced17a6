import logging
from typing import List
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.api.v1.rooms.service import recount_floor_and_building
from app.core.exceptions import ServiceError
from app.core.models import Building, Floor, Room
from app.core.tenant_scope import TenantScope

from .schemas import FloorCreate, FloorResponse, FloorStatsResponse, FloorUpdate

logger = logging.getLogger(__name__)


async def _get_floor_or_404(scope: TenantScope, floor_id: UUID) -> Floor:
    floor = await scope.get(Floor, floor_id)
    if not floor:
        raise ServiceError("Floor not found", status.HTTP_404_NOT_FOUND)
    return floor


async def create_floor(scope: TenantScope, payload: FloorCreate) -> FloorResponse:
    building = await scope.get(Building, payload.building_id)
    if not building:
        raise ServiceError("Building not found", status.HTTP_404_NOT_FOUND)

    floor = Floor(
        building_id=building.id,
        floor_number=payload.floor_number,
        floor_name=(payload.floor_name or "").strip() or f"Floor {payload.floor_number}",
        description=payload.description,
    )
    scope.add(floor)
    try:
        await scope.db.flush()
        await recount_floor_and_building(scope, floor.id, building.id)
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("Floor number already exists in this building", status.HTTP_409_CONFLICT)

    await scope.db.refresh(floor)
    logger.info("Floor %s created in building %s", floor.floor_number, building.code)
    return FloorResponse.model_validate(floor)


async def list_floors(scope: TenantScope, building_id: UUID) -> List[FloorResponse]:
    if not await scope.get(Building, building_id):
        raise ServiceError("Building not found", status.HTTP_404_NOT_FOUND)
    result = await scope.db.execute(
        scope.select(Floor).where(Floor.building_id == building_id).order_by(Floor.floor_number)
    )
    return [FloorResponse.model_validate(f) for f in result.scalars().all()]


async def get_floor(scope: TenantScope, floor_id: UUID) -> FloorResponse:
    return FloorResponse.model_validate(await _get_floor_or_404(scope, floor_id))


async def update_floor(scope: TenantScope, floor_id: UUID, payload: FloorUpdate) -> FloorResponse:
    floor = await _get_floor_or_404(scope, floor_id)
    if payload.floor_number is not None:
        floor.floor_number = payload.floor_number
    if payload.floor_name is not None:
        floor.floor_name = payload.floor_name.strip()
    if payload.description is not None:
        floor.description = payload.description or None
    try:
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("Floor number already exists in this building", status.HTTP_409_CONFLICT)
    await scope.db.refresh(floor)
    return FloorResponse.model_validate(floor)


async def delete_floor(scope: TenantScope, floor_id: UUID) -> None:
    floor = await _get_floor_or_404(scope, floor_id)
    rooms = await scope.db.scalar(select(func.count(Room.id)).where(Room.floor_id == floor.id))
    if rooms:
        raise ServiceError(
            f"Cannot delete floor with {rooms} room(s). Delete the rooms first.",
            status.HTTP_400_BAD_REQUEST,
        )
    building_id = floor.building_id
    await scope.db.delete(floor)
    await scope.db.flush()
    building_floors = await scope.db.scalar(select(func.count(Floor.id)).where(Floor.building_id == building_id))
    building = await scope.get(Building, building_id)
    building.total_floors = building_floors
    await scope.db.commit()
    logger.info("Floor %s deleted", floor_id)


async def get_floor_stats(scope: TenantScope, floor_id: UUID) -> FloorStatsResponse:
    floor = await _get_floor_or_404(scope, floor_id)
    return FloorStatsResponse(
        floor_id=floor.id,
        floor_number=floor.floor_number,
        floor_name=floor.floor_name,
        total_rooms=floor.total_rooms,
        occupied_rooms=floor.occupied_rooms,
        available_rooms=floor.total_rooms - floor.occupied_rooms,
        occupancy_rate=round(floor.occupied_rooms / floor.total_rooms * 100, 2) if floor.total_rooms else 0.0,
    )
