import logging
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.api.v1.floors.schemas import FloorResponse
from app.core.enums import AllocationStatus
from app.core.exceptions import ServiceError
from app.core.models import Building, Complaint, FeeStructure, Floor, Room, RoomAllocation, RoomAmenityMapping
from app.core.tenant_scope import TenantScope

from .schemas import (
    BuildingCreate,
    BuildingDetailResponse,
    BuildingListResponse,
    BuildingResponse,
    BuildingStatsResponse,
    BuildingUpdate,
)

logger = logging.getLogger(__name__)


async def create_building(scope: TenantScope, payload: BuildingCreate) -> BuildingResponse:
    building = Building(
        name=payload.name.strip(),
        code=payload.code.strip().upper(),
        address=payload.address,
        total_floors=0,
        total_rooms=0,
        occupied_rooms=0,
    )
    scope.add(building)
    try:
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("Building code already exists", status.HTTP_409_CONFLICT)
    await scope.db.refresh(building)
    logger.info("Building %s created (tenant=%s)", building.code, scope.tenant_id)
    return BuildingResponse.model_validate(building)


async def list_buildings(
    scope: TenantScope,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> BuildingListResponse:
    stmt = scope.select(Building)
    if search:
        term = f"%{search.strip()}%"
        stmt = stmt.where(Building.name.ilike(term) | Building.code.ilike(term))
    total = await scope.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    result = await scope.db.execute(
        stmt.order_by(Building.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return BuildingListResponse(
        buildings=[BuildingResponse.model_validate(b) for b in result.scalars().all()],
        total=total,
        page=page,
        total_pages=(total + limit - 1) // limit,
    )


async def get_building(scope: TenantScope, building_id: UUID) -> BuildingDetailResponse:
    result = await scope.db.execute(
        scope.select(Building).where(Building.id == building_id).options(selectinload(Building.floors))
    )
    building = result.scalar_one_or_none()
    if not building:
        raise ServiceError("Building not found", status.HTTP_404_NOT_FOUND)
    return BuildingDetailResponse(
        **BuildingResponse.model_validate(building).model_dump(),
        floors=[FloorResponse.model_validate(f) for f in building.floors],
    )


async def update_building(scope: TenantScope, building_id: UUID, payload: BuildingUpdate) -> BuildingResponse:
    building = await scope.get(Building, building_id)
    if not building:
        raise ServiceError("Building not found", status.HTTP_404_NOT_FOUND)
    if payload.name is not None:
        building.name = payload.name.strip()
    if payload.code is not None:
        building.code = payload.code.strip().upper()
    if payload.address is not None:
        building.address = payload.address or None
    try:
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("Building code already exists", status.HTTP_409_CONFLICT)
    await scope.db.refresh(building)
    return BuildingResponse.model_validate(building)


async def delete_building(scope: TenantScope, building_id: UUID) -> None:
    building = await scope.get(Building, building_id, for_update=True)
    if not building:
        raise ServiceError("Building not found", status.HTTP_404_NOT_FOUND)

    room_ids = select(Room.id).where(Room.building_id == building.id)
    active = await scope.db.scalar(
        scope.count(RoomAllocation).where(
            RoomAllocation.room_id.in_(room_ids),
            RoomAllocation.status == AllocationStatus.ACTIVE.value,
        )
    )
    if active:
        raise ServiceError(
            f"Cannot delete building: {active} student(s) are currently allocated to its rooms",
            status.HTTP_400_BAD_REQUEST,
        )

    await scope.db.execute(delete(RoomAllocation).where(RoomAllocation.room_id.in_(room_ids)))
    await scope.db.execute(delete(FeeStructure).where(FeeStructure.room_id.in_(room_ids)))
    await scope.db.execute(delete(RoomAmenityMapping).where(RoomAmenityMapping.room_id.in_(room_ids)))
    await scope.db.execute(
        update(Complaint)
        .where(Complaint.room_id.in_(room_ids))
        .values(room_id=None)
        .execution_options(synchronize_session=False)
    )
    await scope.db.execute(delete(Room).where(Room.building_id == building.id))
    await scope.db.execute(delete(Floor).where(Floor.building_id == building.id))
    await scope.db.execute(delete(Building).where(Building.id == building.id))
    await scope.db.commit()
    logger.info("Building %s deleted (tenant=%s)", building_id, scope.tenant_id)


async def get_building_stats(scope: TenantScope, building_id: UUID) -> BuildingStatsResponse:
    building = await scope.get(Building, building_id)
    if not building:
        raise ServiceError("Building not found", status.HTTP_404_NOT_FOUND)
    return BuildingStatsResponse(
        building_id=building.id,
        name=building.name,
        total_floors=building.total_floors,
        total_rooms=building.total_rooms,
        occupied_rooms=building.occupied_rooms,
        available_rooms=building.total_rooms - building.occupied_rooms,
        occupancy_rate=(
            round(building.occupied_rooms / building.total_rooms * 100, 2) if building.total_rooms else 0.0
        ),
    )
