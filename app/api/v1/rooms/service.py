"""Room inventory: CRUD, bulk creation, occupancy and the denormalized floor/building counters."""

import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.auth.models import User
from app.core.enums import AllocationStatus, ComplaintStatus, RoomStatus, UserRole
from app.core.exceptions import ServiceError
from app.core.models import Building, Complaint, FeeStructure, Floor, Room, RoomAllocation, RoomAmenityMapping
from app.core.tenant_scope import TenantScope

from .schemas import (
    ActiveAllocationBrief,
    AllocationCheckResponse,
    BuildingSummary,
    BulkRoomCreate,
    BulkRoomCreateResponse,
    FloorSummary,
    OccupancyByType,
    OccupancySummary,
    RoomCreate,
    RoomDetailResponse,
    RoomListResponse,
    RoomOccupancyItem,
    RoomOccupancyResponse,
    RoomResponse,
    RoomStatsResponse,
    RoomUpdate,
    StudentBrief,
)

logger = logging.getLogger(__name__)

UNALLOCATABLE_STATUSES = (RoomStatus.MAINTENANCE.value, RoomStatus.INACTIVE.value)
OPEN_COMPLAINT_EXCLUDED = (
    ComplaintStatus.RESOLVED.value,
    ComplaintStatus.CLOSED.value,
    ComplaintStatus.REJECTED.value,
)


def derive_room_status(current: str, occupied: int, capacity: int) -> str:
    """FULL exactly when occupied == capacity, unless the room is out of service."""
    if current in UNALLOCATABLE_STATUSES:
        return current
    return RoomStatus.FULL.value if occupied >= capacity else RoomStatus.AVAILABLE.value


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


def room_to_response(room: Room, floor_number: Optional[int] = None) -> RoomResponse:
    return RoomResponse(
        id=room.id,
        building_id=room.building_id,
        floor_id=room.floor_id,
        floor_number=floor_number,
        room_number=room.room_number,
        room_type=room.room_type,
        capacity=room.capacity,
        occupied=room.occupied,
        available=room.capacity - room.occupied,
        status=room.status,
        description=room.description,
        created_at=room.created_at,
        updated_at=room.updated_at,
    )


async def recount_floor_and_building(scope: TenantScope, floor_id: UUID, building_id: UUID) -> None:
    """Recompute total_rooms / occupied_rooms of a floor and its building inside the caller's transaction."""
    db = scope.db
    floor_total = await db.scalar(select(func.count(Room.id)).where(Room.floor_id == floor_id))
    floor_occupied = await db.scalar(
        select(func.count(Room.id)).where(Room.floor_id == floor_id, Room.occupied > 0)
    )
    building_total = await db.scalar(select(func.count(Room.id)).where(Room.building_id == building_id))
    building_occupied = await db.scalar(
        select(func.count(Room.id)).where(Room.building_id == building_id, Room.occupied > 0)
    )
    building_floors = await db.scalar(select(func.count(Floor.id)).where(Floor.building_id == building_id))

    await db.execute(
        scope.update(Floor)
        .where(Floor.id == floor_id)
        .values(total_rooms=floor_total, occupied_rooms=floor_occupied)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        scope.update(Building)
        .where(Building.id == building_id)
        .values(total_rooms=building_total, occupied_rooms=building_occupied, total_floors=building_floors)
        .execution_options(synchronize_session=False)
    )


async def _get_building_or_404(scope: TenantScope, building_id: UUID) -> Building:
    building = await scope.get(Building, building_id)
    if not building:
        raise ServiceError("Building not found", status.HTTP_404_NOT_FOUND)
    return building


async def _get_floor_by_number(scope: TenantScope, building_id: UUID, floor_number: int) -> Floor:
    result = await scope.db.execute(
        scope.select(Floor).where(Floor.building_id == building_id, Floor.floor_number == floor_number)
    )
    floor = result.scalar_one_or_none()
    if not floor:
        raise ServiceError("Floor not found in this building", status.HTTP_404_NOT_FOUND)
    return floor


async def _room_number_taken(scope: TenantScope, room_number: str, exclude_id: Optional[UUID] = None) -> bool:
    stmt = scope.select(Room, Room.id).where(Room.room_number == room_number)
    if exclude_id is not None:
        stmt = stmt.where(Room.id != exclude_id)
    result = await scope.db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def create_room(scope: TenantScope, building_id: UUID, payload: RoomCreate) -> RoomResponse:
    await _get_building_or_404(scope, building_id)
    floor = await _get_floor_by_number(scope, building_id, payload.floor_number)

    room_number = payload.room_number.strip()
    if await _room_number_taken(scope, room_number):
        raise ServiceError("Room number already exists", status.HTTP_409_CONFLICT)

    room = Room(
        building_id=building_id,
        floor_id=floor.id,
        room_number=room_number,
        room_type=payload.room_type.value,
        capacity=payload.capacity,
        occupied=0,
        status=RoomStatus.AVAILABLE.value,
        description=payload.description,
    )
    scope.add(room)
    try:
        await scope.db.flush()
        await recount_floor_and_building(scope, floor.id, building_id)
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("Room number already exists", status.HTTP_409_CONFLICT)

    await scope.db.refresh(room)
    logger.info("Room %s created on floor %s (tenant=%s)", room.room_number, floor.floor_number, scope.tenant_id)
    return room_to_response(room, floor.floor_number)


async def get_room_by_id(scope: TenantScope, room_id: UUID) -> RoomDetailResponse:
    result = await scope.db.execute(
        scope.select(Room)
        .where(Room.id == room_id)
        .options(selectinload(Room.floor), selectinload(Room.building))
    )
    room = result.scalar_one_or_none()
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)

    alloc_rows = await scope.db.execute(
        scope.select(RoomAllocation, RoomAllocation, User)
        .join(User, User.id == RoomAllocation.student_id)
        .where(
            RoomAllocation.room_id == room.id,
            RoomAllocation.status == AllocationStatus.ACTIVE.value,
        )
        .order_by(RoomAllocation.allocated_at)
    )
    active = [
        ActiveAllocationBrief(
            id=alloc.id,
            allocated_at=alloc.allocated_at,
            student=StudentBrief(id=user.id, full_name=user.full_name, email=user.email, mobile=user.mobile),
        )
        for alloc, user in alloc_rows.all()
    ]

    fee = await scope.db.scalar(
        scope.select(FeeStructure, FeeStructure.total_monthly_fee)
        .where(FeeStructure.room_id == room.id, FeeStructure.effective_to.is_(None))
        .order_by(FeeStructure.effective_from.desc())
        .limit(1)
    )

    base = room_to_response(room, room.floor.floor_number)
    return RoomDetailResponse(
        **base.model_dump(),
        floor=FloorSummary(id=room.floor.id, floor_number=room.floor.floor_number, floor_name=room.floor.floor_name),
        building=BuildingSummary(id=room.building.id, name=room.building.name, code=room.building.code),
        active_allocations=active,
        current_monthly_fee=fee,
    )


async def get_all_rooms(
    scope: TenantScope,
    *,
    floor_number: Optional[int] = None,
    room_type: Optional[str] = None,
    room_status: Optional[str] = None,
    building_id: Optional[UUID] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> RoomListResponse:
    stmt = scope.select(Room, Room, Floor.floor_number).join(Floor, Floor.id == Room.floor_id)
    if floor_number is not None:
        stmt = stmt.where(Floor.floor_number == floor_number)
    if room_type:
        stmt = stmt.where(Room.room_type == room_type)
    if room_status:
        stmt = stmt.where(Room.status == room_status)
    if building_id:
        stmt = stmt.where(Room.building_id == building_id)
    if search:
        stmt = stmt.where(Room.room_number.ilike(f"%{search.strip()}%"))

    total = await scope.db.scalar(select(func.count()).select_from(stmt.subquery()))
    result = await scope.db.execute(
        stmt.order_by(Room.room_number.asc()).offset((page - 1) * limit).limit(limit)
    )
    rooms = [room_to_response(room, fnum) for room, fnum in result.all()]
    return RoomListResponse(
        rooms=rooms,
        total=total or 0,
        page=page,
        total_pages=((total or 0) + limit - 1) // limit,
    )


async def update_room(scope: TenantScope, room_id: UUID, payload: RoomUpdate) -> RoomResponse:
    # Row lock keeps a concurrent allocation from slipping past the capacity check
    room = await scope.get(Room, room_id, for_update=True)
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)

    if payload.capacity is not None and payload.capacity < room.occupied:
        raise ServiceError(
            f"Cannot reduce capacity to {payload.capacity}. Current occupancy is {room.occupied}",
            status.HTTP_400_BAD_REQUEST,
        )
    if payload.room_number is not None:
        room_number = payload.room_number.strip()
        if room_number != room.room_number and await _room_number_taken(scope, room_number, exclude_id=room.id):
            raise ServiceError("Room number already exists", status.HTTP_409_CONFLICT)
        room.room_number = room_number

    if payload.capacity is not None:
        room.capacity = payload.capacity
    if payload.room_type is not None:
        room.room_type = payload.room_type.value
    if payload.description is not None:
        room.description = payload.description or None
    if payload.status is not None:
        room.status = payload.status.value
    room.status = derive_room_status(room.status, room.occupied, room.capacity)

    try:
        await scope.db.flush()
        await recount_floor_and_building(scope, room.floor_id, room.building_id)
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("Room number already exists", status.HTTP_409_CONFLICT)

    await scope.db.refresh(room)
    floor_number = await scope.db.scalar(select(Floor.floor_number).where(Floor.id == room.floor_id))
    logger.info("Room %s updated (tenant=%s)", room.id, scope.tenant_id)
    return room_to_response(room, floor_number)


async def delete_room(scope: TenantScope, room_id: UUID) -> None:
    room = await scope.get(Room, room_id, for_update=True)
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)

    active = await scope.db.scalar(
        scope.count(RoomAllocation).where(
            RoomAllocation.room_id == room.id,
            RoomAllocation.status == AllocationStatus.ACTIVE.value,
        )
    )
    if active:
        raise ServiceError(
            f"Cannot delete room with active allocations: {active} student(s) currently allocated. "
            "Deallocate them first.",
            status.HTTP_400_BAD_REQUEST,
        )

    floor_id, building_id = room.floor_id, room.building_id
    # Closed allocation history, fee versions and amenity links go with the room; complaints keep their text
    await scope.db.execute(delete(RoomAllocation).where(RoomAllocation.room_id == room.id))
    await scope.db.execute(delete(FeeStructure).where(FeeStructure.room_id == room.id))
    await scope.db.execute(delete(RoomAmenityMapping).where(RoomAmenityMapping.room_id == room.id))
    await scope.db.execute(
        update(Complaint)
        .where(Complaint.room_id == room.id)
        .values(room_id=None)
        .execution_options(synchronize_session=False)
    )
    await scope.db.execute(delete(Room).where(Room.id == room.id))
    await recount_floor_and_building(scope, floor_id, building_id)
    await scope.db.commit()
    logger.info("Room %s deleted (tenant=%s)", room_id, scope.tenant_id)


async def bulk_create_rooms(scope: TenantScope, building_id: UUID, payload: BulkRoomCreate) -> BulkRoomCreateResponse:
    """Create "{floor}-{seq:02d}" rooms for the range, skipping numbers that already exist."""
    await _get_building_or_404(scope, building_id)
    floor = await _get_floor_by_number(scope, building_id, payload.floor_number)

    candidates = [
        f"{payload.floor_number}-{seq:02d}"
        for seq in range(payload.start_room_number, payload.end_room_number + 1)
    ]
    existing_result = await scope.db.execute(
        scope.select(Room, Room.room_number).where(Room.room_number.in_(candidates))
    )
    existing = set(existing_result.scalars().all())

    created: List[Room] = []
    skipped: List[str] = []
    for number in candidates:
        if number in existing:
            skipped.append(number)
            continue
        room = Room(
            building_id=building_id,
            floor_id=floor.id,
            room_number=number,
            room_type=payload.room_type.value,
            capacity=payload.capacity,
            occupied=0,
            status=RoomStatus.AVAILABLE.value,
            description=payload.description,
        )
        scope.add(room)
        created.append(room)

    try:
        await scope.db.flush()
        await recount_floor_and_building(scope, floor.id, building_id)
        await scope.db.commit()
    except IntegrityError:
        # Another request created one of the numbers between our check and insert
        await scope.db.rollback()
        raise ServiceError("Some rooms were created concurrently; retry the request", status.HTTP_409_CONFLICT)

    for room in created:
        await scope.db.refresh(room)
    logger.info(
        "Bulk room creation on floor %s: %d created, %d skipped (tenant=%s)",
        floor.floor_number, len(created), len(skipped), scope.tenant_id,
    )
    return BulkRoomCreateResponse(
        created=[room_to_response(r, floor.floor_number) for r in created],
        skipped=skipped,
        created_count=len(created),
        skipped_count=len(skipped),
    )


async def get_room_occupancy(
    scope: TenantScope,
    *,
    building_id: Optional[UUID] = None,
    floor_number: Optional[int] = None,
    room_type: Optional[str] = None,
) -> RoomOccupancyResponse:
    """Read-only occupancy derived from the room counters."""
    stmt = scope.select(Room, Room, Floor.floor_number).join(Floor, Floor.id == Room.floor_id)
    if building_id:
        stmt = stmt.where(Room.building_id == building_id)
    if floor_number is not None:
        stmt = stmt.where(Floor.floor_number == floor_number)
    if room_type:
        stmt = stmt.where(Room.room_type == room_type)
    result = await scope.db.execute(stmt.order_by(Room.room_number.asc()))
    rows = result.all()

    items: List[RoomOccupancyItem] = []
    by_type: Dict[str, Dict[str, int]] = {}
    for room, fnum in rows:
        items.append(
            RoomOccupancyItem(
                room_id=room.id,
                room_number=room.room_number,
                building_id=room.building_id,
                floor_number=fnum,
                room_type=room.room_type,
                capacity=room.capacity,
                occupied=room.occupied,
                available=room.capacity - room.occupied,
                occupancy_percentage=_percentage(room.occupied, room.capacity),
                status=room.status,
            )
        )
        agg = by_type.setdefault(room.room_type, {"total_rooms": 0, "capacity": 0, "occupied": 0})
        agg["total_rooms"] += 1
        agg["capacity"] += room.capacity
        agg["occupied"] += room.occupied

    total_capacity = sum(i.capacity for i in items)
    total_occupied = sum(i.occupied for i in items)
    summary = OccupancySummary(
        total_rooms=len(items),
        total_capacity=total_capacity,
        total_occupied=total_occupied,
        total_available=total_capacity - total_occupied,
        occupancy_rate=_percentage(total_occupied, total_capacity),
        full_rooms=sum(1 for i in items if i.occupied >= i.capacity),
        available_rooms=sum(1 for i in items if i.occupied < i.capacity),
        empty_rooms=sum(1 for i in items if i.occupied == 0),
    )
    return RoomOccupancyResponse(
        summary=summary,
        by_type=[
            OccupancyByType(
                room_type=rt,
                total_rooms=agg["total_rooms"],
                capacity=agg["capacity"],
                occupied=agg["occupied"],
                available=agg["capacity"] - agg["occupied"],
                occupancy_rate=_percentage(agg["occupied"], agg["capacity"]),
            )
            for rt, agg in sorted(by_type.items())
        ],
        rooms=items,
    )


async def get_room_stats(scope: TenantScope, room_id: UUID) -> RoomStatsResponse:
    room = await scope.get(Room, room_id)
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)
    open_complaints = await scope.db.scalar(
        scope.count(Complaint).where(
            Complaint.room_id == room.id,
            Complaint.status.notin_(OPEN_COMPLAINT_EXCLUDED),
        )
    )
    return RoomStatsResponse(
        room_id=room.id,
        room_number=room.room_number,
        room_type=room.room_type,
        capacity=room.capacity,
        occupied=room.occupied,
        available=room.capacity - room.occupied,
        occupancy_rate=_percentage(room.occupied, room.capacity),
        status=room.status,
        is_full=room.occupied >= room.capacity,
        has_availability=room.occupied < room.capacity,
        active_complaints=open_complaints or 0,
    )


async def check_allocation_conflicts(scope: TenantScope, room_id: UUID, student_id: UUID) -> AllocationCheckResponse:
    """Pre-flight check for the allocation form. The allocation itself re-checks atomically."""
    room = await scope.get(Room, room_id)
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)
    student = await scope.get(User, student_id)
    if not student or student.role != UserRole.STUDENT.value:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)

    has_active = await scope.db.scalar(
        scope.count(RoomAllocation).where(
            RoomAllocation.student_id == student_id,
            RoomAllocation.status == AllocationStatus.ACTIVE.value,
        )
    )
    if has_active:
        raise ServiceError("Student already has an active room allocation", status.HTTP_400_BAD_REQUEST)
    if room.status in UNALLOCATABLE_STATUSES:
        raise ServiceError(f"Room is {room.status} and cannot be allocated", status.HTTP_400_BAD_REQUEST)
    if room.occupied >= room.capacity:
        raise ServiceError(
            f"Room is full. Current occupancy: {room.occupied}/{room.capacity}",
            status.HTTP_400_BAD_REQUEST,
        )
    return AllocationCheckResponse(room_id=room.id, student_id=student_id, can_allocate=True)
