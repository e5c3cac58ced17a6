"""
Room allocation. Occupancy counters change only through conditional SQL
increments/decrements executed in the same transaction as the allocation row.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import case, func, select

from app.api.v1.rooms.service import UNALLOCATABLE_STATUSES, recount_floor_and_building
from app.auth.models import User
from app.core.enums import AllocationStatus, RoomStatus, UserRole
from app.core.exceptions import ServiceError
from app.core.models import Floor, Room, RoomAllocation
from app.core.tenant_scope import TenantScope

from .schemas import (
    AllocationCreate,
    AllocationHistoryItem,
    AllocationListResponse,
    AllocationResponse,
    AllocationUpdate,
    BulkAllocationCreate,
    BulkAllocationError,
    BulkAllocationResponse,
)

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def _occupy_room(scope: TenantScope, room_id: UUID) -> None:
    """occupied + 1, only while below capacity and in service."""
    result = await scope.db.execute(
        scope.update(Room)
        .where(
            Room.id == room_id,
            Room.occupied < Room.capacity,
            Room.status.notin_(UNALLOCATABLE_STATUSES),
        )
        .values(occupied=Room.occupied + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    room = await scope.db.scalar(
        scope.select(Room).where(Room.id == room_id).execution_options(populate_existing=True)
    )
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)
    if room.status in UNALLOCATABLE_STATUSES:
        raise ServiceError(f"Room is {room.status} and cannot be allocated", status.HTTP_400_BAD_REQUEST)
    raise ServiceError("Room is at full capacity", status.HTTP_400_BAD_REQUEST)


async def _release_room(scope: TenantScope, room_id: UUID) -> None:
    result = await scope.db.execute(
        scope.update(Room)
        .where(Room.id == room_id, Room.occupied > 0)
        .values(occupied=Room.occupied - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning("Room %s occupancy already zero on release", room_id)


async def _sync_room(scope: TenantScope, room_id: UUID) -> None:
    """Re-derive FULL/AVAILABLE in SQL, then recount the room's floor and building."""
    await scope.db.execute(
        scope.update(Room)
        .where(Room.id == room_id, Room.status.notin_(UNALLOCATABLE_STATUSES))
        .values(
            status=case(
                (Room.occupied >= Room.capacity, RoomStatus.FULL.value),
                else_=RoomStatus.AVAILABLE.value,
            )
        )
        .execution_options(synchronize_session=False)
    )
    row = (
        await scope.db.execute(scope.select(Room, Room.floor_id, Room.building_id).where(Room.id == room_id))
    ).one()
    await recount_floor_and_building(scope, row.floor_id, row.building_id)


async def _lock_student(scope: TenantScope, student_id: UUID) -> User:
    result = await scope.db.execute(
        scope.select(User).where(User.id == student_id).with_for_update()
    )
    student = result.scalar_one_or_none()
    if not student or student.role != UserRole.STUDENT.value:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    if student.status != "ACTIVE":
        raise ServiceError("Student account is not active", status.HTTP_400_BAD_REQUEST)
    return student


async def allocate_student(
    scope: TenantScope,
    student_id: UUID,
    room_id: UUID,
    remarks: Optional[str] = None,
) -> RoomAllocation:
    """
    Allocate inside the caller's transaction (no commit).
    Nothing is written when a check fails, so callers can continue with other work.
    """
    await _lock_student(scope, student_id)
    has_active = await scope.db.scalar(
        scope.count(RoomAllocation).where(
            RoomAllocation.student_id == student_id,
            RoomAllocation.status == AllocationStatus.ACTIVE.value,
        )
    )
    if has_active:
        raise ServiceError("Student already has an active room allocation", status.HTTP_400_BAD_REQUEST)

    await _occupy_room(scope, room_id)
    allocation = RoomAllocation(
        student_id=student_id,
        room_id=room_id,
        status=AllocationStatus.ACTIVE.value,
        remarks=remarks,
        allocated_at=datetime.utcnow(),
    )
    scope.add(allocation)
    await scope.db.flush()
    await _sync_room(scope, room_id)
    logger.info("Student %s allocated to room %s", student_id, room_id)
    return allocation


def _allocation_query(scope: TenantScope):
    return (
        scope.select(RoomAllocation, RoomAllocation, User, Room, Floor.floor_number)
        .join(User, User.id == RoomAllocation.student_id)
        .join(Room, Room.id == RoomAllocation.room_id)
        .join(Floor, Floor.id == Room.floor_id)
    )


def _to_response(alloc: RoomAllocation, user: User, room: Room, floor_number: int) -> AllocationResponse:
    return AllocationResponse(
        id=alloc.id,
        student_id=user.id,
        student_name=user.full_name,
        student_email=user.email,
        room_id=room.id,
        room_number=room.room_number,
        floor_number=floor_number,
        building_id=room.building_id,
        status=alloc.status,
        remarks=alloc.remarks,
        allocated_at=alloc.allocated_at,
        checkout_at=alloc.checkout_at,
    )


async def get_allocation(scope: TenantScope, allocation_id: UUID) -> AllocationResponse:
    result = await scope.db.execute(
        _allocation_query(scope)
        .where(RoomAllocation.id == allocation_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if not row:
        raise ServiceError("Allocation not found", status.HTTP_404_NOT_FOUND)
    return _to_response(*row)


async def create_allocation(scope: TenantScope, payload: AllocationCreate) -> AllocationResponse:
    allocation = await allocate_student(scope, payload.student_id, payload.room_id, payload.remarks)
    await scope.db.commit()
    return await get_allocation(scope, allocation.id)


async def deallocate(scope: TenantScope, allocation_id: UUID, remarks: Optional[str] = None) -> AllocationResponse:
    allocation = await scope.get(RoomAllocation, allocation_id, for_update=True)
    if not allocation:
        raise ServiceError("Allocation not found", status.HTTP_404_NOT_FOUND)
    if allocation.status != AllocationStatus.ACTIVE.value:
        raise ServiceError("Allocation is not active", status.HTTP_400_BAD_REQUEST)

    allocation.status = AllocationStatus.INACTIVE.value
    allocation.checkout_at = datetime.utcnow()
    if remarks:
        allocation.remarks = remarks
    await scope.db.flush()
    await _release_room(scope, allocation.room_id)
    await _sync_room(scope, allocation.room_id)
    await scope.db.commit()
    logger.info("Allocation %s closed (student=%s, room=%s)", allocation.id, allocation.student_id, allocation.room_id)
    return await get_allocation(scope, allocation.id)


async def update_allocation(scope: TenantScope, allocation_id: UUID, payload: AllocationUpdate) -> AllocationResponse:
    """Transfer to payload.room_id (one transaction) and/or update remarks."""
    allocation = await scope.get(RoomAllocation, allocation_id, for_update=True)
    if not allocation:
        raise ServiceError("Allocation not found", status.HTTP_404_NOT_FOUND)

    if payload.room_id is not None and payload.room_id != allocation.room_id:
        if allocation.status != AllocationStatus.ACTIVE.value:
            raise ServiceError("Only an active allocation can be transferred", status.HTTP_400_BAD_REQUEST)
        old_room_id = allocation.room_id
        await _occupy_room(scope, payload.room_id)
        await _release_room(scope, old_room_id)
        allocation.room_id = payload.room_id
        await scope.db.flush()
        await _sync_room(scope, old_room_id)
        await _sync_room(scope, payload.room_id)
        logger.info("Allocation %s transferred from room %s to %s", allocation.id, old_room_id, payload.room_id)

    if payload.remarks is not None:
        allocation.remarks = payload.remarks or None
    await scope.db.commit()
    return await get_allocation(scope, allocation.id)


async def list_allocations(
    scope: TenantScope,
    *,
    allocation_status: Optional[str] = None,
    room_id: Optional[UUID] = None,
    student_id: Optional[UUID] = None,
    page: int = 1,
    limit: int = 10,
) -> AllocationListResponse:
    stmt = _allocation_query(scope)
    if allocation_status:
        stmt = stmt.where(RoomAllocation.status == allocation_status)
    if room_id:
        stmt = stmt.where(RoomAllocation.room_id == room_id)
    if student_id:
        stmt = stmt.where(RoomAllocation.student_id == student_id)

    total = await scope.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    result = await scope.db.execute(
        stmt.order_by(RoomAllocation.allocated_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return AllocationListResponse(
        allocations=[_to_response(*row) for row in result.all()],
        total=total,
        page=page,
        total_pages=(total + limit - 1) // limit,
    )


async def bulk_allocate(scope: TenantScope, payload: BulkAllocationCreate) -> BulkAllocationResponse:
    """Per-item results; a failing item is reported and the rest still commit."""
    created: List[RoomAllocation] = []
    errors: List[BulkAllocationError] = []
    for item in payload.allocations:
        try:
            created.append(await allocate_student(scope, item.student_id, item.room_id, payload.remarks))
        except ServiceError as e:
            errors.append(BulkAllocationError(student_id=item.student_id, room_id=item.room_id, error=e.message))
    await scope.db.commit()

    results = [await get_allocation(scope, a.id) for a in created]
    logger.info("Bulk allocation: %d succeeded, %d failed", len(results), len(errors))
    return BulkAllocationResponse(successful=len(results), failed=len(errors), results=results, errors=errors)


async def allocation_history(scope: TenantScope, student_id: UUID) -> List[AllocationHistoryItem]:
    student = await scope.get(User, student_id)
    if not student or student.role != UserRole.STUDENT.value:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)

    result = await scope.db.execute(
        _allocation_query(scope)
        .where(RoomAllocation.student_id == student_id)
        .order_by(RoomAllocation.allocated_at.desc())
    )
    now = datetime.utcnow()
    history: List[AllocationHistoryItem] = []
    for alloc, _user, room, floor_number in result.all():
        end = _naive_utc(alloc.checkout_at) if alloc.checkout_at else now
        history.append(
            AllocationHistoryItem(
                id=alloc.id,
                room_id=room.id,
                room_number=room.room_number,
                floor_number=floor_number,
                status=alloc.status,
                allocated_at=alloc.allocated_at,
                checkout_at=alloc.checkout_at,
                duration_days=max((end - _naive_utc(alloc.allocated_at)).days, 0),
            )
        )
    return history
