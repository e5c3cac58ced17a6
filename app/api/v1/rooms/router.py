from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin, require_staff
from app.core.enums import RoomStatus, RoomType
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    AllocationCheckResponse,
    BulkRoomCreate,
    BulkRoomCreateResponse,
    RoomCreate,
    RoomDetailResponse,
    RoomListResponse,
    RoomOccupancyResponse,
    RoomResponse,
    RoomStatsResponse,
    RoomUpdate,
)
from . import service

router = APIRouter(prefix="/api/hostel", tags=["rooms"])


@router.post(
    "/buildings/{building_id}/rooms",
    response_model=ApiResponse[RoomResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_room(
    building_id: UUID,
    payload: RoomCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomResponse]:
    try:
        room = await service.create_room(scope, building_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Room created successfully", data=room)


@router.post(
    "/buildings/{building_id}/rooms/bulk",
    response_model=ApiResponse[BulkRoomCreateResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def bulk_create_rooms(
    building_id: UUID,
    payload: BulkRoomCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[BulkRoomCreateResponse]:
    try:
        result = await service.bulk_create_rooms(scope, building_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message=f"{result.created_count} room(s) created", data=result)


@router.get(
    "/rooms",
    response_model=ApiResponse[RoomListResponse],
    dependencies=[Depends(require_staff)],
)
async def list_rooms(
    floor_number: Optional[int] = Query(None, ge=0),
    room_type: Optional[RoomType] = Query(None),
    room_status: Optional[RoomStatus] = Query(None, alias="status"),
    building_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=50),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomListResponse]:
    data = await service.get_all_rooms(
        scope,
        floor_number=floor_number,
        room_type=room_type.value if room_type else None,
        room_status=room_status.value if room_status else None,
        building_id=building_id,
        search=search,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=data)


@router.get(
    "/rooms/occupancy",
    response_model=ApiResponse[RoomOccupancyResponse],
    dependencies=[Depends(require_staff)],
)
async def room_occupancy(
    building_id: Optional[UUID] = Query(None),
    floor_number: Optional[int] = Query(None, ge=0),
    room_type: Optional[RoomType] = Query(None),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomOccupancyResponse]:
    data = await service.get_room_occupancy(
        scope,
        building_id=building_id,
        floor_number=floor_number,
        room_type=room_type.value if room_type else None,
    )
    return ApiResponse(data=data)


@router.get(
    "/rooms/check-allocation",
    response_model=ApiResponse[AllocationCheckResponse],
    dependencies=[Depends(require_staff)],
)
async def check_allocation(
    room_id: UUID,
    student_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AllocationCheckResponse]:
    try:
        data = await service.check_allocation_conflicts(scope, room_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Room can be allocated", data=data)


@router.get(
    "/rooms/{room_id}",
    response_model=ApiResponse[RoomDetailResponse],
    dependencies=[Depends(require_staff)],
)
async def get_room(
    room_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomDetailResponse]:
    try:
        return ApiResponse(data=await service.get_room_by_id(scope, room_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/rooms/{room_id}/stats",
    response_model=ApiResponse[RoomStatsResponse],
    dependencies=[Depends(require_staff)],
)
async def get_room_stats(
    room_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomStatsResponse]:
    try:
        return ApiResponse(data=await service.get_room_stats(scope, room_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/rooms/{room_id}",
    response_model=ApiResponse[RoomResponse],
    dependencies=[Depends(require_admin)],
)
async def update_room(
    room_id: UUID,
    payload: RoomUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomResponse]:
    try:
        room = await service.update_room(scope, room_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Room updated successfully", data=room)


@router.delete(
    "/rooms/{room_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(require_admin)],
)
async def delete_room(
    room_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[None]:
    try:
        await service.delete_room(scope, room_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Room deleted successfully")
