from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin, require_staff
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    AmenityCreate,
    AmenityDetailResponse,
    AmenityResponse,
    AmenityUpdate,
    RoomAmenitiesResponse,
    RoomAmenityAdd,
    RoomAmenityBulkAdd,
    RoomAmenityBulkAddResponse,
    RoomAmenityMappingResponse,
)
from . import service

router = APIRouter(prefix="/api/hostel", tags=["amenities"])


@router.post(
    "/amenities",
    response_model=ApiResponse[AmenityResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_amenity(
    payload: AmenityCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AmenityResponse]:
    try:
        amenity = await service.create_amenity(scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Amenity created successfully", data=amenity)


# Any signed-in user of the tenant, students included
@router.get("/amenities", response_model=ApiResponse[List[AmenityDetailResponse]])
async def list_amenities(
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[List[AmenityDetailResponse]]:
    return ApiResponse(data=await service.list_amenities(scope))


@router.post(
    "/amenities/room/add",
    response_model=ApiResponse[RoomAmenityMappingResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def add_amenity_to_room(
    payload: RoomAmenityAdd,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomAmenityMappingResponse]:
    try:
        mapping = await service.add_amenity_to_room(scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(
        message=f'Amenity "{mapping.amenity_name}" added to Room {mapping.room_number} successfully',
        data=mapping,
    )


@router.post(
    "/amenities/room/bulk-add",
    response_model=ApiResponse[RoomAmenityBulkAddResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def bulk_add_amenities(
    payload: RoomAmenityBulkAdd,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomAmenityBulkAddResponse]:
    try:
        result = await service.bulk_add_amenities_to_room(scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Amenities added to room", data=result)


@router.delete(
    "/amenities/room/remove/{mapping_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(require_admin)],
)
async def remove_amenity_from_room(
    mapping_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[None]:
    try:
        message = await service.remove_amenity_from_room(scope, mapping_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message=message)


@router.get(
    "/amenities/{amenity_id}",
    response_model=ApiResponse[AmenityDetailResponse],
    dependencies=[Depends(require_staff)],
)
async def get_amenity(
    amenity_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AmenityDetailResponse]:
    try:
        return ApiResponse(data=await service.get_amenity(scope, amenity_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/amenities/{amenity_id}",
    response_model=ApiResponse[AmenityResponse],
    dependencies=[Depends(require_admin)],
)
async def update_amenity(
    amenity_id: UUID,
    payload: AmenityUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AmenityResponse]:
    try:
        amenity = await service.update_amenity(scope, amenity_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Amenity updated successfully", data=amenity)


@router.delete(
    "/amenities/{amenity_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(require_admin)],
)
async def delete_amenity(
    amenity_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[None]:
    try:
        await service.delete_amenity(scope, amenity_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Amenity deleted successfully")


@router.get("/rooms/{room_id}/amenities", response_model=ApiResponse[RoomAmenitiesResponse])
async def get_room_amenities(
    room_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomAmenitiesResponse]:
    try:
        return ApiResponse(data=await service.get_room_amenities(scope, room_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
