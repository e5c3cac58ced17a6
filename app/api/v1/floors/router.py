from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin, require_staff
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import FloorCreate, FloorResponse, FloorStatsResponse, FloorUpdate
from . import service

router = APIRouter(prefix="/api/hostel", tags=["floors"])


@router.post(
    "/floors",
    response_model=ApiResponse[FloorResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_floor(
    payload: FloorCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[FloorResponse]:
    try:
        floor = await service.create_floor(scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Floor created successfully", data=floor)


@router.get(
    "/buildings/{building_id}/floors",
    response_model=ApiResponse[List[FloorResponse]],
    dependencies=[Depends(require_staff)],
)
async def list_floors(
    building_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[List[FloorResponse]]:
    try:
        return ApiResponse(data=await service.list_floors(scope, building_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/floors/{floor_id}",
    response_model=ApiResponse[FloorResponse],
    dependencies=[Depends(require_staff)],
)
async def get_floor(
    floor_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[FloorResponse]:
    try:
        return ApiResponse(data=await service.get_floor(scope, floor_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/floors/{floor_id}/stats",
    response_model=ApiResponse[FloorStatsResponse],
    dependencies=[Depends(require_staff)],
)
async def get_floor_stats(
    floor_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[FloorStatsResponse]:
    try:
        return ApiResponse(data=await service.get_floor_stats(scope, floor_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/floors/{floor_id}",
    response_model=ApiResponse[FloorResponse],
    dependencies=[Depends(require_admin)],
)
async def update_floor(
    floor_id: UUID,
    payload: FloorUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[FloorResponse]:
    try:
        floor = await service.update_floor(scope, floor_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Floor updated successfully", data=floor)


@router.delete(
    "/floors/{floor_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(require_admin)],
)
async def delete_floor(
    floor_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[None]:
    try:
        await service.delete_floor(scope, floor_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Floor deleted successfully")
