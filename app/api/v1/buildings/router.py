from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin, require_staff
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    BuildingCreate,
    BuildingDetailResponse,
    BuildingListResponse,
    BuildingResponse,
    BuildingStatsResponse,
    BuildingUpdate,
)
from . import service

router = APIRouter(prefix="/api/hostel/buildings", tags=["buildings"])


@router.post(
    "",
    response_model=ApiResponse[BuildingResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_building(
    payload: BuildingCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[BuildingResponse]:
    try:
        building = await service.create_building(scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Building created successfully", data=building)


@router.get(
    "",
    response_model=ApiResponse[BuildingListResponse],
    dependencies=[Depends(require_staff)],
)
async def list_buildings(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[BuildingListResponse]:
    return ApiResponse(data=await service.list_buildings(scope, search=search, page=page, limit=limit))


@router.get(
    "/{building_id}",
    response_model=ApiResponse[BuildingDetailResponse],
    dependencies=[Depends(require_staff)],
)
async def get_building(
    building_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[BuildingDetailResponse]:
    try:
        return ApiResponse(data=await service.get_building(scope, building_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{building_id}/stats",
    response_model=ApiResponse[BuildingStatsResponse],
    dependencies=[Depends(require_staff)],
)
async def get_building_stats(
    building_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[BuildingStatsResponse]:
    try:
        return ApiResponse(data=await service.get_building_stats(scope, building_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{building_id}",
    response_model=ApiResponse[BuildingResponse],
    dependencies=[Depends(require_admin)],
)
async def update_building(
    building_id: UUID,
    payload: BuildingUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[BuildingResponse]:
    try:
        building = await service.update_building(scope, building_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Building updated successfully", data=building)


@router.delete(
    "/{building_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(require_admin)],
)
async def delete_building(
    building_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[None]:
    try:
        await service.delete_building(scope, building_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Building deleted successfully")
