from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_staff
from app.core.enums import AllocationStatus
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    AllocationCreate,
    AllocationHistoryItem,
    AllocationListResponse,
    AllocationResponse,
    AllocationUpdate,
    BulkAllocationCreate,
    BulkAllocationResponse,
    DeallocateRequest,
)
from . import service

router = APIRouter(
    prefix="/api/hostel/allocations",
    tags=["allocations"],
    dependencies=[Depends(require_staff)],
)


@router.post("", response_model=ApiResponse[AllocationResponse], status_code=status.HTTP_201_CREATED)
async def create_allocation(
    payload: AllocationCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AllocationResponse]:
    try:
        allocation = await service.create_allocation(scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Room allocated successfully", data=allocation)


@router.get("", response_model=ApiResponse[AllocationListResponse])
async def list_allocations(
    allocation_status: Optional[AllocationStatus] = Query(None, alias="status"),
    room_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AllocationListResponse]:
    data = await service.list_allocations(
        scope,
        allocation_status=allocation_status.value if allocation_status else None,
        room_id=room_id,
        student_id=student_id,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=data)


@router.post("/bulk", response_model=ApiResponse[BulkAllocationResponse])
async def bulk_allocate(
    payload: BulkAllocationCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[BulkAllocationResponse]:
    result = await service.bulk_allocate(scope, payload)
    return ApiResponse(message=f"{result.successful} allocated, {result.failed} failed", data=result)


@router.get("/student/{student_id}/history", response_model=ApiResponse[List[AllocationHistoryItem]])
async def allocation_history(
    student_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[List[AllocationHistoryItem]]:
    try:
        return ApiResponse(data=await service.allocation_history(scope, student_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{allocation_id}", response_model=ApiResponse[AllocationResponse])
async def get_allocation(
    allocation_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AllocationResponse]:
    try:
        return ApiResponse(data=await service.get_allocation(scope, allocation_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{allocation_id}", response_model=ApiResponse[AllocationResponse])
async def update_allocation(
    allocation_id: UUID,
    payload: AllocationUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AllocationResponse]:
    try:
        allocation = await service.update_allocation(scope, allocation_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Allocation updated successfully", data=allocation)


@router.post("/{allocation_id}/deallocate", response_model=ApiResponse[AllocationResponse])
async def deallocate(
    allocation_id: UUID,
    payload: Optional[DeallocateRequest] = None,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[AllocationResponse]:
    try:
        allocation = await service.deallocate(scope, allocation_id, payload.remarks if payload else None)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Student deallocated successfully", data=allocation)
