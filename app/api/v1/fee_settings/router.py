from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    FeeSettingsResponse,
    FeeSettingsUpdate,
    FeeSettingsUpdateResponse,
    FeeStructureResponse,
    RoomFeeStructureResponse,
    RoomFeeUpdate,
)
from . import service

router = APIRouter(tags=["fee-settings"])


@router.get(
    "/api/admin/payments/fee-settings",
    response_model=ApiResponse[FeeSettingsResponse],
    dependencies=[Depends(require_admin)],
)
async def get_fee_settings(
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[FeeSettingsResponse]:
    return ApiResponse(data=await service.get_fee_settings(scope))


@router.put(
    "/api/admin/payments/fee-settings",
    response_model=ApiResponse[FeeSettingsUpdateResponse],
)
async def update_fee_settings(
    payload: FeeSettingsUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_admin),
) -> ApiResponse[FeeSettingsUpdateResponse]:
    try:
        data = await service.update_fee_settings(scope, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Fee settings updated successfully", data=data)


@router.get(
    "/api/hostel/rooms/{room_id}/fee-structure",
    response_model=ApiResponse[RoomFeeStructureResponse],
    dependencies=[Depends(require_admin)],
)
async def get_room_fee_structure(
    room_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[RoomFeeStructureResponse]:
    try:
        return ApiResponse(data=await service.get_room_fee_structure(scope, room_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/api/hostel/rooms/{room_id}/fee-structure",
    response_model=ApiResponse[FeeStructureResponse],
)
async def set_room_fee(
    room_id: UUID,
    payload: RoomFeeUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_admin),
) -> ApiResponse[FeeStructureResponse]:
    try:
        data = await service.set_room_fee(scope, room_id, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Room fee updated successfully", data=data)
