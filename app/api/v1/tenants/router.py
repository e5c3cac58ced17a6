from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_tenant_scope
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope
from app.db.session import get_db

from .schemas import TenantRegisterRequest, TenantRegisterResponse, TenantResponse
from . import service

router = APIRouter(prefix="/api/v1/tenants", tags=["tenants"])


@router.post(
    "/register",
    response_model=ApiResponse[TenantRegisterResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register_tenant(
    payload: TenantRegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[TenantRegisterResponse]:
    try:
        data = await service.register_tenant(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Hostel registered successfully", data=data)


@router.get("/me", response_model=ApiResponse[TenantResponse])
async def get_my_tenant(
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[TenantResponse]:
    try:
        return ApiResponse(data=await service.get_tenant(scope))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
