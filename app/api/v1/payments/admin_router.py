from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin
from app.auth.schemas import CurrentUser
from app.core.enums import PaymentStatus
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    MONTH_YEAR_PATTERN,
    OutstandingDueItem,
    PaymentListResponse,
    PaymentStatsResponse,
    RepriceResponse,
)
from . import service

router = APIRouter(prefix="/api/admin/payments", tags=["admin-payments"])


@router.get(
    "",
    response_model=ApiResponse[PaymentListResponse],
    dependencies=[Depends(require_admin)],
)
async def list_payments(
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    month_year: Optional[str] = Query(None, pattern=MONTH_YEAR_PATTERN),
    student_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[PaymentListResponse]:
    data = await service.list_payments(
        scope,
        payment_status=payment_status.value if payment_status else None,
        month_year=month_year,
        student_id=student_id,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=data)


@router.get(
    "/stats",
    response_model=ApiResponse[PaymentStatsResponse],
    dependencies=[Depends(require_admin)],
)
async def payment_stats(
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[PaymentStatsResponse]:
    return ApiResponse(data=await service.payment_stats(scope))


@router.get(
    "/outstanding",
    response_model=ApiResponse[List[OutstandingDueItem]],
    dependencies=[Depends(require_admin)],
)
async def outstanding_dues(
    month_year: Optional[str] = Query(None, pattern=MONTH_YEAR_PATTERN),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[List[OutstandingDueItem]]:
    return ApiResponse(data=await service.outstanding_dues(scope, month_year))


@router.post("/dues/{student_id}/reprice", response_model=ApiResponse[RepriceResponse])
async def reprice_dues(
    student_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_admin),
) -> ApiResponse[RepriceResponse]:
    try:
        data = await service.reprice_student_dues(scope, student_id, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message=f"{data.repriced_count} due(s) repriced", data=data)
