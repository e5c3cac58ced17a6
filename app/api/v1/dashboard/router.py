from fastapi import APIRouter, Depends, Query

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import ComplaintTrendResponse, DashboardResponse, OccupancyTrendResponse
from . import service

router = APIRouter(
    prefix="/api/admin/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(require_admin)],
)


@router.get("/metrics", response_model=ApiResponse[DashboardResponse])
async def get_dashboard_metrics(
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[DashboardResponse]:
    return ApiResponse(
        message="Dashboard metrics retrieved successfully",
        data=await service.dashboard_metrics(scope),
    )


@router.get("/occupancy-trend", response_model=ApiResponse[OccupancyTrendResponse])
async def get_occupancy_trend(
    months: int = Query(12, ge=1, le=36),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[OccupancyTrendResponse]:
    return ApiResponse(
        message="Occupancy trend retrieved successfully",
        data=await service.occupancy_trend(scope, months),
    )


@router.get("/complaint-trend", response_model=ApiResponse[ComplaintTrendResponse])
async def get_complaint_trend(
    days: int = Query(30, ge=1, le=365),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[ComplaintTrendResponse]:
    return ApiResponse(
        message="Complaint trend retrieved successfully",
        data=await service.complaint_trend(scope, days),
    )
