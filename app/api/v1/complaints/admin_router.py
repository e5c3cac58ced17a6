from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_staff
from app.auth.schemas import CurrentUser
from app.core.enums import ComplaintCategory, ComplaintPriority, ComplaintStatus
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    CategoryCount,
    CommentCreate,
    CommentResponse,
    ComplaintDetailResponse,
    ComplaintListResponse,
    ComplaintReportResponse,
    ComplaintResponse,
    ComplaintStatsResponse,
    ResolveRequest,
    StatusUpdate,
)
from . import service

router = APIRouter(
    prefix="/api/admin/complaints",
    tags=["admin-complaints"],
    dependencies=[Depends(require_staff)],
)


@router.get("", response_model=ApiResponse[ComplaintListResponse])
async def list_complaints(
    complaint_status: Optional[ComplaintStatus] = Query(None, alias="status"),
    priority: Optional[ComplaintPriority] = Query(None),
    category: Optional[ComplaintCategory] = Query(None),
    student_id: Optional[UUID] = Query(None),
    room_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[ComplaintListResponse]:
    data = await service.list_complaints(
        scope,
        complaint_status=complaint_status.value if complaint_status else None,
        priority=priority.value if priority else None,
        category=category.value if category else None,
        student_id=student_id,
        room_id=room_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=data)


@router.get("/stats", response_model=ApiResponse[ComplaintStatsResponse])
async def complaint_stats(
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[ComplaintStatsResponse]:
    return ApiResponse(data=await service.complaint_stats(scope))


@router.get("/by-category", response_model=ApiResponse[List[CategoryCount]])
async def complaints_by_category(
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[List[CategoryCount]]:
    return ApiResponse(data=await service.complaints_by_category(scope))


@router.get("/report", response_model=ApiResponse[ComplaintReportResponse])
async def complaint_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[ComplaintReportResponse]:
    try:
        data = await service.complaint_report(scope, start_date, end_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(data=data)


@router.get("/{complaint_id}", response_model=ApiResponse[ComplaintDetailResponse])
async def complaint_detail(
    complaint_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[ComplaintDetailResponse]:
    try:
        return ApiResponse(data=await service.get_complaint_detail(scope, complaint_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{complaint_id}/comments",
    response_model=ApiResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    complaint_id: UUID,
    payload: CommentCreate,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_staff),
) -> ApiResponse[CommentResponse]:
    try:
        comment = await service.add_comment(scope, complaint_id, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Comment added successfully", data=comment)


@router.patch("/{complaint_id}/status", response_model=ApiResponse[ComplaintResponse])
async def update_status(
    complaint_id: UUID,
    payload: StatusUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_staff),
) -> ApiResponse[ComplaintResponse]:
    try:
        data = await service.update_complaint_status(scope, complaint_id, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Complaint status updated", data=data)


@router.patch("/{complaint_id}/resolve", response_model=ApiResponse[ComplaintResponse])
async def resolve(
    complaint_id: UUID,
    payload: ResolveRequest,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_staff),
) -> ApiResponse[ComplaintResponse]:
    try:
        data = await service.resolve_complaint(scope, complaint_id, current_user.id, payload.resolution_notes)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Complaint resolved", data=data)
