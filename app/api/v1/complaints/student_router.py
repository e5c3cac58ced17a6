from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_student
from app.auth.schemas import CurrentUser
from app.core.enums import ComplaintStatus
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    CommentCreate,
    CommentResponse,
    ComplaintCreate,
    ComplaintDetailResponse,
    ComplaintListResponse,
    ComplaintResponse,
)
from . import service

router = APIRouter(prefix="/api/student/complaints", tags=["student-complaints"])


@router.post("", response_model=ApiResponse[ComplaintResponse], status_code=status.HTTP_201_CREATED)
async def submit_complaint(
    payload: ComplaintCreate,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
) -> ApiResponse[ComplaintResponse]:
    try:
        complaint = await service.submit_complaint(scope, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Complaint submitted successfully", data=complaint)


@router.get("", response_model=ApiResponse[ComplaintListResponse])
async def my_complaints(
    complaint_status: Optional[ComplaintStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
) -> ApiResponse[ComplaintListResponse]:
    data = await service.list_complaints(
        scope,
        student_id=current_user.id,
        complaint_status=complaint_status.value if complaint_status else None,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=data)


@router.get("/{complaint_id}", response_model=ApiResponse[ComplaintDetailResponse])
async def complaint_detail(
    complaint_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
) -> ApiResponse[ComplaintDetailResponse]:
    try:
        data = await service.get_complaint_detail(scope, complaint_id, student_id=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(data=data)


@router.post(
    "/{complaint_id}/comments",
    response_model=ApiResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    complaint_id: UUID,
    payload: CommentCreate,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
) -> ApiResponse[CommentResponse]:
    try:
        comment = await service.add_comment(scope, complaint_id, current_user.id, payload, as_student=True)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Comment added successfully", data=comment)
