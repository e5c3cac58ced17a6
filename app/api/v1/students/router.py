from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_admin, require_staff
from app.core.exceptions import ServiceError
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import StudentCreate, StudentCreateResponse, StudentListResponse, StudentResponse
from . import service

router = APIRouter(prefix="/api/hostel/students", tags=["students"])


@router.post(
    "",
    response_model=ApiResponse[StudentCreateResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_student(
    payload: StudentCreate,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[StudentCreateResponse]:
    try:
        student = await service.create_student(scope, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Student created successfully", data=student)


@router.get(
    "",
    response_model=ApiResponse[StudentListResponse],
    dependencies=[Depends(require_staff)],
)
async def list_students(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[StudentListResponse]:
    return ApiResponse(data=await service.list_students(scope, search=search, page=page, limit=limit))


@router.get(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
    dependencies=[Depends(require_staff)],
)
async def get_student(
    student_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
) -> ApiResponse[StudentResponse]:
    try:
        return ApiResponse(data=await service.get_student(scope, student_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
