from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.dependencies import get_tenant_scope
from app.auth.rbac import require_student
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.payment_gateway import RazorpayGateway, get_payment_gateway
from app.core.schemas import ApiResponse
from app.core.tenant_scope import TenantScope

from .schemas import (
    PaymentDueResponse,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentResponse,
    PaymentStatusResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from . import service

router = APIRouter(prefix="/api/student/payments", tags=["student-payments"])


@router.get("/dues", response_model=ApiResponse[List[PaymentDueResponse]])
async def get_dues(
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
) -> ApiResponse[List[PaymentDueResponse]]:
    try:
        return ApiResponse(data=await service.get_student_dues(scope, current_user.id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/history", response_model=ApiResponse[List[PaymentResponse]])
async def get_history(
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
) -> ApiResponse[List[PaymentResponse]]:
    return ApiResponse(data=await service.payment_history(scope, current_user.id))


@router.post(
    "/initiate",
    response_model=ApiResponse[PaymentInitiateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def initiate_payment(
    payload: PaymentInitiateRequest,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> ApiResponse[PaymentInitiateResponse]:
    try:
        data = await service.initiate_student_payment(scope, current_user.id, payload, gateway)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Payment initiated successfully", data=data)


@router.post("/verify", response_model=ApiResponse[PaymentVerifyResponse])
async def verify_payment(
    payload: PaymentVerifyRequest,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> ApiResponse[PaymentVerifyResponse]:
    try:
        data = await service.verify_student_payment(scope, current_user.id, payload, gateway)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(message="Payment verified successfully", data=data)


@router.get("/status/{payment_id}", response_model=ApiResponse[PaymentStatusResponse])
async def payment_status(
    payment_id: UUID,
    scope: TenantScope = Depends(get_tenant_scope),
    current_user: CurrentUser = Depends(require_student),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> ApiResponse[PaymentStatusResponse]:
    try:
        data = await service.check_student_payment_status(scope, current_user.id, payment_id, gateway)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ApiResponse(data=data)
