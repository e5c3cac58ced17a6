"""
Student dues and online payments.

Dues are generated lazily on first read and kept in line with the room's
current fee. Payments go through the gateway: initiate creates an order and a
PENDING Payment, verify (or a status poll) marks the Payment and its due PAID
in one transaction.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.api.v1.fee_settings.service import get_current_fee, log_fee_audit
from app.auth.models import User
from app.core.config import settings
from app.core.enums import AllocationStatus, PaymentDueStatus, PaymentStatus, UserRole
from app.core.exceptions import PaymentGatewayError, ServiceError
from app.core.models import FeeStructure, Payment, PaymentDue, Room, RoomAllocation
from app.core.payment_gateway import RazorpayGateway, to_paise
from app.core.tenant_scope import TenantScope

from .schemas import (
    AdminPaymentItem,
    OutstandingDueItem,
    PaymentDueResponse,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatsResponse,
    PaymentStatusResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
    RepriceResponse,
)

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = Decimal("0.01")


def _today() -> date:
    return datetime.utcnow().date()


def add_months(month_start: date, months: int) -> date:
    index = month_start.month - 1 + months
    return date(month_start.year + index // 12, index % 12 + 1, 1)


def month_key(month_start: date) -> str:
    return month_start.strftime("%Y-%m")


def due_date_for(month_start: date) -> date:
    """Due on the configured day of the month after the due month."""
    return add_months(month_start, 1).replace(day=settings.due_day_of_month)


def _format_amount(amount: Decimal) -> str:
    return format(Decimal(amount).normalize(), "f")


def _as_decimal(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


async def _active_allocation(scope: TenantScope, student_id: UUID, *, for_update: bool = False) -> RoomAllocation:
    stmt = scope.select(RoomAllocation).where(
        RoomAllocation.student_id == student_id,
        RoomAllocation.status == AllocationStatus.ACTIVE.value,
    )
    if for_update:
        stmt = stmt.with_for_update()
    allocation = (await scope.db.execute(stmt)).scalars().first()
    if not allocation:
        raise ServiceError("Student does not have an active room allocation", status.HTTP_400_BAD_REQUEST)
    return allocation


async def _current_fee_or_400(scope: TenantScope, room_id: UUID) -> FeeStructure:
    fee = await get_current_fee(scope, room_id)
    if not fee:
        raise ServiceError("No active fee structure found for the student's room", status.HTTP_400_BAD_REQUEST)
    return fee


async def _list_dues(scope: TenantScope, student_id: UUID) -> List[PaymentDueResponse]:
    result = await scope.db.execute(
        scope.select(PaymentDue)
        .where(PaymentDue.student_id == student_id)
        .order_by(PaymentDue.month_year.desc())
        .execution_options(populate_existing=True)
    )
    return [PaymentDueResponse.model_validate(d) for d in result.scalars().all()]


def _generate_dues(scope: TenantScope, student_id: UUID, amount: Decimal) -> None:
    start = _today().replace(day=1)
    for offset in range(settings.dues_months_ahead + 1):
        month_start = add_months(start, offset)
        scope.add(
            PaymentDue(
                student_id=student_id,
                month_year=month_key(month_start),
                due_amount=amount,
                due_date=due_date_for(month_start),
                status=PaymentDueStatus.PENDING.value,
            )
        )


async def _reprice_dues(
    scope: TenantScope,
    student_id: UUID,
    amount: Decimal,
    changed_by: Optional[UUID],
) -> int:
    """Bring every unpaid due to the current fee. Returns the number repriced."""
    result = await scope.db.execute(
        scope.select(PaymentDue)
        .where(
            PaymentDue.student_id == student_id,
            PaymentDue.status != PaymentDueStatus.PAID.value,
        )
        .with_for_update()
    )
    repriced = 0
    for due in result.scalars().all():
        if _as_decimal(due.due_amount) == _as_decimal(amount):
            continue
        old_amount = due.due_amount
        due.due_amount = amount
        await log_fee_audit(
            scope,
            "payment_dues",
            due.id,
            "REPRICE",
            {"month_year": due.month_year, "due_amount": str(old_amount)},
            {"month_year": due.month_year, "due_amount": str(amount)},
            changed_by,
        )
        repriced += 1

    if repriced:
        logger.warning(
            "Repriced %d due(s) of student %s to %s after a fee change",
            repriced,
            student_id,
            amount,
        )
    return repriced


async def _mark_overdue(scope: TenantScope, student_id: UUID) -> None:
    await scope.db.execute(
        scope.update(PaymentDue)
        .where(
            PaymentDue.student_id == student_id,
            PaymentDue.status == PaymentDueStatus.PENDING.value,
            PaymentDue.due_date < _today(),
        )
        .values(status=PaymentDueStatus.OVERDUE.value)
        .execution_options(synchronize_session=False)
    )


async def get_student_dues(scope: TenantScope, student_id: UUID) -> List[PaymentDueResponse]:
    allocation = await _active_allocation(scope, student_id)
    fee = await _current_fee_or_400(scope, allocation.room_id)
    amount = fee.total_monthly_fee

    existing = await scope.db.scalar(scope.count(PaymentDue).where(PaymentDue.student_id == student_id))
    if not existing:
        _generate_dues(scope, student_id, amount)
        try:
            await scope.db.commit()
            logger.info("Generated %d due(s) for student %s", settings.dues_months_ahead + 1, student_id)
        except IntegrityError:
            # A concurrent request generated them first
            await scope.db.rollback()
    else:
        await _reprice_dues(scope, student_id, amount, changed_by=None)

    await _mark_overdue(scope, student_id)
    await scope.db.commit()
    return await _list_dues(scope, student_id)


async def reprice_student_dues(scope: TenantScope, student_id: UUID, changed_by: Optional[UUID]) -> RepriceResponse:
    student = await scope.get(User, student_id)
    if not student or student.role != UserRole.STUDENT.value:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    allocation = await _active_allocation(scope, student_id)
    fee = await _current_fee_or_400(scope, allocation.room_id)

    repriced = await _reprice_dues(scope, student_id, fee.total_monthly_fee, changed_by)
    await scope.db.commit()
    return RepriceResponse(
        student_id=student_id,
        monthly_fee=fee.total_monthly_fee,
        repriced_count=repriced,
        dues=await _list_dues(scope, student_id),
    )


async def initiate_student_payment(
    scope: TenantScope,
    student_id: UUID,
    payload: PaymentInitiateRequest,
    gateway: RazorpayGateway,
) -> PaymentInitiateResponse:
    # Held until commit: concurrent initiations for one student run one at a time
    allocation = await _active_allocation(scope, student_id, for_update=True)
    fee = await _current_fee_or_400(scope, allocation.room_id)
    expected = _as_decimal(fee.total_monthly_fee)

    if abs(payload.amount - expected) > AMOUNT_TOLERANCE:
        logger.warning(
            "Amount mismatch for student %s (%s): got %s, expected %s",
            student_id,
            payload.month_year,
            payload.amount,
            expected,
        )
        raise ServiceError(f"Invalid amount. Expected: ₹{_format_amount(expected)}", status.HTTP_400_BAD_REQUEST)

    month_payments = scope.count(Payment).where(
        Payment.student_id == student_id,
        Payment.month_year == payload.month_year,
    )
    if await scope.db.scalar(month_payments.where(Payment.status == PaymentStatus.PAID.value)):
        raise ServiceError("Payment already made for this month", status.HTTP_400_BAD_REQUEST)

    window_start = datetime.utcnow() - timedelta(minutes=settings.payment_pending_window_minutes)
    recent_pending = await scope.db.scalar(
        month_payments.where(
            Payment.status == PaymentStatus.PENDING.value,
            Payment.created_at >= window_start,
        )
    )
    if recent_pending:
        raise ServiceError("Payment already initiated for this month", status.HTTP_400_BAD_REQUEST)

    room = await scope.get(Room, allocation.room_id)
    order = await gateway.create_order(
        expected,
        receipt=f"STU-{payload.month_year}-{str(student_id)[:8]}",
        notes={
            "student_id": str(student_id),
            "month_year": payload.month_year,
            "type": "STUDENT_PAYMENT",
            "room_id": str(allocation.room_id),
        },
    )

    payment = Payment(
        student_id=student_id,
        amount=expected,
        month_year=payload.month_year,
        payment_mode="ONLINE",
        status=PaymentStatus.PENDING.value,
        razorpay_order_id=order["id"],
        remarks=f"Payment for month {payload.month_year} - Room {room.room_number}",
    )
    scope.add(payment)
    await scope.db.commit()
    logger.info("Payment %s initiated: order %s, %s for %s", payment.id, order["id"], expected, payload.month_year)

    return PaymentInitiateResponse(
        order_id=order["id"],
        amount=expected,
        currency=order.get("currency", gateway.currency),
        payment_id=payment.id,
    )


async def _mark_paid(scope: TenantScope, payment: Payment, gateway_payment_id: str, signature: Optional[str] = None) -> None:
    payment.status = PaymentStatus.PAID.value
    payment.razorpay_payment_id = gateway_payment_id
    payment.transaction_id = gateway_payment_id
    if signature:
        payment.razorpay_signature = signature
    payment.payment_date = datetime.utcnow()

    await scope.db.execute(
        scope.update(PaymentDue)
        .where(
            PaymentDue.student_id == payment.student_id,
            PaymentDue.month_year == payment.month_year,
        )
        .values(status=PaymentDueStatus.PAID.value, paid_amount=payment.amount)
        .execution_options(synchronize_session=False)
    )


async def verify_student_payment(
    scope: TenantScope,
    student_id: UUID,
    payload: PaymentVerifyRequest,
    gateway: RazorpayGateway,
) -> PaymentVerifyResponse:
    result = await scope.db.execute(
        scope.select(Payment)
        .where(Payment.razorpay_order_id == payload.razorpay_order_id)
        .with_for_update()
    )
    payment = result.scalar_one_or_none()
    if not payment or payment.student_id != student_id:
        raise ServiceError("Payment record not found", status.HTTP_404_NOT_FOUND)

    if payment.status == PaymentStatus.PAID.value:
        return PaymentVerifyResponse(payment_id=payment.id, status=payment.status)

    verification = await gateway.verify_payment(
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
        payment.amount,
    )
    if not verification.valid:
        error = verification.error or "Payment verification failed"
        payment.status = PaymentStatus.FAILED.value
        payment.remarks = f"Verification failed: {error}"
        await scope.db.commit()
        logger.warning("Payment %s verification failed: %s", payment.id, error)
        raise ServiceError(error, status.HTTP_400_BAD_REQUEST)

    await _mark_paid(scope, payment, payload.razorpay_payment_id, payload.razorpay_signature)
    await scope.db.commit()
    logger.info("Payment %s verified (gateway payment %s)", payment.id, payload.razorpay_payment_id)
    return PaymentVerifyResponse(payment_id=payment.id, status=payment.status)


async def check_student_payment_status(
    scope: TenantScope,
    student_id: UUID,
    payment_id: UUID,
    gateway: RazorpayGateway,
) -> PaymentStatusResponse:
    payment = await scope.get(Payment, payment_id)
    if not payment or payment.student_id != student_id:
        raise ServiceError("Payment not found", status.HTTP_404_NOT_FOUND)

    if payment.status == PaymentStatus.PENDING.value:
        try:
            if payment.razorpay_payment_id:
                candidates = [await gateway.fetch_payment(payment.razorpay_payment_id)]
            elif payment.razorpay_order_id:
                candidates = await gateway.fetch_order_payments(payment.razorpay_order_id)
            else:
                candidates = []
        except PaymentGatewayError as e:
            logger.warning("Status check for payment %s failed: %s", payment.id, e.message)
            candidates = []

        captured = next((p for p in candidates if p.get("status") == "captured"), None)
        if captured and captured.get("amount") not in (None, to_paise(payment.amount)):
            logger.warning(
                "Captured amount %s does not match payment %s (%s)",
                captured.get("amount"),
                payment.id,
                payment.amount,
            )
            captured = None

        if captured:
            payment = await scope.get(Payment, payment_id, for_update=True)
            if payment.status == PaymentStatus.PENDING.value:
                await _mark_paid(scope, payment, captured["id"])
                await scope.db.commit()
                logger.info("Payment %s marked PAID from gateway status", payment.id)

    return PaymentStatusResponse(
        payment_id=payment.id,
        status=payment.status,
        amount=payment.amount,
        month_year=payment.month_year,
        payment_date=payment.payment_date,
    )


async def payment_history(scope: TenantScope, student_id: UUID) -> List[PaymentResponse]:
    result = await scope.db.execute(
        scope.select(Payment)
        .where(Payment.student_id == student_id, Payment.status == PaymentStatus.PAID.value)
        .order_by(Payment.payment_date.desc())
    )
    return [PaymentResponse.model_validate(p) for p in result.scalars().all()]


async def list_payments(
    scope: TenantScope,
    *,
    payment_status: Optional[str] = None,
    month_year: Optional[str] = None,
    student_id: Optional[UUID] = None,
    page: int = 1,
    limit: int = 10,
) -> PaymentListResponse:
    stmt = scope.select(Payment, Payment, User).join(User, User.id == Payment.student_id)
    if payment_status:
        stmt = stmt.where(Payment.status == payment_status)
    if month_year:
        stmt = stmt.where(Payment.month_year == month_year)
    if student_id:
        stmt = stmt.where(Payment.student_id == student_id)

    total = await scope.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    result = await scope.db.execute(
        stmt.order_by(Payment.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    payments = [
        AdminPaymentItem(
            **PaymentResponse.model_validate(payment).model_dump(),
            student_name=user.full_name,
            student_email=user.email,
        )
        for payment, user in result.all()
    ]
    return PaymentListResponse(
        payments=payments,
        total=total,
        page=page,
        total_pages=(total + limit - 1) // limit,
    )


async def payment_stats(scope: TenantScope) -> PaymentStatsResponse:
    paid = Payment.status == PaymentStatus.PAID.value
    total_collected = await scope.db.scalar(
        scope.select(Payment, func.coalesce(func.sum(Payment.amount), 0)).where(paid)
    )
    today_start = datetime.combine(_today(), time.min)
    today_collection = await scope.db.scalar(
        scope.select(Payment, func.coalesce(func.sum(Payment.amount), 0)).where(
            paid, Payment.payment_date >= today_start
        )
    )

    result = await scope.db.execute(
        scope.select(
            PaymentDue,
            PaymentDue.status,
            func.count(PaymentDue.id),
            func.coalesce(func.sum(PaymentDue.due_amount), 0),
        )
        .where(PaymentDue.status.in_([PaymentDueStatus.PENDING.value, PaymentDueStatus.OVERDUE.value]))
        .group_by(PaymentDue.status)
    )
    by_status = {row[0]: (row[1], row[2]) for row in result.all()}
    pending_count, pending_total = by_status.get(PaymentDueStatus.PENDING.value, (0, 0))
    overdue_count, overdue_total = by_status.get(PaymentDueStatus.OVERDUE.value, (0, 0))

    return PaymentStatsResponse(
        total_collected=_as_decimal(total_collected),
        total_pending=_as_decimal(pending_total),
        total_overdue=_as_decimal(overdue_total),
        today_collection=_as_decimal(today_collection),
        pending_count=pending_count,
        overdue_count=overdue_count,
    )


async def outstanding_dues(scope: TenantScope, month_year: Optional[str] = None) -> List[OutstandingDueItem]:
    stmt = (
        scope.select(PaymentDue, PaymentDue, User)
        .join(User, User.id == PaymentDue.student_id)
        .where(PaymentDue.status != PaymentDueStatus.PAID.value)
    )
    if month_year:
        stmt = stmt.where(PaymentDue.month_year == month_year)
    result = await scope.db.execute(stmt.order_by(PaymentDue.due_date, User.full_name))

    today = _today()
    return [
        OutstandingDueItem(
            id=due.id,
            student_id=user.id,
            student_name=user.full_name,
            student_email=user.email,
            month_year=due.month_year,
            due_amount=due.due_amount,
            due_date=due.due_date,
            status=PaymentDueStatus.OVERDUE.value if due.due_date < today else due.status,
        )
        for due, user in result.all()
    ]
