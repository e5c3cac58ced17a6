"""
Admin dashboard: tenant-wide room, student, complaint and fee figures,
plus occupancy and complaint trends. Read-only.
"""

from collections import Counter
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import distinct, func

from app.api.v1.complaints.service import complaint_stats
from app.api.v1.payments.service import add_months, month_key
from app.auth.models import User
from app.core.enums import AllocationStatus, ComplaintStatus, PaymentDueStatus, PaymentStatus, RoomStatus, UserRole
from app.core.models import Complaint, Payment, PaymentDue, Room, RoomAllocation
from app.core.tenant_scope import TenantScope

from .schemas import (
    ComplaintTrendResponse,
    DailyCount,
    DashboardMetrics,
    DashboardResponse,
    FeeMetrics,
    OccupancyTrendPoint,
    OccupancyTrendResponse,
    RoomStatusCounts,
    StatusCount,
)

OPEN_COMPLAINT_STATUSES = (
    ComplaintStatus.PENDING.value,
    ComplaintStatus.ACKNOWLEDGED.value,
    ComplaintStatus.IN_PROGRESS.value,
)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def _rate(part, whole) -> float:
    return round(float(part) / float(whole) * 100, 2) if whole else 0.0


async def dashboard_metrics(scope: TenantScope) -> DashboardResponse:
    db = scope.db
    totals = (
        await db.execute(
            scope.select(
                Room,
                func.count(Room.id),
                func.coalesce(func.sum(Room.capacity), 0),
                func.coalesce(func.sum(Room.occupied), 0),
            )
        )
    ).one()
    total_rooms, total_capacity, occupied_beds = totals
    occupied_rooms = await db.scalar(scope.count(Room).where(Room.occupied > 0)) or 0

    result = await db.execute(scope.select(Room, Room.status, func.count(Room.id)).group_by(Room.status))
    rooms_by_status = {row[0]: row[1] for row in result.all()}

    total_students = await db.scalar(scope.count(User).where(User.role == UserRole.STUDENT.value)) or 0
    active_allocations = await db.scalar(
        scope.count(RoomAllocation).where(RoomAllocation.status == AllocationStatus.ACTIVE.value)
    ) or 0

    complaints = await complaint_stats(scope)
    active_complaints = await db.scalar(
        scope.count(Complaint).where(Complaint.status.in_(OPEN_COMPLAINT_STATUSES))
    ) or 0

    unpaid = PaymentDue.status != PaymentDueStatus.PAID.value
    pending_payments = await db.scalar(scope.count(PaymentDue).where(unpaid)) or 0
    total_due = _money(
        await db.scalar(scope.select(PaymentDue, func.coalesce(func.sum(PaymentDue.due_amount), 0)).where(unpaid))
    )
    total_collected = _money(
        await db.scalar(
            scope.select(Payment, func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.status == PaymentStatus.PAID.value
            )
        )
    )
    today = datetime.utcnow().date()
    defaulters = await db.scalar(
        scope.select(PaymentDue, func.count(distinct(PaymentDue.student_id))).where(
            unpaid, PaymentDue.due_date < today
        )
    ) or 0

    return DashboardResponse(
        metrics=DashboardMetrics(
            total_rooms=total_rooms,
            occupied_rooms=occupied_rooms,
            available_rooms=rooms_by_status.get(RoomStatus.AVAILABLE.value, 0),
            total_capacity=total_capacity,
            occupied_beds=occupied_beds,
            occupancy_rate=_rate(occupied_beds, total_capacity),
            total_students=total_students,
            active_allocations=active_allocations,
            active_complaints=active_complaints,
            resolved_complaints=complaints.resolved,
            pending_payments=pending_payments,
            total_fee_collected=total_collected,
        ),
        room_status=RoomStatusCounts(
            available=rooms_by_status.get(RoomStatus.AVAILABLE.value, 0),
            full=rooms_by_status.get(RoomStatus.FULL.value, 0),
            maintenance=rooms_by_status.get(RoomStatus.MAINTENANCE.value, 0),
            inactive=rooms_by_status.get(RoomStatus.INACTIVE.value, 0),
        ),
        complaints=complaints,
        fees=FeeMetrics(
            total_due=total_due,
            total_collected=total_collected,
            total_defaulters=defaulters,
            collection_rate=_rate(total_collected, total_due + total_collected),
        ),
        last_updated=datetime.utcnow(),
    )


async def occupancy_trend(scope: TenantScope, months: int = 12) -> OccupancyTrendResponse:
    """Per calendar month: allocations made, checkouts, and students housed at month end (or now)."""
    now = datetime.utcnow()
    first = add_months(now.date().replace(day=1), -(months - 1))
    result = await scope.db.execute(
        scope.select(RoomAllocation, RoomAllocation.allocated_at, RoomAllocation.checkout_at)
    )
    spans = [(_naive_utc(a), _naive_utc(c)) for a, c in result.all()]

    points: List[OccupancyTrendPoint] = []
    for offset in range(months):
        month_start = add_months(first, offset)
        start = datetime.combine(month_start, datetime.min.time())
        end = datetime.combine(add_months(month_start, 1), datetime.min.time())
        boundary = min(end, now)
        points.append(
            OccupancyTrendPoint(
                month=month_key(month_start),
                allocations=sum(1 for a, _ in spans if start <= a < end),
                checkouts=sum(1 for _, c in spans if c is not None and start <= c < end),
                active_students=sum(1 for a, c in spans if a < boundary and (c is None or c >= boundary)),
            )
        )
    return OccupancyTrendResponse(months=months, points=points)


async def complaint_trend(scope: TenantScope, days: int = 30) -> ComplaintTrendResponse:
    """Complaints raised in the last `days` days, by status and by day."""
    today = datetime.utcnow().date()
    from_date = today - timedelta(days=days)
    result = await scope.db.execute(
        scope.select(Complaint, Complaint.status, Complaint.created_at).where(
            Complaint.created_at >= datetime.combine(from_date, datetime.min.time())
        )
    )
    rows = [(status, _naive_utc(created_at)) for status, created_at in result.all()]

    by_status = Counter(status for status, _ in rows)
    by_day = Counter(created_at.date() for _, created_at in rows)
    daily: List[DailyCount] = []
    day: date = from_date
    while day <= today:
        daily.append(DailyCount(day=day, count=by_day.get(day, 0)))
        day += timedelta(days=1)

    return ComplaintTrendResponse(
        days=days,
        from_date=from_date,
        total=len(rows),
        by_status=[
            StatusCount(status=s.value, count=by_status.get(s.value, 0))
            for s in ComplaintStatus
        ],
        daily=daily,
    )
