"""
Complaint lifecycle.

Status only moves along ALLOWED_TRANSITIONS. Every transition stamps its
timestamp and appends a comment to the thread in the same commit.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, FrozenSet, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select

from app.auth.models import User
from app.core.enums import AllocationStatus, CommentType, ComplaintStatus
from app.core.exceptions import InvalidStatusTransition, ServiceError
from app.core.models import Complaint, ComplaintComment, Room, RoomAllocation
from app.core.tenant_scope import TenantScope

from .schemas import (
    CategoryCount,
    CommentCreate,
    CommentResponse,
    ComplaintCreate,
    ComplaintDetailResponse,
    ComplaintListResponse,
    ComplaintReportResponse,
    ComplaintResponse,
    ComplaintStatsResponse,
    StatusUpdate,
)

logger = logging.getLogger(__name__)

S = ComplaintStatus

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    S.PENDING.value: frozenset({S.ACKNOWLEDGED.value, S.IN_PROGRESS.value, S.REJECTED.value}),
    S.ACKNOWLEDGED.value: frozenset({S.IN_PROGRESS.value, S.RESOLVED.value, S.REJECTED.value}),
    S.IN_PROGRESS.value: frozenset({S.RESOLVED.value, S.REJECTED.value}),
    S.RESOLVED.value: frozenset({S.CLOSED.value, S.IN_PROGRESS.value}),
    S.CLOSED.value: frozenset(),
    S.REJECTED.value: frozenset(),
}

TIMESTAMP_FIELDS = {
    S.ACKNOWLEDGED.value: "acknowledged_at",
    S.IN_PROGRESS.value: "in_progress_at",
    S.RESOLVED.value: "resolved_at",
    S.CLOSED.value: "closed_at",
    S.REJECTED.value: "rejected_at",
}

RESOLUTION_NOTES_MIN = 10
RESOLUTION_NOTES_MAX = 2000


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _validate_resolution_notes(notes: Optional[str]) -> str:
    notes = (notes or "").strip()
    if len(notes) < RESOLUTION_NOTES_MIN:
        raise ServiceError(
            f"Resolution notes must be at least {RESOLUTION_NOTES_MIN} characters",
            status.HTTP_400_BAD_REQUEST,
        )
    if len(notes) > RESOLUTION_NOTES_MAX:
        raise ServiceError(
            f"Resolution notes must be at most {RESOLUTION_NOTES_MAX} characters",
            status.HTTP_400_BAD_REQUEST,
        )
    return notes


def _complaint_query(scope: TenantScope):
    return (
        scope.select(Complaint, Complaint, User, Room.room_number)
        .join(User, User.id == Complaint.student_id)
        .outerjoin(Room, Room.id == Complaint.room_id)
    )


def _to_response(complaint: Complaint, student: User, room_number: Optional[str]) -> ComplaintResponse:
    return ComplaintResponse(
        id=complaint.id,
        student_id=complaint.student_id,
        student_name=student.full_name,
        student_email=student.email,
        room_id=complaint.room_id,
        room_number=room_number,
        category=complaint.category,
        title=complaint.title,
        description=complaint.description,
        priority=complaint.priority,
        status=complaint.status,
        attachment_url=complaint.attachment_url,
        resolution_notes=complaint.resolution_notes,
        resolved_by=complaint.resolved_by,
        acknowledged_at=complaint.acknowledged_at,
        in_progress_at=complaint.in_progress_at,
        resolved_at=complaint.resolved_at,
        closed_at=complaint.closed_at,
        rejected_at=complaint.rejected_at,
        created_at=complaint.created_at,
        updated_at=complaint.updated_at,
    )


def _date_range(stmt, start_date: Optional[date], end_date: Optional[date]):
    if start_date:
        stmt = stmt.where(Complaint.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        # Whole end day included
        stmt = stmt.where(Complaint.created_at < datetime.combine(end_date + timedelta(days=1), time.min))
    return stmt


async def _load_complaint(scope: TenantScope, complaint_id: UUID, *, for_update: bool = False) -> Complaint:
    complaint = await scope.get(Complaint, complaint_id, for_update=for_update)
    if not complaint:
        raise ServiceError("Complaint not found", status.HTTP_404_NOT_FOUND)
    return complaint


def _add_comment(
    scope: TenantScope,
    complaint: Complaint,
    user_id: UUID,
    text: str,
    comment_type: CommentType = CommentType.COMMENT,
    is_internal: bool = False,
) -> ComplaintComment:
    comment = ComplaintComment(
        complaint_id=complaint.id,
        user_id=user_id,
        comment=text,
        is_internal=is_internal,
        comment_type=comment_type.value,
        created_at=datetime.utcnow(),
    )
    scope.db.add(comment)
    return comment


async def _list_comments(scope: TenantScope, complaint_id: UUID, include_internal: bool) -> List[CommentResponse]:
    # Comments carry no tenant_id; the complaint lookup already checked the tenant
    stmt = (
        select(ComplaintComment, User.full_name)
        .join(User, User.id == ComplaintComment.user_id)
        .where(ComplaintComment.complaint_id == complaint_id)
        .order_by(ComplaintComment.created_at)
    )
    if not include_internal:
        stmt = stmt.where(ComplaintComment.is_internal.is_(False))
    result = await scope.db.execute(stmt)
    return [
        CommentResponse(
            id=c.id,
            user_id=c.user_id,
            user_name=name,
            comment=c.comment,
            is_internal=c.is_internal,
            comment_type=c.comment_type,
            created_at=c.created_at,
        )
        for c, name in result.all()
    ]


async def submit_complaint(scope: TenantScope, student_id: UUID, payload: ComplaintCreate) -> ComplaintResponse:
    room_id = payload.room_id
    if room_id:
        if not await scope.get(Room, room_id):
            raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)
    else:
        room_id = await scope.db.scalar(
            scope.select(RoomAllocation, RoomAllocation.room_id).where(
                RoomAllocation.student_id == student_id,
                RoomAllocation.status == AllocationStatus.ACTIVE.value,
            )
        )

    complaint = Complaint(
        student_id=student_id,
        room_id=room_id,
        category=payload.category.value,
        title=payload.title.strip(),
        description=payload.description.strip(),
        priority=payload.priority.value,
        status=ComplaintStatus.PENDING.value,
        attachment_url=payload.attachment_url,
    )
    scope.add(complaint)
    await scope.db.commit()
    logger.info("Complaint %s submitted by student %s (%s)", complaint.id, student_id, complaint.category)
    return await get_complaint(scope, complaint.id)


async def get_complaint(scope: TenantScope, complaint_id: UUID) -> ComplaintResponse:
    result = await scope.db.execute(
        _complaint_query(scope)
        .where(Complaint.id == complaint_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if not row:
        raise ServiceError("Complaint not found", status.HTTP_404_NOT_FOUND)
    return _to_response(*row)


async def get_complaint_detail(
    scope: TenantScope,
    complaint_id: UUID,
    *,
    student_id: Optional[UUID] = None,
) -> ComplaintDetailResponse:
    """With student_id set, only that student's complaint is visible and internal comments are hidden."""
    complaint = await get_complaint(scope, complaint_id)
    if student_id is not None and complaint.student_id != student_id:
        raise ServiceError("Complaint not found", status.HTTP_404_NOT_FOUND)
    comments = await _list_comments(scope, complaint_id, include_internal=student_id is None)
    return ComplaintDetailResponse(**complaint.model_dump(), comments=comments)


async def list_complaints(
    scope: TenantScope,
    *,
    complaint_status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    student_id: Optional[UUID] = None,
    room_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 10,
) -> ComplaintListResponse:
    stmt = _complaint_query(scope)
    if complaint_status:
        stmt = stmt.where(Complaint.status == complaint_status)
    if priority:
        stmt = stmt.where(Complaint.priority == priority)
    if category:
        stmt = stmt.where(Complaint.category == category)
    if student_id:
        stmt = stmt.where(Complaint.student_id == student_id)
    if room_id:
        stmt = stmt.where(Complaint.room_id == room_id)
    stmt = _date_range(stmt, start_date, end_date)

    total = await scope.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    result = await scope.db.execute(
        stmt.order_by(Complaint.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return ComplaintListResponse(
        complaints=[_to_response(*row) for row in result.all()],
        total=total,
        page=page,
        total_pages=(total + limit - 1) // limit,
    )


async def add_comment(
    scope: TenantScope,
    complaint_id: UUID,
    user_id: UUID,
    payload: CommentCreate,
    *,
    as_student: bool = False,
) -> CommentResponse:
    complaint = await _load_complaint(scope, complaint_id)
    if as_student:
        if complaint.student_id != user_id:
            raise ServiceError("Complaint not found", status.HTTP_404_NOT_FOUND)
        if payload.is_internal:
            raise ServiceError("Students cannot post internal comments", status.HTTP_403_FORBIDDEN)

    comment = _add_comment(
        scope,
        complaint,
        user_id,
        payload.comment.strip(),
        is_internal=payload.is_internal,
    )
    await scope.db.commit()
    author = await scope.db.get(User, user_id)
    return CommentResponse(
        id=comment.id,
        user_id=user_id,
        user_name=author.full_name if author else None,
        comment=comment.comment,
        is_internal=comment.is_internal,
        comment_type=comment.comment_type,
        created_at=comment.created_at,
    )


async def _transition(
    scope: TenantScope,
    complaint: Complaint,
    target: str,
    user_id: UUID,
    *,
    note: Optional[str] = None,
    resolution_notes: Optional[str] = None,
) -> None:
    current = complaint.status
    if not can_transition(current, target):
        raise InvalidStatusTransition(current, target)
    if target == S.RESOLVED.value:
        resolution_notes = _validate_resolution_notes(resolution_notes)

    complaint.status = target
    setattr(complaint, TIMESTAMP_FIELDS[target], datetime.utcnow())

    if target == S.RESOLVED.value:
        complaint.resolution_notes = resolution_notes
        complaint.resolved_by = user_id
        _add_comment(scope, complaint, user_id, complaint.resolution_notes, CommentType.RESOLUTION)
    else:
        if current == S.RESOLVED.value and target == S.IN_PROGRESS.value:
            # Reopened
            complaint.resolved_at = None
            complaint.resolved_by = None
        text = f"Status changed from {current} to {target}"
        if note:
            text = f"{text}: {note.strip()}"
        _add_comment(scope, complaint, user_id, text, CommentType.STATUS_UPDATE)

    logger.info("Complaint %s: %s -> %s by %s", complaint.id, current, target, user_id)


async def update_complaint_status(
    scope: TenantScope,
    complaint_id: UUID,
    user_id: UUID,
    payload: StatusUpdate,
) -> ComplaintResponse:
    complaint = await _load_complaint(scope, complaint_id, for_update=True)
    await _transition(
        scope,
        complaint,
        payload.status.value,
        user_id,
        note=payload.note,
        resolution_notes=payload.resolution_notes,
    )
    await scope.db.commit()
    return await get_complaint(scope, complaint_id)


async def resolve_complaint(
    scope: TenantScope,
    complaint_id: UUID,
    user_id: UUID,
    resolution_notes: str,
) -> ComplaintResponse:
    complaint = await _load_complaint(scope, complaint_id, for_update=True)
    await _transition(scope, complaint, S.RESOLVED.value, user_id, resolution_notes=resolution_notes)
    await scope.db.commit()
    return await get_complaint(scope, complaint_id)


async def complaint_stats(scope: TenantScope) -> ComplaintStatsResponse:
    result = await scope.db.execute(
        scope.select(Complaint, Complaint.status, func.count(Complaint.id)).group_by(Complaint.status)
    )
    counts = {row[0]: row[1] for row in result.all()}
    return ComplaintStatsResponse(
        total=sum(counts.values()),
        pending=counts.get(S.PENDING.value, 0),
        acknowledged=counts.get(S.ACKNOWLEDGED.value, 0),
        in_progress=counts.get(S.IN_PROGRESS.value, 0),
        resolved=counts.get(S.RESOLVED.value, 0),
        closed=counts.get(S.CLOSED.value, 0),
        rejected=counts.get(S.REJECTED.value, 0),
    )


async def complaints_by_category(scope: TenantScope) -> List[CategoryCount]:
    result = await scope.db.execute(
        scope.select(Complaint, Complaint.category, func.count(Complaint.id))
        .group_by(Complaint.category)
        .order_by(func.count(Complaint.id).desc(), Complaint.category)
    )
    return [CategoryCount(category=category, count=count) for category, count in result.all()]


async def complaint_report(
    scope: TenantScope,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> ComplaintReportResponse:
    if start_date and end_date and start_date > end_date:
        raise ServiceError("Start date must be on or before end date", status.HTTP_400_BAD_REQUEST)
    stmt = _date_range(_complaint_query(scope), start_date, end_date)
    result = await scope.db.execute(stmt.order_by(Complaint.created_at.desc()))
    complaints = [_to_response(*row) for row in result.all()]
    return ComplaintReportResponse(complaints=complaints, count=len(complaints))
