import logging
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError

from app.api.v1.allocations.service import allocate_student
from app.auth.models import User
from app.auth.security import generate_temporary_password, hash_password
from app.core.enums import AllocationStatus, UserRole
from app.core.exceptions import ServiceError
from app.core.models import Room, RoomAllocation
from app.core.tenant_scope import TenantScope

from .schemas import CurrentRoom, StudentCreate, StudentCreateResponse, StudentListResponse, StudentResponse

logger = logging.getLogger(__name__)


def _student_query(scope: TenantScope):
    """Students with their ACTIVE allocation (if any) outer-joined."""
    return (
        scope.select(User, User, RoomAllocation, Room)
        .outerjoin(
            RoomAllocation,
            and_(
                RoomAllocation.student_id == User.id,
                RoomAllocation.status == AllocationStatus.ACTIVE.value,
            ),
        )
        .outerjoin(Room, Room.id == RoomAllocation.room_id)
        .where(User.role == UserRole.STUDENT.value)
    )


def _to_response(user: User, alloc: Optional[RoomAllocation], room: Optional[Room]) -> StudentResponse:
    current = None
    if alloc is not None and room is not None:
        current = CurrentRoom(
            allocation_id=alloc.id,
            room_id=room.id,
            room_number=room.room_number,
            allocated_at=alloc.allocated_at,
        )
    return StudentResponse(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        mobile=user.mobile,
        enrollment_number=user.enrollment_number,
        status=user.status,
        created_at=user.created_at,
        current_room=current,
    )


async def create_student(scope: TenantScope, payload: StudentCreate) -> StudentCreateResponse:
    """Create a STUDENT user, optionally allocating a room in the same transaction."""
    email = payload.email.lower()
    existing = await scope.db.execute(scope.select(User, User.id).where(func.lower(User.email) == email))
    if existing.scalar_one_or_none() is not None:
        raise ServiceError("User with this email already exists", status.HTTP_409_CONFLICT)

    temporary_password = None if payload.password else generate_temporary_password()
    student = User(
        full_name=payload.full_name.strip(),
        email=email,
        mobile=payload.mobile,
        enrollment_number=payload.enrollment_number,
        password_hash=hash_password(payload.password or temporary_password),
        role=UserRole.STUDENT.value,
        status="ACTIVE",
    )
    scope.add(student)
    try:
        await scope.db.flush()
        if payload.room_id is not None:
            await allocate_student(scope, student.id, payload.room_id, remarks="Allocated at registration")
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise ServiceError("User with this email already exists", status.HTTP_409_CONFLICT)
    except ServiceError:
        await scope.db.rollback()
        raise

    logger.info("Student %s created (tenant=%s)", student.id, scope.tenant_id)
    created = await get_student(scope, student.id)
    return StudentCreateResponse(**created.model_dump(), temporary_password=temporary_password)


async def list_students(
    scope: TenantScope,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> StudentListResponse:
    stmt = _student_query(scope)
    if search:
        term = f"%{search.strip()}%"
        stmt = stmt.where(User.full_name.ilike(term) | User.email.ilike(term))
    total = await scope.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    result = await scope.db.execute(stmt.order_by(User.full_name).offset((page - 1) * limit).limit(limit))
    return StudentListResponse(
        students=[_to_response(*row) for row in result.all()],
        total=total,
        page=page,
        total_pages=(total + limit - 1) // limit,
    )


async def get_student(scope: TenantScope, student_id: UUID) -> StudentResponse:
    result = await scope.db.execute(_student_query(scope).where(User.id == student_id))
    row = result.first()
    if not row:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    return _to_response(*row)
