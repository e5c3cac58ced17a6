"""
Fee settings. A fee change never edits a current row: it closes the room's
current FeeStructure (effective_to) and inserts a new one, with an audit entry
for both in the same transaction.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import status

from app.core.config import settings
from app.core.exceptions import ServiceError
from app.core.models import FeeAuditLog, FeeStructure, Room
from app.core.tenant_scope import TenantScope

from .schemas import (
    FeeComponents,
    FeeSettingsResponse,
    FeeSettingsUpdate,
    FeeSettingsUpdateResponse,
    FeeStructureResponse,
    RoomFeeStructureResponse,
    RoomFeeUpdate,
)

logger = logging.getLogger(__name__)

FEE_STRUCTURES = "fee_structures"


async def log_fee_audit(
    scope: TenantScope,
    reference_table: str,
    reference_id: UUID,
    action_type: str,
    old_value: Optional[Dict[str, Any]],
    new_value: Optional[Dict[str, Any]],
    changed_by: Optional[UUID],
) -> None:
    """Append to the fee audit trail; committed with the caller's transaction."""
    scope.add(
        FeeAuditLog(
            reference_table=reference_table,
            reference_id=reference_id,
            action_type=action_type,
            old_value=old_value,
            new_value=new_value,
            changed_by=changed_by,
        )
    )


async def get_current_fee(scope: TenantScope, room_id: UUID) -> Optional[FeeStructure]:
    result = await scope.db.execute(
        scope.select(FeeStructure)
        .where(FeeStructure.room_id == room_id, FeeStructure.effective_to.is_(None))
        .order_by(FeeStructure.effective_from.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def _validate_effective_from(effective_from: date) -> None:
    if effective_from < datetime.utcnow().date():
        raise ServiceError("Effective date cannot be in the past", status.HTTP_400_BAD_REQUEST)


def _fee_snapshot(fee: FeeStructure) -> Dict[str, Any]:
    return {
        "room_id": str(fee.room_id),
        "base_fee": str(fee.base_fee),
        "total_monthly_fee": str(fee.total_monthly_fee),
        "effective_from": fee.effective_from.isoformat(),
    }


async def _supersede_current(
    scope: TenantScope,
    room_ids: List[UUID],
    effective_from: date,
    changed_by: Optional[UUID],
) -> None:
    result = await scope.db.execute(
        scope.select(FeeStructure)
        .where(FeeStructure.room_id.in_(room_ids), FeeStructure.effective_to.is_(None))
        .with_for_update()
    )
    for fee in result.scalars().all():
        # A row effective in the future is closed on its own start date
        fee.effective_to = max(effective_from, fee.effective_from)
        await log_fee_audit(
            scope,
            FEE_STRUCTURES,
            fee.id,
            "SUPERSEDE",
            _fee_snapshot(fee),
            {"effective_to": fee.effective_to.isoformat()},
            changed_by,
        )
    # Closed rows must reach the database before the new current rows do
    await scope.db.flush()


async def _insert_fee(
    scope: TenantScope,
    room: Room,
    payload: FeeComponents,
    changed_by: Optional[UUID],
) -> FeeStructure:
    fee = FeeStructure(
        room_id=room.id,
        room_type=room.room_type,
        base_fee=payload.monthly_fee,
        electricity_charge=payload.electricity_charge,
        water_charge=payload.water_charge,
        maintenance_charge=payload.maintenance_charge,
        wifi_charge=payload.wifi_charge,
        other_charges=payload.other_charges,
        total_monthly_fee=payload.total,
        effective_from=payload.effective_from,
        created_by=changed_by,
    )
    scope.add(fee)
    await scope.db.flush()
    await log_fee_audit(scope, FEE_STRUCTURES, fee.id, "CREATE", None, _fee_snapshot(fee), changed_by)
    return fee


def _settings_from_fee(fee: FeeStructure, room_type: str) -> Dict[str, Any]:
    return dict(
        id=fee.id,
        monthly_fee=fee.base_fee,
        total_monthly_fee=fee.total_monthly_fee,
        electricity_charge=fee.electricity_charge,
        water_charge=fee.water_charge,
        maintenance_charge=fee.maintenance_charge,
        wifi_charge=fee.wifi_charge,
        other_charges=fee.other_charges,
        effective_from=fee.effective_from,
        room_type=room_type,
    )


async def get_fee_settings(scope: TenantScope) -> FeeSettingsResponse:
    """Most recent current fee of the tenant, or the configured default when none exists."""
    result = await scope.db.execute(
        scope.select(FeeStructure)
        .where(FeeStructure.effective_to.is_(None))
        .order_by(FeeStructure.effective_from.desc(), FeeStructure.created_at.desc())
        .limit(1)
    )
    fee = result.scalar_one_or_none()
    if fee:
        return FeeSettingsResponse(**_settings_from_fee(fee, "ALL"))

    default_fee = Decimal(settings.default_monthly_fee)
    return FeeSettingsResponse(
        monthly_fee=default_fee,
        total_monthly_fee=default_fee,
        effective_from=datetime.utcnow().date(),
        room_type="ALL",
        is_default=True,
    )


async def update_fee_settings(
    scope: TenantScope,
    payload: FeeSettingsUpdate,
    changed_by: Optional[UUID] = None,
) -> FeeSettingsUpdateResponse:
    _validate_effective_from(payload.effective_from)

    rooms = (await scope.db.execute(scope.select(Room).order_by(Room.room_number))).scalars().all()
    if not rooms:
        raise ServiceError("No rooms found for this tenant. Create rooms first.", status.HTTP_400_BAD_REQUEST)

    await _supersede_current(scope, [r.id for r in rooms], payload.effective_from, changed_by)
    last: Optional[FeeStructure] = None
    for room in rooms:
        last = await _insert_fee(scope, room, payload, changed_by)
    await scope.db.commit()

    logger.info(
        "Fee settings updated for tenant %s: %s/month across %d room(s) from %s",
        scope.tenant_id,
        payload.total,
        len(rooms),
        payload.effective_from,
    )
    return FeeSettingsUpdateResponse(**_settings_from_fee(last, "ALL"), rooms_updated=len(rooms))


def _structure_response(fee: FeeStructure) -> FeeStructureResponse:
    return FeeStructureResponse.model_validate(fee)


async def get_room_fee_structure(scope: TenantScope, room_id: UUID) -> RoomFeeStructureResponse:
    room = await scope.get(Room, room_id)
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)

    result = await scope.db.execute(
        scope.select(FeeStructure)
        .where(FeeStructure.room_id == room_id)
        .order_by(FeeStructure.effective_from.desc(), FeeStructure.created_at.desc())
        .execution_options(populate_existing=True)
    )
    rows = result.scalars().all()
    current = next((f for f in rows if f.effective_to is None), None)
    return RoomFeeStructureResponse(
        room_id=room.id,
        room_number=room.room_number,
        current=_structure_response(current) if current else None,
        history=[_structure_response(f) for f in rows],
    )


async def set_room_fee(
    scope: TenantScope,
    room_id: UUID,
    payload: RoomFeeUpdate,
    changed_by: Optional[UUID] = None,
) -> FeeStructureResponse:
    _validate_effective_from(payload.effective_from)
    room = await scope.get(Room, room_id)
    if not room:
        raise ServiceError("Room not found", status.HTTP_404_NOT_FOUND)

    await _supersede_current(scope, [room.id], payload.effective_from, changed_by)
    fee = await _insert_fee(scope, room, payload, changed_by)
    await scope.db.commit()
    logger.info("Room %s fee set to %s/month from %s", room.room_number, payload.total, payload.effective_from)
    return _structure_response(fee)
