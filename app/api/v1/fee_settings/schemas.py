from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.schemas import Money


class FeeComponents(BaseModel):
    monthly_fee: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    effective_from: date
    electricity_charge: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    water_charge: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    maintenance_charge: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    wifi_charge: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    other_charges: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)

    @property
    def total(self) -> Decimal:
        return (
            self.monthly_fee
            + self.electricity_charge
            + self.water_charge
            + self.maintenance_charge
            + self.wifi_charge
            + self.other_charges
        ).quantize(Decimal("0.01"))


class FeeSettingsUpdate(FeeComponents):
    """Tenant-wide fee applied to every room."""


class RoomFeeUpdate(FeeComponents):
    """Fee for a single room."""


class FeeSettingsResponse(BaseModel):
    id: Optional[UUID] = None
    monthly_fee: Money
    total_monthly_fee: Money
    electricity_charge: Money = Decimal("0")
    water_charge: Money = Decimal("0")
    maintenance_charge: Money = Decimal("0")
    wifi_charge: Money = Decimal("0")
    other_charges: Money = Decimal("0")
    effective_from: date
    room_type: str
    is_default: bool = False


class FeeSettingsUpdateResponse(FeeSettingsResponse):
    rooms_updated: int


class FeeStructureResponse(BaseModel):
    id: UUID
    room_id: UUID
    room_type: str
    base_fee: Money
    electricity_charge: Money
    water_charge: Money
    maintenance_charge: Money
    wifi_charge: Money
    other_charges: Money
    total_monthly_fee: Money
    effective_from: date
    effective_to: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RoomFeeStructureResponse(BaseModel):
    room_id: UUID
    room_number: str
    current: Optional[FeeStructureResponse] = None
    history: List[FeeStructureResponse] = Field(default_factory=list)
