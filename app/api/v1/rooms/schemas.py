from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.core.enums import RoomStatus, RoomType
from app.core.schemas import Money


class RoomCreate(BaseModel):
    room_number: str = Field(..., min_length=1, max_length=20)
    floor_number: int = Field(..., ge=0)
    room_type: RoomType
    capacity: int = Field(..., gt=0, le=100)
    description: Optional[str] = None


class RoomUpdate(BaseModel):
    """Partial update; floor and building are not editable after creation."""

    room_number: Optional[str] = Field(None, min_length=1, max_length=20)
    room_type: Optional[RoomType] = None
    capacity: Optional[int] = Field(None, gt=0, le=100)
    status: Optional[RoomStatus] = None
    description: Optional[str] = None


class BulkRoomCreate(BaseModel):
    floor_number: int = Field(..., ge=0)
    start_room_number: int = Field(..., ge=1)
    end_room_number: int = Field(..., ge=1)
    room_type: RoomType
    capacity: int = Field(..., gt=0, le=100)
    description: Optional[str] = None

    @model_validator(mode="after")
    def validate_range(self) -> "BulkRoomCreate":
        if self.start_room_number > self.end_room_number:
            raise ValueError("Invalid room number range")
        if self.end_room_number - self.start_room_number >= 100:
            raise ValueError("At most 100 rooms can be created at once")
        return self


class FloorSummary(BaseModel):
    id: UUID
    floor_number: int
    floor_name: str


class BuildingSummary(BaseModel):
    id: UUID
    name: str
    code: str


class StudentBrief(BaseModel):
    id: UUID
    full_name: str
    email: str
    mobile: Optional[str] = None


class ActiveAllocationBrief(BaseModel):
    id: UUID
    allocated_at: datetime
    student: StudentBrief


class RoomResponse(BaseModel):
    id: UUID
    building_id: UUID
    floor_id: UUID
    floor_number: Optional[int] = None
    room_number: str
    room_type: str
    capacity: int
    occupied: int
    available: int
    status: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RoomDetailResponse(RoomResponse):
    floor: FloorSummary
    building: BuildingSummary
    active_allocations: List[ActiveAllocationBrief] = Field(default_factory=list)
    current_monthly_fee: Optional[Money] = None


class RoomListResponse(BaseModel):
    rooms: List[RoomResponse]
    total: int
    page: int
    total_pages: int


class BulkRoomCreateResponse(BaseModel):
    created: List[RoomResponse]
    skipped: List[str]
    created_count: int
    skipped_count: int


class RoomOccupancyItem(BaseModel):
    room_id: UUID
    room_number: str
    building_id: UUID
    floor_number: Optional[int] = None
    room_type: str
    capacity: int
    occupied: int
    available: int
    occupancy_percentage: float
    status: str


class OccupancyByType(BaseModel):
    room_type: str
    total_rooms: int
    capacity: int
    occupied: int
    available: int
    occupancy_rate: float


class OccupancySummary(BaseModel):
    total_rooms: int
    total_capacity: int
    total_occupied: int
    total_available: int
    occupancy_rate: float
    full_rooms: int
    available_rooms: int
    empty_rooms: int


class RoomOccupancyResponse(BaseModel):
    summary: OccupancySummary
    by_type: List[OccupancyByType]
    rooms: List[RoomOccupancyItem]


class RoomStatsResponse(BaseModel):
    room_id: UUID
    room_number: str
    room_type: str
    capacity: int
    occupied: int
    available: int
    occupancy_rate: float
    status: str
    is_full: bool
    has_availability: bool
    active_complaints: int


class AllocationCheckResponse(BaseModel):
    room_id: UUID
    student_id: UUID
    can_allocate: bool = True
