from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.floors.schemas import FloorResponse


class BuildingCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=20)
    address: Optional[str] = None


class BuildingUpdate(BaseModel):
    """total_* counters are derived and never accepted from the client."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    address: Optional[str] = None


class BuildingResponse(BaseModel):
    id: UUID
    name: str
    code: str
    address: Optional[str] = None
    total_floors: int
    total_rooms: int
    occupied_rooms: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BuildingDetailResponse(BuildingResponse):
    floors: List[FloorResponse] = Field(default_factory=list)


class BuildingListResponse(BaseModel):
    buildings: List[BuildingResponse]
    total: int
    page: int
    total_pages: int


class BuildingStatsResponse(BaseModel):
    building_id: UUID
    name: str
    total_floors: int
    total_rooms: int
    occupied_rooms: int
    available_rooms: int
    occupancy_rate: float
