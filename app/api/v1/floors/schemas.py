from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FloorCreate(BaseModel):
    building_id: UUID
    floor_number: int = Field(..., ge=0, le=200)
    floor_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None


class FloorUpdate(BaseModel):
    floor_number: Optional[int] = Field(None, ge=0, le=200)
    floor_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class FloorResponse(BaseModel):
    id: UUID
    building_id: UUID
    floor_number: int
    floor_name: str
    description: Optional[str] = None
    total_rooms: int
    occupied_rooms: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FloorStatsResponse(BaseModel):
    floor_id: UUID
    floor_number: int
    floor_name: str
    total_rooms: int
    occupied_rooms: int
    available_rooms: int
    occupancy_rate: float
