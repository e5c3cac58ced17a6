from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AmenityCreate(BaseModel):
    amenity_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)


class AmenityUpdate(BaseModel):
    amenity_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)


class AmenityRoomBrief(BaseModel):
    mapping_id: UUID
    room_id: UUID
    room_number: str
    floor_id: UUID
    building_id: UUID


class AmenityResponse(BaseModel):
    id: UUID
    amenity_name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AmenityDetailResponse(AmenityResponse):
    rooms: List[AmenityRoomBrief] = Field(default_factory=list)


class RoomAmenityAdd(BaseModel):
    room_id: UUID
    amenity_id: UUID


class RoomAmenityBulkAdd(BaseModel):
    room_id: UUID
    amenity_ids: List[UUID] = Field(..., min_length=1, max_length=100)


class RoomAmenityMappingResponse(BaseModel):
    id: UUID
    room_id: UUID
    room_number: str
    amenity_id: UUID
    amenity_name: str
    created_at: datetime


class RoomAmenityItem(BaseModel):
    mapping_id: UUID
    amenity: AmenityResponse


class RoomAmenitiesResponse(BaseModel):
    room_id: UUID
    room_number: str
    amenities_count: int
    amenities: List[RoomAmenityItem]


class RoomAmenityBulkAddResponse(BaseModel):
    added: List[RoomAmenityMappingResponse]
    errors: List[str]
