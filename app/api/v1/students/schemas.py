from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    mobile: Optional[str] = Field(None, max_length=50)
    enrollment_number: Optional[str] = Field(None, max_length=50)
    # Generated and returned once when omitted
    password: Optional[str] = Field(None, min_length=8)
    room_id: Optional[UUID] = None


class CurrentRoom(BaseModel):
    allocation_id: UUID
    room_id: UUID
    room_number: str
    allocated_at: datetime


class StudentResponse(BaseModel):
    id: UUID
    full_name: str
    email: str
    mobile: Optional[str] = None
    enrollment_number: Optional[str] = None
    status: str
    created_at: datetime
    current_room: Optional[CurrentRoom] = None


class StudentCreateResponse(StudentResponse):
    temporary_password: Optional[str] = None


class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    total: int
    page: int
    total_pages: int
