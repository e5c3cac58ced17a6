from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AllocationCreate(BaseModel):
    student_id: UUID
    room_id: UUID
    remarks: Optional[str] = Field(None, max_length=500)


class AllocationUpdate(BaseModel):
    """room_id moves the student to another room; remarks alone just annotates."""

    room_id: Optional[UUID] = None
    remarks: Optional[str] = Field(None, max_length=500)


class DeallocateRequest(BaseModel):
    remarks: Optional[str] = Field(None, max_length=500)


class BulkAllocationItem(BaseModel):
    student_id: UUID
    room_id: UUID


class BulkAllocationCreate(BaseModel):
    allocations: List[BulkAllocationItem] = Field(..., min_length=1, max_length=200)
    remarks: Optional[str] = Field(None, max_length=500)


class AllocationResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    student_email: str
    room_id: UUID
    room_number: str
    floor_number: int
    building_id: UUID
    status: str
    remarks: Optional[str] = None
    allocated_at: datetime
    checkout_at: Optional[datetime] = None


class AllocationListResponse(BaseModel):
    allocations: List[AllocationResponse]
    total: int
    page: int
    total_pages: int


class BulkAllocationError(BaseModel):
    student_id: UUID
    room_id: UUID
    error: str


class BulkAllocationResponse(BaseModel):
    successful: int
    failed: int
    results: List[AllocationResponse]
    errors: List[BulkAllocationError]


class AllocationHistoryItem(BaseModel):
    id: UUID
    room_id: UUID
    room_number: str
    floor_number: int
    status: str
    allocated_at: datetime
    checkout_at: Optional[datetime] = None
    duration_days: int
