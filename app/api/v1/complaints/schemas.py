from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import ComplaintCategory, ComplaintPriority, ComplaintStatus


class ComplaintCreate(BaseModel):
    category: ComplaintCategory
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=10, max_length=2000)
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    room_id: Optional[UUID] = None
    attachment_url: Optional[str] = Field(None, max_length=500)


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=1000)
    is_internal: bool = False


class StatusUpdate(BaseModel):
    status: ComplaintStatus
    note: Optional[str] = Field(None, max_length=1000)
    resolution_notes: Optional[str] = Field(None, max_length=2000)


class ResolveRequest(BaseModel):
    resolution_notes: str = Field(..., max_length=2000)


class CommentResponse(BaseModel):
    id: UUID
    user_id: UUID
    user_name: Optional[str] = None
    comment: str
    is_internal: bool
    comment_type: str
    created_at: datetime


class ComplaintResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    room_id: Optional[UUID] = None
    room_number: Optional[str] = None
    category: str
    title: str
    description: str
    priority: str
    status: str
    attachment_url: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_by: Optional[UUID] = None
    acknowledged_at: Optional[datetime] = None
    in_progress_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ComplaintDetailResponse(ComplaintResponse):
    comments: List[CommentResponse] = Field(default_factory=list)


class ComplaintListResponse(BaseModel):
    complaints: List[ComplaintResponse]
    total: int
    page: int
    total_pages: int


class ComplaintStatsResponse(BaseModel):
    total: int
    pending: int
    acknowledged: int
    in_progress: int
    resolved: int
    closed: int
    rejected: int


class CategoryCount(BaseModel):
    category: str
    count: int


class ComplaintReportResponse(BaseModel):
    complaints: List[ComplaintResponse]
    count: int
