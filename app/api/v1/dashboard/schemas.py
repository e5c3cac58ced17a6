from datetime import date, datetime
from typing import List

from pydantic import BaseModel

from app.api.v1.complaints.schemas import ComplaintStatsResponse
from app.core.schemas import Money


class DashboardMetrics(BaseModel):
    total_rooms: int
    occupied_rooms: int
    available_rooms: int
    total_capacity: int
    occupied_beds: int
    occupancy_rate: float
    total_students: int
    active_allocations: int
    active_complaints: int
    resolved_complaints: int
    pending_payments: int
    total_fee_collected: Money


class RoomStatusCounts(BaseModel):
    available: int
    full: int
    maintenance: int
    inactive: int


class FeeMetrics(BaseModel):
    total_due: Money
    total_collected: Money
    total_defaulters: int
    collection_rate: float


class DashboardResponse(BaseModel):
    metrics: DashboardMetrics
    room_status: RoomStatusCounts
    complaints: ComplaintStatsResponse
    fees: FeeMetrics
    last_updated: datetime


class OccupancyTrendPoint(BaseModel):
    month: str
    allocations: int
    checkouts: int
    active_students: int


class OccupancyTrendResponse(BaseModel):
    months: int
    points: List[OccupancyTrendPoint]


class StatusCount(BaseModel):
    status: str
    count: int


class DailyCount(BaseModel):
    day: date
    count: int


class ComplaintTrendResponse(BaseModel):
    days: int
    from_date: date
    total: int
    by_status: List[StatusCount]
    daily: List[DailyCount]
