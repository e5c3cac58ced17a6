from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.schemas import Money

MONTH_YEAR_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class PaymentDueResponse(BaseModel):
    id: UUID
    student_id: UUID
    month_year: str
    due_amount: Money
    due_date: date
    status: str
    paid_amount: Optional[Money] = None

    class Config:
        from_attributes = True


class PaymentInitiateRequest(BaseModel):
    month_year: str = Field(..., pattern=MONTH_YEAR_PATTERN)
    amount: Decimal = Field(..., gt=0, max_digits=14)


class PaymentInitiateResponse(BaseModel):
    order_id: str
    amount: Money
    currency: str
    payment_id: UUID


class PaymentVerifyRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1, max_length=100)
    razorpay_payment_id: str = Field(..., min_length=1, max_length=100)
    razorpay_signature: str = Field(..., min_length=1, max_length=255)


class PaymentVerifyResponse(BaseModel):
    payment_id: UUID
    status: str


class PaymentStatusResponse(BaseModel):
    payment_id: UUID
    status: str
    amount: Money
    month_year: str
    payment_date: Optional[datetime] = None


class PaymentResponse(BaseModel):
    id: UUID
    student_id: UUID
    amount: Money
    month_year: str
    payment_mode: str
    status: str
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminPaymentItem(PaymentResponse):
    student_name: str
    student_email: str


class PaymentListResponse(BaseModel):
    payments: List[AdminPaymentItem]
    total: int
    page: int
    total_pages: int


class PaymentStatsResponse(BaseModel):
    total_collected: Money
    total_pending: Money
    total_overdue: Money
    today_collection: Money
    pending_count: int
    overdue_count: int


class OutstandingDueItem(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    student_email: str
    month_year: str
    due_amount: Money
    due_date: date
    status: str


class RepriceResponse(BaseModel):
    student_id: UUID
    monthly_fee: Money
    repriced_count: int
    dues: List[PaymentDueResponse]
