"""Fees schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import BillingType, FeeStatus, PaymentMethod


class FeeCreate(BaseModel):
    student_id: UUID
    amount: Decimal = Field(..., ge=0)
    billing_type: BillingType
    description: Optional[str] = None
    due_date: Optional[date] = None
    term: Optional[str] = Field(None, max_length=50)
    year: Optional[int] = Field(None, ge=2000, le=2100, description="Defaults to the current year")


class FeePayRequest(BaseModel):
    """Full settlement only; partial payments are not supported."""

    payment_method: PaymentMethod = Field(PaymentMethod.cash, description="cash, bank_transfer, mobile_money, cheque")


class FeeStudentRef(BaseModel):
    id: UUID
    full_name: str
    admission_no: str


class FeeResponse(BaseModel):
    id: UUID
    student_id: UUID
    student: Optional[FeeStudentRef] = None
    receipt_no: Optional[str] = None
    amount: Decimal
    billing_type: BillingType
    description: Optional[str] = None
    status: FeeStatus
    due_date: Optional[date] = None
    paid_date: Optional[datetime] = None
    paid_amount: Decimal
    balance: Decimal
    payment_method: Optional[PaymentMethod] = None
    recorded_by: Optional[UUID] = None
    paid_recorded_by: Optional[UUID] = None
    term: Optional[str] = None
    year: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeeTotals(BaseModel):
    outstanding: Decimal = Field(..., description="Sum of amounts still outstanding")
    paid: Decimal = Field(..., description="Sum of amounts collected")
    total: Decimal = Field(..., description="Sum of all billed amounts")


class FeeListResponse(BaseModel):
    count: int
    fees: List[FeeResponse]
    totals: FeeTotals


class StudentFeeSummary(BaseModel):
    outstanding: Decimal
    paid: Decimal
    outstanding_count: int
    paid_count: int


class StudentFeesResponse(BaseModel):
    fees: List[FeeResponse]
    summary: StudentFeeSummary


class ReceiptResponse(BaseModel):
    """Data for a printed receipt; rendering happens elsewhere."""

    receipt_no: str
    fee: FeeResponse
    grade_name: Optional[str] = None
    classroom_name: Optional[str] = None
    parent_full_name: Optional[str] = None
    parent_phone: Optional[str] = None


class FeeYearTotals(BaseModel):
    year: int
    total_expected: Decimal
    total_collected: Decimal
    total_outstanding: Decimal
    collection_rate: float = Field(..., description="Collected / expected as a percentage, one decimal")


class OutstandingFeeEntry(FeeResponse):
    grade_name: Optional[str] = None


class FeeSummaryResponse(BaseModel):
    """Dashboard: year totals, largest outstanding fees, payments of the last 30 days."""

    summary: FeeYearTotals
    students_with_outstanding: List[OutstandingFeeEntry]
    recent_payments: List[FeeResponse]
