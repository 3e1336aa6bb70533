from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.api.v1.fees.schemas import FeeResponse
from app.core.enums import BillingType, Gender, ParentRelationship, StudentStatus


class ParentInfo(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    relationship: ParentRelationship
    location: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: str = Field(..., min_length=1, max_length=50)
    alternative_contact: Optional[str] = Field(None, max_length=50)
    signature_date: Optional[date] = Field(None, description="Defaults to today")


class InitialFee(BaseModel):
    amount: Decimal = Field(..., ge=0)
    billing_type: BillingType


class StudentCreate(BaseModel):
    admission_no: str = Field(..., min_length=1, max_length=50, description="SEC/<year>/<seq>")
    full_name: str = Field(..., min_length=1, max_length=255)
    gender: Gender
    date_of_birth: date
    grade_id: UUID
    classroom_id: UUID = Field(..., description="Must belong to grade_id and have a free seat")
    photo: Optional[str] = Field(None, description="Path from the upload service, stored relative")
    parent: ParentInfo
    initial_fee: InitialFee
    admission_date: Optional[date] = None
    status: StudentStatus = StudentStatus.active


class StudentUpdate(BaseModel):
    """Changing grade_id requires classroom_id of the new grade in the same request."""

    admission_no: Optional[str] = Field(None, min_length=1, max_length=50)
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    grade_id: Optional[UUID] = None
    classroom_id: Optional[UUID] = None
    photo: Optional[str] = None
    parent: Optional[ParentInfo] = None
    admission_date: Optional[date] = None
    status: Optional[StudentStatus] = None


class GradeRef(BaseModel):
    id: UUID
    name: str


class ClassroomRef(BaseModel):
    id: UUID
    name: str
    suffix: str


class StudentResponse(BaseModel):
    id: UUID
    admission_no: str
    full_name: str
    gender: Gender
    date_of_birth: date
    age: int
    photo: Optional[str] = None
    photo_url: Optional[str] = None
    grade_id: UUID
    classroom_id: UUID
    grade: Optional[GradeRef] = None
    classroom: Optional[ClassroomRef] = None
    parent: ParentInfo
    initial_fee: InitialFee
    admission_date: date
    status: StudentStatus
    registered_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StudentDetailResponse(StudentResponse):
    fees: List[FeeResponse] = Field(default_factory=list)


class NextAdmissionNoResponse(BaseModel):
    admission_no: str = Field(..., description="Suggestion only; not reserved")
