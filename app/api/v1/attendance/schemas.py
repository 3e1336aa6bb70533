from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.core.enums import AttendanceStatus


def to_calendar_day(value):
    """Datetimes (or ISO datetime strings) collapse to their local calendar day."""
    if isinstance(value, str) and "T" in value:
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


class AttendanceEntry(BaseModel):
    student_id: UUID
    status: AttendanceStatus = Field(..., description="present, absent, late")


class AttendanceMarkRequest(BaseModel):
    """Mark a classroom for one day. Re-marking the same day replaces the earlier records."""

    attendance_date: date
    grade_id: UUID
    classroom_id: UUID
    records: List[AttendanceEntry] = Field(..., min_length=1)

    @field_validator("attendance_date", mode="before")
    @classmethod
    def _calendar_day(cls, v):
        return to_calendar_day(v)


class AttendanceUpdateRequest(BaseModel):
    records: List[AttendanceEntry] = Field(..., min_length=1)


class AttendanceStats(BaseModel):
    present: int = 0
    absent: int = 0
    late: int = 0
    total: int = 0


class AttendanceRecordResponse(BaseModel):
    student_id: UUID
    student_name: Optional[str] = None
    admission_no: Optional[str] = None
    status: AttendanceStatus


class AttendanceResponse(BaseModel):
    id: UUID
    attendance_date: date
    grade_id: UUID
    grade_name: Optional[str] = None
    classroom_id: UUID
    classroom_name: Optional[str] = None
    marked_by: UUID
    last_edited_by: Optional[UUID] = None
    last_edited_at: Optional[datetime] = None
    records: List[AttendanceRecordResponse]
    stats: AttendanceStats
    created_at: datetime
    updated_at: datetime


class MarkingStudent(BaseModel):
    id: UUID
    full_name: str
    admission_no: str
    photo_url: Optional[str] = None
    status: Optional[AttendanceStatus] = Field(None, description="Status already recorded for the day, if any")


class MarkingSheetResponse(BaseModel):
    """Roster for the marking screen. Reading it never creates attendance."""

    classroom_id: UUID
    classroom_name: str
    attendance_date: date
    students: List[MarkingStudent]
    attendance: Optional[AttendanceResponse] = None


class StudentHistoryEntry(BaseModel):
    attendance_id: UUID
    attendance_date: date
    classroom_id: UUID
    status: AttendanceStatus


class StudentHistoryResponse(BaseModel):
    student_id: UUID
    records: List[StudentHistoryEntry]
    stats: AttendanceStats
    attendance_rate: float = Field(..., description="(present + late) / total * 100, one decimal")


class ClassroomDaySummary(BaseModel):
    attendance_id: UUID
    classroom_id: UUID
    classroom_name: Optional[str] = None
    grade_name: Optional[str] = None
    stats: AttendanceStats


class DaySummaryResponse(BaseModel):
    attendance_date: date
    classrooms: List[ClassroomDaySummary]
    totals: AttendanceStats
