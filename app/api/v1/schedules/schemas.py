from datetime import date, datetime, time
from typing import Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator

from app.core.enums import DayOfWeek, PeriodType


def _parse_time_24(v: Union[str, time]) -> time:
    """Parse 24-hour time string (HH:MM or HH:MM:SS) to time."""
    if isinstance(v, time):
        return v
    if isinstance(v, str):
        v = v.strip()
        if len(v) == 5:  # HH:MM
            return datetime.strptime(v, "%H:%M").time()
        return datetime.strptime(v, "%H:%M:%S").time()
    raise ValueError("start_time/end_time must be 24-hour string (e.g. 08:00, 08:40) or time")


class PeriodIn(BaseModel):
    start_time: Union[str, time] = Field(..., description="24-hour format, e.g. 08:00")
    end_time: Union[str, time] = Field(..., description="24-hour format, e.g. 08:40")
    activity: str = Field(..., min_length=1, max_length=200)
    period_type: PeriodType = Field(..., description="activity, class, break, lunch, nap")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v: Union[str, time]) -> time:
        return _parse_time_24(v)

    @field_validator("activity")
    @classmethod
    def strip_activity(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("activity must not be blank")
        return v


class ScheduleSave(BaseModel):
    """Create the grade's schedule for a day, or replace its periods when one exists."""

    grade_id: UUID
    day_of_week: DayOfWeek
    periods: List[PeriodIn] = Field(..., min_length=1)


class ScheduleUpdate(BaseModel):
    periods: List[PeriodIn] = Field(..., min_length=1)


class PeriodResponse(BaseModel):
    start_time: time
    end_time: time
    activity: str
    period_type: str

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def serialize_time_24(self, t: time) -> str:
        """Output as 24-hour string HH:MM (e.g. 08:00, 08:40)."""
        return t.strftime("%H:%M")


class ScheduleResponse(BaseModel):
    id: UUID
    grade_id: UUID
    grade_name: Optional[str] = None
    day_of_week: str
    is_active: bool
    created_by: Optional[UUID] = None
    periods: List[PeriodResponse]
    created_at: datetime
    updated_at: datetime


class WeekScheduleResponse(BaseModel):
    """Monday to Friday; a day without a schedule maps to null."""

    grade_id: UUID
    grade_name: str
    week: Dict[str, Optional[ScheduleResponse]]


class TodayScheduleResponse(BaseModel):
    day: str
    schedule_date: date
    schedule: Optional[ScheduleResponse] = None
    message: Optional[str] = None


class ScheduleBulkDeleteResponse(BaseModel):
    grade_id: UUID
    deleted_count: int
    message: str
