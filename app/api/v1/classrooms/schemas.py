from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ClassroomAllocateRequest(BaseModel):
    grade_id: UUID = Field(..., description="Grade to find (or open) a classroom with spare capacity in")


class ClassroomResponse(BaseModel):
    id: UUID
    grade_id: UUID
    name: str
    suffix: str
    capacity: int = Field(..., description="Max students; copied from the grade when the classroom was created")
    current_count: int = Field(..., description="Current occupancy counter")
    available_spots: int
    is_full: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
