from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.classrooms.schemas import ClassroomResponse


class GradeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    teacher_id: Optional[UUID] = Field(None, description="Class teacher (staff id)")
    max_capacity_per_class: Optional[int] = Field(None, ge=1, description="Default 29 per classroom")
    order: Optional[int] = Field(None, ge=1, description="Defaults to last order + 1")
    create_initial_classroom: bool = Field(True, description="Open section A together with the grade")


class GradeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    teacher_id: Optional[UUID] = None
    max_capacity_per_class: Optional[int] = Field(None, ge=1)
    order: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class GradeResponse(BaseModel):
    id: UUID
    name: str
    order: int
    description: Optional[str] = None
    teacher_id: Optional[UUID] = None
    max_capacity_per_class: int
    is_active: bool
    classroom_count: int = 0
    student_count: int = Field(0, description="Active students in this grade")
    classrooms: List[ClassroomResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
