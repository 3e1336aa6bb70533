from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class PromotionRequest(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)
    target_grade_id: UUID


class PromotionSkip(BaseModel):
    student_id: UUID
    reason: str


class PromotionResult(BaseModel):
    promoted_count: int
    promoted_ids: List[UUID] = Field(default_factory=list)
    skipped: List[PromotionSkip] = Field(default_factory=list)
