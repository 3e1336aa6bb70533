"""Classrooms: capacity-bounded sections within a grade (e.g. Grade 1-A)."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid

from app.db.session import Base


class Classroom(Base):
    """
    current_count is a denormalized occupancy counter maintained by the allocator.
    capacity is copied from the grade at creation time and not re-synced afterwards.
    """

    __tablename__ = "classrooms"
    __table_args__ = (
        UniqueConstraint("grade_id", "suffix", name="uq_classroom_grade_suffix"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grade_id = Column(Uuid(as_uuid=True), ForeignKey("grades.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    suffix = Column(String(10), nullable=False, default="A")
    capacity = Column(Integer, nullable=False)
    current_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def is_full(self) -> bool:
        return self.current_count >= self.capacity

    @property
    def available_spots(self) -> int:
        return self.capacity - self.current_count
