"""Grades (e.g. Grade 1, Grade 2). A grade owns its classrooms (sections A, B, C...)."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Uuid

from app.db.session import Base

DEFAULT_MAX_CAPACITY_PER_CLASS = 29  # 24 + 5


class Grade(Base):
    """Year/age cohort. Name and order are unique; cannot be deleted while students reference it."""

    __tablename__ = "grades"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    order = Column(Integer, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    # Staff registry lives outside this service; stored as an opaque reference
    teacher_id = Column(Uuid(as_uuid=True), nullable=True)
    max_capacity_per_class = Column(Integer, nullable=False, default=DEFAULT_MAX_CAPACITY_PER_CLASS)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
