"""Weekly schedule. One schedule per grade per school day; ordered periods per schedule."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Time, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Schedule(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint("grade_id", "day_of_week", name="uq_schedule_grade_day"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    grade_id = Column(Uuid(as_uuid=True), ForeignKey("grades.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(String(10), nullable=False)  # monday .. friday
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    grade = relationship("Grade", lazy="joined")
    periods = relationship(
        "SchedulePeriod",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="SchedulePeriod.position",
        lazy="selectin",
    )


class SchedulePeriod(Base):
    __tablename__ = "schedule_periods"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    schedule_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    activity = Column(String(200), nullable=False)
    period_type = Column(String(10), nullable=False)  # activity, class, break, lunch, nap

    schedule = relationship("Schedule", back_populates="periods")
