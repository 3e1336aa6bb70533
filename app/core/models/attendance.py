"""Attendance master and records. One master per classroom per calendar day; records per student."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Attendance(Base):
    """One row per (attendance_date, classroom_id); the unique constraint is the idempotency guarantee."""

    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("attendance_date", "classroom_id", name="uq_attendance_date_classroom"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    attendance_date = Column(Date, nullable=False)
    grade_id = Column(Uuid(as_uuid=True), ForeignKey("grades.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(Uuid(as_uuid=True), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    marked_by = Column(Uuid(as_uuid=True), nullable=False)
    last_edited_by = Column(Uuid(as_uuid=True), nullable=True)
    last_edited_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    grade = relationship("Grade", lazy="joined")
    classroom = relationship("Classroom", lazy="joined")
    records = relationship(
        "AttendanceRecord",
        back_populates="attendance",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class AttendanceRecord(Base):
    """One row per student per attendance master."""

    __tablename__ = "attendance_records"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    attendance_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("attendance.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(10), nullable=False)  # present, absent, late

    attendance = relationship("Attendance", back_populates="records")
