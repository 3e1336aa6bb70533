"""Student registry. Parent and initial fee are stored as flattened sub-document columns."""
import uuid
from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from app.core.enums import StudentStatus
from app.db.session import Base


class Student(Base):
    """
    Student enrollment. grade_id and classroom_id must agree (classroom.grade_id == grade_id);
    enforced by the enrollment service on every write, not by the schema.
    """

    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admission_no = Column(String(50), nullable=False, unique=True)  # SEC/<year>/<seq>
    photo = Column(String(255), nullable=True)  # relative to STATIC_URL_PREFIX
    full_name = Column(String(255), nullable=False)
    gender = Column(String(10), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    grade_id = Column(Uuid(as_uuid=True), ForeignKey("grades.id", ondelete="RESTRICT"), nullable=False, index=True)
    classroom_id = Column(
        Uuid(as_uuid=True), ForeignKey("classrooms.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # Parent / guardian
    parent_full_name = Column(String(255), nullable=False)
    parent_relationship = Column(String(20), nullable=False)
    parent_location = Column(String(255), nullable=True)
    parent_email = Column(String(255), nullable=True)
    parent_phone = Column(String(50), nullable=False)
    parent_alternative_contact = Column(String(50), nullable=True)
    parent_signature_date = Column(Date, nullable=True, default=date.today)

    # Initial registration fee
    initial_fee_amount = Column(Numeric(12, 2), nullable=False)
    initial_fee_billing_type = Column(String(20), nullable=False)

    admission_date = Column(Date, nullable=False, default=date.today)
    status = Column(String(20), nullable=False, default=StudentStatus.active.value)
    registered_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    grade = relationship("Grade", lazy="joined")
    classroom = relationship("Classroom", lazy="joined")

    @property
    def holds_seat(self) -> bool:
        """Only active students count toward classroom occupancy."""
        return self.status == StudentStatus.active.value
