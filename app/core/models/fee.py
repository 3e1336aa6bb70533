"""Fee records: billable obligation per student, outstanding -> paid."""
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.core.enums import FeeStatus
from app.db.session import Base


class Fee(Base):
    """receipt_no is minted only on transition to paid (SEC-<year>-<seq>)."""

    __tablename__ = "fees"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_fee_amount_non_negative"),
        CheckConstraint("status IN ('outstanding','paid')", name="chk_fee_status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    receipt_no = Column(String(50), nullable=True, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)
    billing_type = Column(String(20), nullable=False)  # term, monthly, annual, once
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=FeeStatus.outstanding.value)
    due_date = Column(Date, nullable=True)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(20), nullable=True)  # cash, bank_transfer, mobile_money, cheque
    recorded_by = Column(Uuid(as_uuid=True), nullable=True)
    paid_recorded_by = Column(Uuid(as_uuid=True), nullable=True)
    term = Column(String(50), nullable=True)
    year = Column(Integer, nullable=False, default=lambda: date.today().year)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", lazy="joined")

    @property
    def balance(self) -> Decimal:
        return Decimal(str(self.amount or 0)) - Decimal(str(self.paid_amount or 0))
