"""Per-key, per-year counters for printed identifiers (receipt numbers)."""
from sqlalchemy import Column, Integer, String, UniqueConstraint

from app.db.session import Base


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"
    __table_args__ = (
        UniqueConstraint("key", "year", name="uq_sequence_counter_key_year"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    value = Column(Integer, nullable=False, default=0)
