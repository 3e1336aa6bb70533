"""
Sequence counters for printed identifiers.

- One row per (key, year) in sequence_counters; value is the last number handed out.
- next_value increments on the SQL side and reads back inside the caller's transaction,
  so two settlements in the same transaction never see the same number.
- The first use of a (key, year) is seeded by the caller (e.g. from existing receipts).
"""
import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import SequenceCounter

logger = logging.getLogger(__name__)

RECEIPT_SEQUENCE = "receipt"


async def next_value(
    db: AsyncSession,
    key: str,
    year: int,
    seed: Optional[Callable[[], Awaitable[int]]] = None,
) -> int:
    """Increment and return the counter for (key, year). Does not commit; caller must commit."""
    result = await db.execute(
        update(SequenceCounter)
        .where(SequenceCounter.key == key, SequenceCounter.year == year)
        .values(value=SequenceCounter.value + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        start = await seed() if seed is not None else 0
        db.add(SequenceCounter(key=key, year=year, value=start + 1))
        await db.flush()
        logger.info(f"Started {key} sequence for {year} at {start + 1}")
        return start + 1
    value = (
        await db.execute(
            select(SequenceCounter.value).where(
                SequenceCounter.key == key,
                SequenceCounter.year == year,
            )
        )
    ).scalar_one()
    return value


def format_sequence(prefix: str, year: int, value: int, sep: str) -> str:
    """SEC-2024-0001 / SEC/2024/0001: four-digit zero padding, wider when the sequence outgrows it."""
    return f"{prefix}{sep}{year}{sep}{str(value).zfill(4)}"
