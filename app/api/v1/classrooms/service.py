"""
Classroom capacity allocator.

- allocate(): earliest-suffix classroom of a grade with current_count < capacity, or a new
  section with the next unused suffix (A..Z, then 27, 28, ...).
- A newly provisioned classroom starts at current_count=0; callers occupy() it once the
  student assignment has been written.
- occupy()/release() are SQL-side increments; release() does not clamp at zero.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import StudentStatus
from app.core.exceptions import ConflictError, NotFoundError
from app.core.models import Classroom, Grade, Student

from .schemas import ClassroomResponse

logger = logging.getLogger(__name__)

SUFFIXES = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def classroom_to_response(c: Classroom) -> ClassroomResponse:
    return ClassroomResponse(
        id=_to_uuid(c.id),
        grade_id=_to_uuid(c.grade_id),
        name=c.name,
        suffix=c.suffix,
        capacity=c.capacity,
        current_count=c.current_count,
        available_spots=c.available_spots,
        is_full=c.is_full,
        is_active=c.is_active,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


def suffix_for_index(index: int) -> str:
    """0 -> A ... 25 -> Z; past the alphabet the numeral index + 1 is used (26 -> "27")."""
    if 0 <= index < len(SUFFIXES):
        return SUFFIXES[index]
    return str(index + 1)


async def get_classroom_obj(
    db: AsyncSession,
    classroom_id: UUID,
    populate_existing: bool = False,
) -> Optional[Classroom]:
    stmt = select(Classroom).where(Classroom.id == classroom_id)
    if populate_existing:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_classroom(db: AsyncSession, classroom_id: UUID) -> Optional[ClassroomResponse]:
    obj = await get_classroom_obj(db, classroom_id, populate_existing=True)
    return classroom_to_response(obj) if obj else None


async def list_classrooms(
    db: AsyncSession,
    grade_id: Optional[UUID] = None,
    active_only: bool = True,
) -> List[ClassroomResponse]:
    stmt = select(Classroom).execution_options(populate_existing=True)
    if grade_id is not None:
        stmt = stmt.where(Classroom.grade_id == grade_id)
    if active_only:
        stmt = stmt.where(Classroom.is_active.is_(True))
    stmt = stmt.order_by(Classroom.grade_id, Classroom.suffix)
    result = await db.execute(stmt)
    return [classroom_to_response(c) for c in result.scalars().all()]


async def open_classroom(db: AsyncSession, grade: Grade) -> Classroom:
    """Create the next section for a grade. Does not commit; caller must commit."""
    taken_rows = await db.execute(select(Classroom.suffix).where(Classroom.grade_id == grade.id))
    taken = {s for s in taken_rows.scalars().all()}
    index = len(taken)
    suffix = suffix_for_index(index)
    # Deleted sections leave gaps; skip forward to the next suffix nobody holds
    while suffix in taken:
        index += 1
        suffix = suffix_for_index(index)
    classroom = Classroom(
        grade_id=grade.id,
        name=f"{grade.name}-{suffix}",
        suffix=suffix,
        capacity=grade.max_capacity_per_class,
        current_count=0,
        is_active=True,
    )
    db.add(classroom)
    await db.flush()
    logger.info(f"Provisioned classroom {classroom.name} (capacity {classroom.capacity})")
    return classroom


async def _get_grade_or_404(db: AsyncSession, grade_id: UUID) -> Grade:
    grade = await db.get(Grade, grade_id)
    if not grade:
        raise NotFoundError("Grade not found")
    return grade


async def allocate(db: AsyncSession, grade_id: UUID) -> Classroom:
    """
    Return a classroom of the grade with spare capacity, provisioning one if none qualifies.
    Mutating: may insert a classroom. Does not occupy and does not commit; caller must do both.
    """
    grade = await _get_grade_or_404(db, grade_id)
    result = await db.execute(
        select(Classroom)
        .where(
            Classroom.grade_id == grade_id,
            Classroom.is_active.is_(True),
            Classroom.current_count < Classroom.capacity,
        )
        .order_by(Classroom.suffix)
        .limit(1)
    )
    classroom = result.scalar_one_or_none()
    if classroom:
        return classroom
    return await open_classroom(db, grade)


async def occupy(db: AsyncSession, classroom_id: UUID) -> None:
    """current_count += 1. Does not commit; caller must commit."""
    await db.execute(
        update(Classroom)
        .where(Classroom.id == classroom_id)
        .values(current_count=Classroom.current_count + 1)
    )


async def release(db: AsyncSession, classroom_id: UUID) -> None:
    """current_count -= 1, no clamping. Does not commit; caller must commit."""
    result = await db.execute(
        update(Classroom)
        .where(Classroom.id == classroom_id)
        .values(current_count=Classroom.current_count - 1)
    )
    if result.rowcount == 0:
        logger.warning(f"Release on missing classroom {classroom_id}")
        return
    count = (
        await db.execute(select(Classroom.current_count).where(Classroom.id == classroom_id))
    ).scalar_one()
    if count < 0:
        logger.warning(f"Classroom {classroom_id} occupancy went negative ({count}); run a recount")


async def allocate_classroom(db: AsyncSession, grade_id: UUID) -> ClassroomResponse:
    """API form of allocate(): persists a provisioned classroom, never touches the counter."""
    try:
        classroom = await allocate(db, grade_id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Classroom suffix already taken for this grade, retry the allocation")
    await db.refresh(classroom)
    return classroom_to_response(classroom)


async def provision_classroom(db: AsyncSession, grade_id: UUID) -> ClassroomResponse:
    """Open a new section for the grade regardless of free capacity elsewhere."""
    grade = await _get_grade_or_404(db, grade_id)
    try:
        classroom = await open_classroom(db, grade)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Classroom suffix already taken for this grade, retry")
    await db.refresh(classroom)
    return classroom_to_response(classroom)


async def count_active_students(db: AsyncSession, classroom_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Student.id)).where(
            Student.classroom_id == classroom_id,
            Student.status == StudentStatus.active.value,
        )
    )
    return result.scalar() or 0


async def recount_classroom(db: AsyncSession, classroom_id: UUID) -> ClassroomResponse:
    """Recompute current_count from the active students referencing the classroom."""
    classroom = await get_classroom_obj(db, classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    actual = await count_active_students(db, classroom_id)
    if actual != classroom.current_count:
        logger.warning(
            f"Classroom {classroom.name} counter drift: stored {classroom.current_count}, actual {actual}"
        )
    classroom.current_count = actual
    await db.commit()
    await db.refresh(classroom)
    return classroom_to_response(classroom)
