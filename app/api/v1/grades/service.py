import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import StudentStatus
from app.core.exceptions import ConflictError, NotFoundError
from app.core.models import Attendance, AttendanceRecord, Classroom, Grade, Schedule, SchedulePeriod, Student

from app.api.v1.classrooms import service as classroom_service

from .schemas import GradeCreate, GradeResponse, GradeUpdate

logger = logging.getLogger(__name__)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


async def _grade_to_response(db: AsyncSession, g: Grade) -> GradeResponse:
    classrooms = await classroom_service.list_classrooms(db, grade_id=g.id, active_only=True)
    student_count = (
        await db.execute(
            select(func.count(Student.id)).where(
                Student.grade_id == g.id,
                Student.status == StudentStatus.active.value,
            )
        )
    ).scalar() or 0
    return GradeResponse(
        id=_to_uuid(g.id),
        name=g.name,
        order=g.order,
        description=g.description,
        teacher_id=_to_uuid(g.teacher_id),
        max_capacity_per_class=g.max_capacity_per_class,
        is_active=g.is_active,
        classroom_count=len(classrooms),
        student_count=student_count,
        classrooms=classrooms,
        created_at=g.created_at,
        updated_at=g.updated_at,
    )


async def get_grade_obj(db: AsyncSession, grade_id: UUID) -> Optional[Grade]:
    return await db.get(Grade, grade_id)


async def create_grade(db: AsyncSession, payload: GradeCreate) -> GradeResponse:
    name = payload.name.strip()
    existing = await db.execute(select(Grade.id).where(Grade.name == name))
    if existing.scalar_one_or_none():
        raise ConflictError("Grade with this name already exists")
    order = payload.order
    if order is None:
        last = (await db.execute(select(func.max(Grade.order)))).scalar()
        order = (last or 0) + 1
    try:
        grade = Grade(
            name=name,
            description=payload.description,
            order=order,
            teacher_id=payload.teacher_id,
            max_capacity_per_class=payload.max_capacity_per_class or settings.default_class_capacity,
            is_active=True,
        )
        db.add(grade)
        await db.flush()
        if payload.create_initial_classroom:
            await classroom_service.open_classroom(db, grade)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Grade name or order already exists")
    await db.refresh(grade)
    logger.info(f"Created grade {grade.name} (order {grade.order})")
    return await _grade_to_response(db, grade)


async def list_grades(db: AsyncSession, active_only: bool = True) -> List[GradeResponse]:
    stmt = select(Grade)
    if active_only:
        stmt = stmt.where(Grade.is_active.is_(True))
    stmt = stmt.order_by(Grade.order)
    result = await db.execute(stmt)
    return [await _grade_to_response(db, g) for g in result.scalars().all()]


async def get_grade(db: AsyncSession, grade_id: UUID) -> Optional[GradeResponse]:
    grade = await get_grade_obj(db, grade_id)
    if not grade:
        return None
    return await _grade_to_response(db, grade)


async def update_grade(db: AsyncSession, grade_id: UUID, payload: GradeUpdate) -> Optional[GradeResponse]:
    """Capacity changes apply to classrooms opened afterwards; existing ones keep their capacity."""
    grade = await get_grade_obj(db, grade_id)
    if not grade:
        return None
    if payload.name is not None:
        grade.name = payload.name.strip()
    if payload.description is not None:
        grade.description = payload.description
    if payload.teacher_id is not None:
        grade.teacher_id = payload.teacher_id
    if payload.max_capacity_per_class is not None:
        grade.max_capacity_per_class = payload.max_capacity_per_class
    if payload.order is not None:
        grade.order = payload.order
    if payload.is_active is not None:
        grade.is_active = payload.is_active
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Grade name or order already exists")
    await db.refresh(grade)
    return await _grade_to_response(db, grade)


async def delete_grade(db: AsyncSession, grade_id: UUID) -> bool:
    grade = await get_grade_obj(db, grade_id)
    if not grade:
        return False
    student_count = (
        await db.execute(select(func.count(Student.id)).where(Student.grade_id == grade_id))
    ).scalar() or 0
    if student_count > 0:
        raise ConflictError(
            f"Cannot delete grade with {student_count} students. Please transfer students first."
        )
    attendance_ids = select(Attendance.id).where(Attendance.grade_id == grade_id)
    await db.execute(delete(AttendanceRecord).where(AttendanceRecord.attendance_id.in_(attendance_ids)))
    await db.execute(delete(Attendance).where(Attendance.grade_id == grade_id))
    schedule_ids = select(Schedule.id).where(Schedule.grade_id == grade_id)
    await db.execute(delete(SchedulePeriod).where(SchedulePeriod.schedule_id.in_(schedule_ids)))
    await db.execute(delete(Schedule).where(Schedule.grade_id == grade_id))
    await db.execute(delete(Classroom).where(Classroom.grade_id == grade_id))
    await db.delete(grade)
    await db.commit()
    logger.info(f"Deleted grade {grade.name}")
    return True


async def require_grade(db: AsyncSession, grade_id: UUID) -> Grade:
    grade = await get_grade_obj(db, grade_id)
    if not grade:
        raise NotFoundError("Grade not found")
    return grade
