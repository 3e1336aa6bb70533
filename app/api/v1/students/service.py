"""
Enrollment: student registry writes keep classroom occupancy in step.

- create: occupy classroom, insert student, record the initial fee as an outstanding Fee.
- update: grade change releases the old classroom and occupies one of the new grade.
- delete: release classroom, drop the student's fees and attendance entries, drop the student.
- Only active students hold a seat; a status change in or out of active takes or frees one.
Each operation commits once, so its writes land together or not at all.
"""

import logging
import re
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import StudentStatus
from app.core.exceptions import ConflictError, NotFoundError, ValidationFailure
from app.core.models import AttendanceRecord, Classroom, Student
from app.core.photos import normalize_photo_path, photo_url
from app.core.sequences import format_sequence

from app.api.v1.classrooms import service as classroom_service
from app.api.v1.fees import service as fee_service
from app.api.v1.grades import service as grade_service

from .schemas import (
    ClassroomRef,
    GradeRef,
    InitialFee,
    ParentInfo,
    StudentCreate,
    StudentDetailResponse,
    StudentResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)

REGISTRATION_FEE_DESCRIPTION = "Registration fee"


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _age(dob: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))


def student_to_response(s: Student) -> StudentResponse:
    return StudentResponse(
        id=_to_uuid(s.id),
        admission_no=s.admission_no,
        full_name=s.full_name,
        gender=s.gender,
        date_of_birth=s.date_of_birth,
        age=_age(s.date_of_birth),
        photo=s.photo,
        photo_url=photo_url(s.photo),
        grade_id=_to_uuid(s.grade_id),
        classroom_id=_to_uuid(s.classroom_id),
        grade=GradeRef(id=_to_uuid(s.grade.id), name=s.grade.name) if s.grade else None,
        classroom=(
            ClassroomRef(id=_to_uuid(s.classroom.id), name=s.classroom.name, suffix=s.classroom.suffix)
            if s.classroom
            else None
        ),
        parent=ParentInfo(
            full_name=s.parent_full_name,
            relationship=s.parent_relationship,
            location=s.parent_location,
            email=s.parent_email,
            phone=s.parent_phone,
            alternative_contact=s.parent_alternative_contact,
            signature_date=s.parent_signature_date,
        ),
        initial_fee=InitialFee(amount=s.initial_fee_amount, billing_type=s.initial_fee_billing_type),
        admission_date=s.admission_date,
        status=s.status,
        registered_by=_to_uuid(s.registered_by),
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


def _admission_pattern() -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(settings.admission_prefix)}/\d{{4}}/\d{{4,}}$")


def _validate_admission_no(value: str) -> str:
    value = value.strip()
    if not _admission_pattern().match(value):
        raise ValidationFailure(
            f"Admission number must look like {settings.admission_prefix}/<year>/<0001>",
            fields=["admission_no"],
        )
    return value


def _apply_parent(student: Student, parent: ParentInfo) -> None:
    student.parent_full_name = parent.full_name.strip()
    student.parent_relationship = parent.relationship.value
    student.parent_location = parent.location
    student.parent_email = str(parent.email) if parent.email else None
    student.parent_phone = parent.phone.strip()
    student.parent_alternative_contact = parent.alternative_contact
    student.parent_signature_date = parent.signature_date or date.today()


async def get_student_obj(db: AsyncSession, student_id: UUID) -> Optional[Student]:
    result = await db.execute(
        select(Student).where(Student.id == student_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _ensure_admission_no_free(db: AsyncSession, admission_no: str, exclude_id: Optional[UUID] = None) -> None:
    stmt = select(Student.id).where(Student.admission_no == admission_no)
    if exclude_id is not None:
        stmt = stmt.where(Student.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none():
        raise ConflictError("Admission number already exists")


async def seat_classroom(
    db: AsyncSession,
    classroom_id: UUID,
    grade_id: UUID,
    needs_seat: bool = True,
) -> Classroom:
    """Classroom must exist, belong to grade_id, be active and (when needs_seat) have a free seat."""
    classroom = await classroom_service.get_classroom_obj(db, classroom_id, populate_existing=True)
    if not classroom:
        raise NotFoundError("Classroom not found")
    if classroom.grade_id != grade_id:
        raise ConflictError("Classroom does not belong to selected grade")
    if not classroom.is_active:
        raise ConflictError(f"Classroom {classroom.name} is not active")
    if needs_seat and classroom.current_count >= classroom.capacity:
        raise ConflictError("Classroom is full")
    return classroom


async def create_student(
    db: AsyncSession,
    payload: StudentCreate,
    registered_by: Optional[UUID] = None,
) -> StudentResponse:
    admission_no = _validate_admission_no(payload.admission_no)
    await _ensure_admission_no_free(db, admission_no)
    await grade_service.require_grade(db, payload.grade_id)
    takes_seat = payload.status == StudentStatus.active
    classroom = await seat_classroom(db, payload.classroom_id, payload.grade_id, needs_seat=takes_seat)

    try:
        if takes_seat:
            await classroom_service.occupy(db, classroom.id)
        student = Student(
            admission_no=admission_no,
            photo=normalize_photo_path(payload.photo),
            full_name=payload.full_name.strip(),
            gender=payload.gender.value,
            date_of_birth=payload.date_of_birth,
            grade_id=payload.grade_id,
            classroom_id=classroom.id,
            initial_fee_amount=payload.initial_fee.amount,
            initial_fee_billing_type=payload.initial_fee.billing_type.value,
            admission_date=payload.admission_date or date.today(),
            status=payload.status.value,
            registered_by=registered_by,
        )
        _apply_parent(student, payload.parent)
        db.add(student)
        await db.flush()
        await fee_service.add_fee(
            db,
            student.id,
            payload.initial_fee.amount,
            payload.initial_fee.billing_type,
            recorded_by=registered_by,
            description=REGISTRATION_FEE_DESCRIPTION,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Admission number already exists")
    logger.info(f"Enrolled {student.admission_no} into {classroom.name}")
    return student_to_response(await get_student_obj(db, student.id))


async def update_student(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentUpdate,
) -> Optional[StudentResponse]:
    student = await get_student_obj(db, student_id)
    if not student:
        return None

    old_classroom_id = student.classroom_id
    grade_changed = payload.grade_id is not None and payload.grade_id != student.grade_id
    classroom_changed = payload.classroom_id is not None and payload.classroom_id != student.classroom_id
    # Only active students occupy a seat
    held_seat = student.holds_seat
    holds_seat = (payload.status or StudentStatus(student.status)) == StudentStatus.active

    if grade_changed:
        if payload.classroom_id is None:
            raise ValidationFailure(
                "Classroom is required when changing grade",
                fields=["classroom_id"],
            )
        await grade_service.require_grade(db, payload.grade_id)
        target = await seat_classroom(db, payload.classroom_id, payload.grade_id, needs_seat=holds_seat)
    elif classroom_changed:
        target = await seat_classroom(db, payload.classroom_id, student.grade_id, needs_seat=holds_seat)
    else:
        target = None
        if holds_seat and not held_seat:
            await seat_classroom(db, student.classroom_id, student.grade_id)

    if payload.admission_no is not None:
        admission_no = _validate_admission_no(payload.admission_no)
        await _ensure_admission_no_free(db, admission_no, exclude_id=student.id)
        student.admission_no = admission_no
    if payload.full_name is not None:
        student.full_name = payload.full_name.strip()
    if payload.gender is not None:
        student.gender = payload.gender.value
    if payload.date_of_birth is not None:
        student.date_of_birth = payload.date_of_birth
    if payload.photo is not None:
        student.photo = normalize_photo_path(payload.photo)
    if payload.parent is not None:
        _apply_parent(student, payload.parent)
    if payload.admission_date is not None:
        student.admission_date = payload.admission_date
    if payload.status is not None:
        student.status = payload.status.value

    try:
        new_classroom_id = target.id if target is not None else old_classroom_id
        if held_seat and (not holds_seat or new_classroom_id != old_classroom_id):
            await classroom_service.release(db, old_classroom_id)
        if holds_seat and (not held_seat or new_classroom_id != old_classroom_id):
            await classroom_service.occupy(db, new_classroom_id)
        if target is not None:
            student.grade_id = target.grade_id
            student.classroom_id = target.id
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Admission number already exists")
    if target is not None:
        logger.info(f"Moved {student.admission_no} to {target.name}")
    return student_to_response(await get_student_obj(db, student_id))


async def delete_student(db: AsyncSession, student_id: UUID) -> bool:
    student = await get_student_obj(db, student_id)
    if not student:
        return False
    admission_no = student.admission_no
    if student.holds_seat:
        await classroom_service.release(db, student.classroom_id)
    await fee_service.delete_fees_for_student(db, student.id)
    await db.execute(delete(AttendanceRecord).where(AttendanceRecord.student_id == student.id))
    await db.delete(student)
    await db.commit()
    logger.info(f"Deleted student {admission_no} with their fee and attendance records")
    return True


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentDetailResponse]:
    student = await get_student_obj(db, student_id)
    if not student:
        return None
    fees = await fee_service.list_fee_objs_for_student(db, student_id)
    return StudentDetailResponse(
        **student_to_response(student).model_dump(),
        fees=[fee_service.fee_to_response(f) for f in fees],
    )


async def list_students(
    db: AsyncSession,
    grade_id: Optional[UUID] = None,
    classroom_id: Optional[UUID] = None,
    status_filter: Optional[StudentStatus] = None,
    search: Optional[str] = None,
) -> List[StudentResponse]:
    stmt = select(Student)
    if grade_id is not None:
        stmt = stmt.where(Student.grade_id == grade_id)
    if classroom_id is not None:
        stmt = stmt.where(Student.classroom_id == classroom_id)
    if status_filter is not None:
        stmt = stmt.where(Student.status == StudentStatus(status_filter).value)
    if search and search.strip():
        term = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Student.full_name.ilike(term),
                Student.admission_no.ilike(term),
                Student.parent_full_name.ilike(term),
            )
        )
    stmt = stmt.order_by(Student.created_at.desc())
    result = await db.execute(stmt)
    return [student_to_response(s) for s in result.scalars().unique().all()]


async def list_students_by_classroom(db: AsyncSession, classroom_id: UUID) -> List[StudentResponse]:
    """Active students of one classroom, alphabetical."""
    classroom = await classroom_service.get_classroom_obj(db, classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    result = await db.execute(
        select(Student)
        .where(
            Student.classroom_id == classroom_id,
            Student.status == StudentStatus.active.value,
        )
        .order_by(Student.full_name)
    )
    return [student_to_response(s) for s in result.scalars().unique().all()]


async def next_admission_no(db: AsyncSession, year: Optional[int] = None) -> str:
    """Suggest <prefix>/<year>/<max+1>. Not reserved; create_student still enforces uniqueness."""
    year = year or date.today().year
    head = f"{settings.admission_prefix}/{year}/"
    result = await db.execute(select(Student.admission_no).where(Student.admission_no.like(f"{head}%")))
    highest = 0
    for admission_no in result.scalars().all():
        tail = admission_no[len(head):]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return format_sequence(settings.admission_prefix, year, highest + 1, "/")
