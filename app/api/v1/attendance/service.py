"""
Attendance marking: one master per classroom per calendar day.

- mark() is an upsert: an existing master for (day, classroom) gets its records replaced.
- A unique-constraint race on create is retried once as an update.
- Stats are derived from records on read and never stored.
"""

import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import AttendanceStatus, StudentStatus
from app.core.exceptions import ConflictError, NotFoundError, ValidationFailure
from app.core.models import Attendance, AttendanceRecord, Student
from app.core.photos import photo_url

from app.api.v1.classrooms import service as classroom_service
from app.api.v1.grades import service as grade_service

from .schemas import (
    AttendanceEntry,
    AttendanceMarkRequest,
    AttendanceRecordResponse,
    AttendanceResponse,
    AttendanceStats,
    ClassroomDaySummary,
    DaySummaryResponse,
    MarkingSheetResponse,
    MarkingStudent,
    StudentHistoryEntry,
    StudentHistoryResponse,
)

logger = logging.getLogger(__name__)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _stats(statuses: Iterable[str]) -> AttendanceStats:
    counts = {s.value: 0 for s in AttendanceStatus}
    total = 0
    for s in statuses:
        counts[s] = counts.get(s, 0) + 1
        total += 1
    return AttendanceStats(
        present=counts[AttendanceStatus.present.value],
        absent=counts[AttendanceStatus.absent.value],
        late=counts[AttendanceStatus.late.value],
        total=total,
    )


def _check_entries(entries: List[AttendanceEntry]) -> None:
    seen = set()
    duplicates = []
    for entry in entries:
        if entry.student_id in seen:
            duplicates.append(str(entry.student_id))
        seen.add(entry.student_id)
    if duplicates:
        raise ValidationFailure(
            f"Duplicate attendance entries for students: {', '.join(duplicates)}",
            fields=["records"],
        )


async def _student_lookup(db: AsyncSession, student_ids: Iterable[UUID]) -> Dict[UUID, Tuple[str, str]]:
    ids = list(set(student_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Student.id, Student.full_name, Student.admission_no).where(Student.id.in_(ids))
    )
    return {row.id: (row.full_name, row.admission_no) for row in result.all()}


async def _require_students(db: AsyncSession, entries: List[AttendanceEntry], classroom_id: UUID) -> None:
    """Every entry must name an existing student enrolled in the classroom."""
    ids = list({e.student_id for e in entries})
    result = await db.execute(select(Student.id, Student.classroom_id).where(Student.id.in_(ids)))
    classroom_of = {row.id: row.classroom_id for row in result.all()}
    missing = [str(e.student_id) for e in entries if e.student_id not in classroom_of]
    if missing:
        raise ValidationFailure(f"Unknown students: {', '.join(missing)}", fields=["records"])
    outsiders = [str(e.student_id) for e in entries if classroom_of[e.student_id] != classroom_id]
    if outsiders:
        raise ValidationFailure(
            f"Students not enrolled in this classroom: {', '.join(outsiders)}",
            fields=["records"],
        )


async def _to_response(db: AsyncSession, a: Attendance) -> AttendanceResponse:
    names = await _student_lookup(db, [r.student_id for r in a.records])
    records = []
    for r in a.records:
        full_name, admission_no = names.get(r.student_id, (None, None))
        records.append(
            AttendanceRecordResponse(
                student_id=_to_uuid(r.student_id),
                student_name=full_name,
                admission_no=admission_no,
                status=r.status,
            )
        )
    records.sort(key=lambda rec: rec.student_name or "")
    return AttendanceResponse(
        id=_to_uuid(a.id),
        attendance_date=a.attendance_date,
        grade_id=_to_uuid(a.grade_id),
        grade_name=a.grade.name if a.grade else None,
        classroom_id=_to_uuid(a.classroom_id),
        classroom_name=a.classroom.name if a.classroom else None,
        marked_by=_to_uuid(a.marked_by),
        last_edited_by=_to_uuid(a.last_edited_by),
        last_edited_at=a.last_edited_at,
        records=records,
        stats=_stats(r.status for r in a.records),
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


async def get_attendance_obj(db: AsyncSession, attendance_id: UUID) -> Optional[Attendance]:
    result = await db.execute(
        select(Attendance).where(Attendance.id == attendance_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _find_for_day(db: AsyncSession, day: date, classroom_id: UUID) -> Optional[Attendance]:
    result = await db.execute(
        select(Attendance)
        .where(Attendance.attendance_date == day, Attendance.classroom_id == classroom_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _replace_records(attendance: Attendance, entries: List[AttendanceEntry], edited_by: UUID) -> None:
    attendance.records = [
        AttendanceRecord(student_id=e.student_id, status=AttendanceStatus(e.status).value) for e in entries
    ]
    attendance.last_edited_by = edited_by
    attendance.last_edited_at = datetime.now(timezone.utc)


async def mark(db: AsyncSession, payload: AttendanceMarkRequest, marked_by: UUID) -> AttendanceResponse:
    """Create the day's attendance for a classroom, or replace its records when it already exists."""
    _check_entries(payload.records)
    day = payload.attendance_date
    await grade_service.require_grade(db, payload.grade_id)
    classroom = await classroom_service.get_classroom_obj(db, payload.classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    if classroom.grade_id != payload.grade_id:
        raise ConflictError("Classroom does not belong to selected grade")
    await _require_students(db, payload.records, payload.classroom_id)

    existing = await _find_for_day(db, day, payload.classroom_id)
    if existing:
        _replace_records(existing, payload.records, marked_by)
        await db.commit()
        logger.info(f"Updated attendance for {classroom.name} on {day}")
        return await _to_response(db, await get_attendance_obj(db, existing.id))

    attendance = Attendance(
        attendance_date=day,
        grade_id=payload.grade_id,
        classroom_id=payload.classroom_id,
        marked_by=marked_by,
        records=[
            AttendanceRecord(student_id=e.student_id, status=AttendanceStatus(e.status).value)
            for e in payload.records
        ],
    )
    db.add(attendance)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Attendance for {classroom.name} on {day} was created concurrently, updating instead")
        existing = await _find_for_day(db, day, payload.classroom_id)
        if not existing:
            raise ConflictError("Attendance could not be recorded, retry")
        _replace_records(existing, payload.records, marked_by)
        await db.commit()
        return await _to_response(db, await get_attendance_obj(db, existing.id))
    logger.info(f"Marked attendance for {classroom.name} on {day} ({len(payload.records)} students)")
    return await _to_response(db, await get_attendance_obj(db, attendance.id))


async def marking_students(db: AsyncSession, classroom_id: UUID, day: date) -> MarkingSheetResponse:
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
    students = result.scalars().unique().all()
    existing = await _find_for_day(db, day, classroom_id)
    recorded = {r.student_id: r.status for r in existing.records} if existing else {}
    return MarkingSheetResponse(
        classroom_id=_to_uuid(classroom.id),
        classroom_name=classroom.name,
        attendance_date=day,
        students=[
            MarkingStudent(
                id=_to_uuid(s.id),
                full_name=s.full_name,
                admission_no=s.admission_no,
                photo_url=photo_url(s.photo),
                status=recorded.get(s.id),
            )
            for s in students
        ],
        attendance=await _to_response(db, existing) if existing else None,
    )


async def update_attendance(
    db: AsyncSession,
    attendance_id: UUID,
    entries: List[AttendanceEntry],
    edited_by: UUID,
) -> AttendanceResponse:
    _check_entries(entries)
    attendance = await get_attendance_obj(db, attendance_id)
    if not attendance:
        raise NotFoundError("Attendance record not found")
    await _require_students(db, entries, attendance.classroom_id)
    _replace_records(attendance, entries, edited_by)
    await db.commit()
    logger.info(f"Edited attendance {attendance_id} ({len(entries)} students)")
    return await _to_response(db, await get_attendance_obj(db, attendance_id))


async def list_attendance(
    db: AsyncSession,
    day: Optional[date] = None,
    grade_id: Optional[UUID] = None,
    classroom_id: Optional[UUID] = None,
) -> List[AttendanceResponse]:
    stmt = select(Attendance)
    if day is not None:
        stmt = stmt.where(Attendance.attendance_date == day)
    if grade_id is not None:
        stmt = stmt.where(Attendance.grade_id == grade_id)
    if classroom_id is not None:
        stmt = stmt.where(Attendance.classroom_id == classroom_id)
    stmt = stmt.order_by(Attendance.attendance_date.desc())
    result = await db.execute(stmt)
    return [await _to_response(db, a) for a in result.scalars().unique().all()]


async def student_history(
    db: AsyncSession,
    student_id: UUID,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> StudentHistoryResponse:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    stmt = (
        select(
            AttendanceRecord.status,
            Attendance.id,
            Attendance.attendance_date,
            Attendance.classroom_id,
        )
        .join(Attendance, Attendance.id == AttendanceRecord.attendance_id)
        .where(AttendanceRecord.student_id == student_id)
    )
    if start is not None:
        stmt = stmt.where(Attendance.attendance_date >= start)
    if end is not None:
        stmt = stmt.where(Attendance.attendance_date <= end)
    stmt = stmt.order_by(Attendance.attendance_date.desc())
    rows = (await db.execute(stmt)).all()

    stats = _stats(row.status for row in rows)
    rate = round((stats.present + stats.late) / stats.total * 100, 1) if stats.total else 0.0
    return StudentHistoryResponse(
        student_id=_to_uuid(student.id),
        records=[
            StudentHistoryEntry(
                attendance_id=_to_uuid(row.id),
                attendance_date=row.attendance_date,
                classroom_id=_to_uuid(row.classroom_id),
                status=row.status,
            )
            for row in rows
        ],
        stats=stats,
        attendance_rate=rate,
    )


async def day_summary(db: AsyncSession, day: date) -> DaySummaryResponse:
    result = await db.execute(select(Attendance).where(Attendance.attendance_date == day))
    masters = result.scalars().unique().all()
    classrooms = []
    for a in masters:
        classrooms.append(
            ClassroomDaySummary(
                attendance_id=_to_uuid(a.id),
                classroom_id=_to_uuid(a.classroom_id),
                classroom_name=a.classroom.name if a.classroom else None,
                grade_name=a.grade.name if a.grade else None,
                stats=_stats(r.status for r in a.records),
            )
        )
    classrooms.sort(key=lambda c: c.classroom_name or "")
    return DaySummaryResponse(
        attendance_date=day,
        classrooms=classrooms,
        totals=_stats(r.status for a in masters for r in a.records),
    )
