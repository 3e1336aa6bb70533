"""
Weekly schedules: one schedule per grade per school day (monday..friday).

- save_schedule() is an upsert on (grade, day): an existing schedule gets its periods replaced.
- Periods keep the order they were submitted in.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import DayOfWeek, PeriodType
from app.core.exceptions import ConflictError, NotFoundError, ServiceError, ValidationFailure
from app.core.models import Schedule, SchedulePeriod

from app.api.v1.grades import service as grade_service

from .schemas import (
    PeriodIn,
    PeriodResponse,
    ScheduleBulkDeleteResponse,
    ScheduleResponse,
    ScheduleSave,
    TodayScheduleResponse,
    WeekScheduleResponse,
)

logger = logging.getLogger(__name__)

SCHOOL_DAYS = [d.value for d in DayOfWeek]
WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_response(s: Schedule) -> ScheduleResponse:
    return ScheduleResponse(
        id=_to_uuid(s.id),
        grade_id=_to_uuid(s.grade_id),
        grade_name=s.grade.name if s.grade else None,
        day_of_week=s.day_of_week,
        is_active=s.is_active,
        created_by=_to_uuid(s.created_by),
        periods=[PeriodResponse.model_validate(p) for p in s.periods],
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


def _check_periods(periods: List[PeriodIn]) -> None:
    backwards = [str(i) for i, p in enumerate(periods) if p.end_time <= p.start_time]
    if backwards:
        raise ValidationFailure(
            f"Period end time must be after start time (periods {', '.join(backwards)})",
            fields=["periods"],
        )


def _build_periods(periods: List[PeriodIn]) -> List[SchedulePeriod]:
    return [
        SchedulePeriod(
            position=i,
            start_time=p.start_time,
            end_time=p.end_time,
            activity=p.activity,
            period_type=PeriodType(p.period_type).value,
        )
        for i, p in enumerate(periods)
    ]


def _day_key(s: Schedule) -> Tuple[int, int]:
    grade_order = s.grade.order if s.grade else 0
    return grade_order, SCHOOL_DAYS.index(s.day_of_week)


async def get_schedule_obj(db: AsyncSession, schedule_id: UUID) -> Optional[Schedule]:
    result = await db.execute(
        select(Schedule).where(Schedule.id == schedule_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _find_for_day(db: AsyncSession, grade_id: UUID, day: str) -> Optional[Schedule]:
    result = await db.execute(
        select(Schedule)
        .where(Schedule.grade_id == grade_id, Schedule.day_of_week == day)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_schedules(
    db: AsyncSession,
    grade_id: Optional[UUID] = None,
    day_of_week: Optional[DayOfWeek] = None,
) -> List[ScheduleResponse]:
    """Active schedules ordered by grade, then by school day."""
    stmt = select(Schedule).where(Schedule.is_active.is_(True))
    if grade_id:
        stmt = stmt.where(Schedule.grade_id == grade_id)
    if day_of_week:
        stmt = stmt.where(Schedule.day_of_week == DayOfWeek(day_of_week).value)
    result = await db.execute(stmt)
    schedules = sorted(result.scalars().unique().all(), key=_day_key)
    return [_to_response(s) for s in schedules]


async def week_schedule(db: AsyncSession, grade_id: UUID) -> WeekScheduleResponse:
    grade = await grade_service.require_grade(db, grade_id)
    result = await db.execute(
        select(Schedule).where(Schedule.grade_id == grade_id, Schedule.is_active.is_(True))
    )
    by_day: Dict[str, Schedule] = {s.day_of_week: s for s in result.scalars().unique().all()}
    return WeekScheduleResponse(
        grade_id=_to_uuid(grade.id),
        grade_name=grade.name,
        week={day: _to_response(by_day[day]) if day in by_day else None for day in SCHOOL_DAYS},
    )


async def save_schedule(db: AsyncSession, payload: ScheduleSave, created_by: UUID) -> ScheduleResponse:
    """Create the (grade, day) schedule, or replace its periods when it already exists."""
    _check_periods(payload.periods)
    grade = await grade_service.require_grade(db, payload.grade_id)
    day = DayOfWeek(payload.day_of_week).value

    existing = await _find_for_day(db, payload.grade_id, day)
    if existing:
        existing.periods = _build_periods(payload.periods)
        await db.commit()
        logger.info(f"Replaced {day} schedule for {grade.name} ({len(payload.periods)} periods)")
        return _to_response(await get_schedule_obj(db, existing.id))

    schedule = Schedule(
        grade_id=payload.grade_id,
        day_of_week=day,
        created_by=created_by,
        periods=_build_periods(payload.periods),
    )
    db.add(schedule)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"{day} schedule for {grade.name} was created concurrently, updating instead")
        existing = await _find_for_day(db, payload.grade_id, day)
        if not existing:
            raise ConflictError("Schedule for this grade and day already exists")
        existing.periods = _build_periods(payload.periods)
        await db.commit()
        return _to_response(await get_schedule_obj(db, existing.id))
    logger.info(f"Created {day} schedule for {grade.name} ({len(payload.periods)} periods)")
    return _to_response(await get_schedule_obj(db, schedule.id))


async def update_schedule(db: AsyncSession, schedule_id: UUID, periods: List[PeriodIn]) -> ScheduleResponse:
    _check_periods(periods)
    schedule = await get_schedule_obj(db, schedule_id)
    if not schedule:
        raise NotFoundError("Schedule not found")
    schedule.periods = _build_periods(periods)
    await db.commit()
    return _to_response(await get_schedule_obj(db, schedule_id))


async def delete_schedule(db: AsyncSession, schedule_id: UUID) -> bool:
    schedule = await get_schedule_obj(db, schedule_id)
    if not schedule:
        return False
    await db.delete(schedule)
    await db.commit()
    logger.info(f"Deleted {schedule.day_of_week} schedule {schedule_id}")
    return True


async def today_schedule(db: AsyncSession, grade_id: UUID, today: date) -> TodayScheduleResponse:
    """The grade's active schedule for `today`; weekends have none."""
    await grade_service.require_grade(db, grade_id)
    day = WEEKDAY_NAMES[today.weekday()]
    if day not in SCHOOL_DAYS:
        return TodayScheduleResponse(day=day, schedule_date=today, message="No classes on weekends")
    schedule = await _find_for_day(db, grade_id, day)
    if schedule is None or not schedule.is_active:
        return TodayScheduleResponse(day=day, schedule_date=today)
    return TodayScheduleResponse(day=day, schedule_date=today, schedule=_to_response(schedule))


async def delete_all_for_grade(db: AsyncSession, grade_id: UUID) -> ScheduleBulkDeleteResponse:
    grade = await grade_service.require_grade(db, grade_id)
    schedule_ids = select(Schedule.id).where(Schedule.grade_id == grade_id)
    await db.execute(delete(SchedulePeriod).where(SchedulePeriod.schedule_id.in_(schedule_ids)))
    result = await db.execute(delete(Schedule).where(Schedule.grade_id == grade_id))
    await db.commit()
    deleted = result.rowcount or 0
    logger.info(f"Deleted {deleted} schedule(s) for {grade.name}")
    return ScheduleBulkDeleteResponse(
        grade_id=_to_uuid(grade.id),
        deleted_count=deleted,
        message=f"Deleted {deleted} schedule(s) for {grade.name}",
    )


async def initialize_schedules(db: AsyncSession, grade_id: UUID) -> None:
    """Default timetables are not generated; schedules are entered day by day."""
    await grade_service.require_grade(db, grade_id)
    raise ServiceError(
        "Please use manual schedule creation. Add periods individually for each day.",
        status_code=status.HTTP_400_BAD_REQUEST,
    )
