"""Weekly schedule API router."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.enums import DayOfWeek
from app.core.exceptions import ServiceError
from app.db.session import get_db

from . import service
from .schemas import (
    ScheduleBulkDeleteResponse,
    ScheduleResponse,
    ScheduleSave,
    ScheduleUpdate,
    TodayScheduleResponse,
    WeekScheduleResponse,
)

router = APIRouter(prefix="/api/v1/schedules", tags=["schedules"])


@router.get(
    "",
    response_model=List[ScheduleResponse],
    dependencies=[Depends(check_permission("schedules", "read"))],
)
async def list_schedules(
    grade_id: Optional[UUID] = Query(None),
    day_of_week: Optional[DayOfWeek] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[ScheduleResponse]:
    return await service.list_schedules(db, grade_id=grade_id, day_of_week=day_of_week)


@router.post(
    "",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("schedules", "create"))],
)
async def save_schedule(
    payload: ScheduleSave,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ScheduleResponse:
    """Create the grade's schedule for a day. Saving the same day again replaces its periods."""
    try:
        return await service.save_schedule(db, payload, created_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/grade/{grade_id}",
    response_model=WeekScheduleResponse,
    dependencies=[Depends(check_permission("schedules", "read"))],
)
async def week_schedule(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> WeekScheduleResponse:
    try:
        return await service.week_schedule(db, grade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/today/{grade_id}",
    response_model=TodayScheduleResponse,
    dependencies=[Depends(check_permission("schedules", "read"))],
)
async def today_schedule(
    grade_id: UUID,
    on_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
) -> TodayScheduleResponse:
    try:
        return await service.today_schedule(db, grade_id, on_date or date.today())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/initialize/{grade_id}",
    dependencies=[Depends(check_permission("schedules", "create"))],
)
async def initialize_schedules(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Always refused: schedules are entered day by day."""
    try:
        await service.initialize_schedules(db, grade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{schedule_id}",
    response_model=ScheduleResponse,
    dependencies=[Depends(check_permission("schedules", "update"))],
)
async def update_schedule(
    schedule_id: UUID,
    payload: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
) -> ScheduleResponse:
    try:
        return await service.update_schedule(db, schedule_id, payload.periods)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/grade/{grade_id}/all",
    response_model=ScheduleBulkDeleteResponse,
    dependencies=[Depends(check_permission("schedules", "delete"))],
)
async def delete_all_for_grade(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ScheduleBulkDeleteResponse:
    try:
        return await service.delete_all_for_grade(db, grade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("schedules", "delete"))],
)
async def delete_schedule(
    schedule_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_schedule(db, schedule_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Schedule not found")
