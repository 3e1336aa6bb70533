"""Attendance API router."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from . import service
from .schemas import (
    AttendanceMarkRequest,
    AttendanceResponse,
    AttendanceUpdateRequest,
    DaySummaryResponse,
    MarkingSheetResponse,
    StudentHistoryResponse,
)

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post(
    "",
    response_model=AttendanceResponse,
    dependencies=[Depends(check_permission("attendance", "create"))],
)
async def mark_attendance(
    payload: AttendanceMarkRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    """Mark a classroom for a day. Marking the same day again replaces its records."""
    try:
        return await service.mark(db, payload, marked_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[AttendanceResponse],
    dependencies=[Depends(check_permission("attendance", "read"))],
)
async def list_attendance(
    att_date: Optional[date] = Query(None, alias="date", description="Attendance date"),
    grade_id: Optional[UUID] = Query(None),
    classroom_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[AttendanceResponse]:
    return await service.list_attendance(db, day=att_date, grade_id=grade_id, classroom_id=classroom_id)


@router.get(
    "/summary",
    response_model=DaySummaryResponse,
    dependencies=[Depends(check_permission("attendance", "read"))],
)
async def day_summary(
    att_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
) -> DaySummaryResponse:
    return await service.day_summary(db, att_date or date.today())


@router.get(
    "/mark/{classroom_id}",
    response_model=MarkingSheetResponse,
    dependencies=[Depends(check_permission("attendance", "read"))],
)
async def marking_students(
    classroom_id: UUID,
    att_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
) -> MarkingSheetResponse:
    """Active students of the classroom with any status already recorded for the day."""
    try:
        return await service.marking_students(db, classroom_id, att_date or date.today())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/student/{student_id}",
    response_model=StudentHistoryResponse,
    dependencies=[Depends(check_permission("attendance", "read"))],
)
async def student_history(
    student_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> StudentHistoryResponse:
    try:
        return await service.student_history(db, student_id, start=start_date, end=end_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{attendance_id}",
    response_model=AttendanceResponse,
    dependencies=[Depends(check_permission("attendance", "update"))],
)
async def update_attendance(
    attendance_id: UUID,
    payload: AttendanceUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceResponse:
    """Replace the records of an existing attendance. Admin and head teacher only."""
    try:
        return await service.update_attendance(db, attendance_id, payload.records, edited_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
