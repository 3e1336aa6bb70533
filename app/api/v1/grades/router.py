from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.classrooms import service as classroom_service
from app.api.v1.classrooms.schemas import ClassroomResponse
from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import GradeCreate, GradeResponse, GradeUpdate
from . import service

router = APIRouter(prefix="/api/v1/grades", tags=["grades"])


@router.post(
    "",
    response_model=GradeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grades", "create"))],
)
async def create_grade(
    payload: GradeCreate,
    db: AsyncSession = Depends(get_db),
) -> GradeResponse:
    try:
        return await service.create_grade(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[GradeResponse],
    dependencies=[Depends(check_permission("grades", "read"))],
)
async def list_grades(
    active_only: bool = Query(True, description="Return only is_active=true by default"),
    db: AsyncSession = Depends(get_db),
) -> List[GradeResponse]:
    return await service.list_grades(db, active_only=active_only)


@router.get(
    "/{grade_id}",
    response_model=GradeResponse,
    dependencies=[Depends(check_permission("grades", "read"))],
)
async def get_grade(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> GradeResponse:
    obj = await service.get_grade(db, grade_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grade not found")
    return obj


@router.put(
    "/{grade_id}",
    response_model=GradeResponse,
    dependencies=[Depends(check_permission("grades", "update"))],
)
async def update_grade(
    grade_id: UUID,
    payload: GradeUpdate,
    db: AsyncSession = Depends(get_db),
) -> GradeResponse:
    try:
        obj = await service.update_grade(db, grade_id, payload)
        if not obj:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grade not found")
        return obj
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{grade_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("grades", "delete"))],
)
async def delete_grade(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        deleted = await service.delete_grade(db, grade_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grade not found")
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{grade_id}/classrooms",
    response_model=ClassroomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("classrooms", "create"))],
)
async def open_classroom(
    grade_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ClassroomResponse:
    """Open the next section (A, B, C...) for the grade."""
    try:
        return await classroom_service.provision_classroom(db, grade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
