from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import ClassroomAllocateRequest, ClassroomResponse
from . import service

router = APIRouter(prefix="/api/v1/classrooms", tags=["classrooms"])


@router.get(
    "",
    response_model=List[ClassroomResponse],
    dependencies=[Depends(check_permission("classrooms", "read"))],
)
async def list_classrooms(
    grade_id: Optional[UUID] = Query(None, description="Filter by grade"),
    active_only: bool = Query(True, description="Return only is_active=true by default"),
    db: AsyncSession = Depends(get_db),
) -> List[ClassroomResponse]:
    return await service.list_classrooms(db, grade_id=grade_id, active_only=active_only)


@router.post(
    "/allocate",
    response_model=ClassroomResponse,
    dependencies=[Depends(check_permission("classrooms", "create"))],
)
async def allocate_classroom(
    payload: ClassroomAllocateRequest,
    db: AsyncSession = Depends(get_db),
) -> ClassroomResponse:
    """Earliest classroom of the grade with a free seat; opens the next section when all are full."""
    try:
        return await service.allocate_classroom(db, payload.grade_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{classroom_id}",
    response_model=ClassroomResponse,
    dependencies=[Depends(check_permission("classrooms", "read"))],
)
async def get_classroom(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ClassroomResponse:
    obj = await service.get_classroom(db, classroom_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Classroom not found")
    return obj


@router.post(
    "/{classroom_id}/recount",
    response_model=ClassroomResponse,
    dependencies=[Depends(check_permission("classrooms", "update"))],
)
async def recount_classroom(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ClassroomResponse:
    """Rebuild current_count from the active students in the classroom."""
    try:
        return await service.recount_classroom(db, classroom_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
