from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import check_permission
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import PromotionRequest, PromotionResult
from . import service

router = APIRouter(prefix="/api/v1/grades", tags=["promotions"])


@router.post(
    "/{grade_id}/promote",
    response_model=PromotionResult,
    dependencies=[Depends(check_permission("promotions", "create"))],
)
async def promote_students(
    grade_id: UUID,
    payload: PromotionRequest,
    db: AsyncSession = Depends(get_db),
) -> PromotionResult:
    """Move the listed students of this grade to target_grade_id."""
    try:
        return await service.promote(db, grade_id, payload.target_grade_id, payload.student_ids)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
