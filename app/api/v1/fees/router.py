"""Fees router: record fees, list with totals, settle, receipt."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.enums import BillingType, FeeStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    FeeCreate,
    FeeListResponse,
    FeePayRequest,
    FeeResponse,
    FeeSummaryResponse,
    ReceiptResponse,
    StudentFeesResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


@router.post(
    "",
    response_model=FeeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_fee(
    payload: FeeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeResponse:
    try:
        return await service.create_fee(db, payload, recorded_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=FeeListResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_fees(
    status_filter: Optional[FeeStatus] = Query(None, alias="status"),
    student_id: Optional[UUID] = Query(None),
    billing_type: Optional[BillingType] = Query(None),
    year: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> FeeListResponse:
    return await service.list_fees(
        db,
        status_filter=status_filter,
        student_id=student_id,
        billing_type=billing_type,
        year=year,
    )


@router.get(
    "/summary",
    response_model=FeeSummaryResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def fee_summary(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
) -> FeeSummaryResponse:
    """Year totals, the largest outstanding fees and recent payments."""
    return await service.fee_summary(db, year=year)


@router.get(
    "/student/{student_id}",
    response_model=StudentFeesResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def student_fees(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentFeesResponse:
    try:
        return await service.student_fees(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put(
    "/{fee_id}/pay",
    response_model=FeeResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def pay_fee(
    fee_id: UUID,
    payload: Optional[FeePayRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeResponse:
    """Settle the full amount and mint a receipt number."""
    try:
        return await service.pay(
            db,
            fee_id,
            payment_method=payload.payment_method if payload else None,
            paid_by=current_user.id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{fee_id}/receipt",
    response_model=ReceiptResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_receipt(
    fee_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ReceiptResponse:
    try:
        return await service.get_receipt(db, fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{fee_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("fees", "delete"))],
)
async def delete_fee(
    fee_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        deleted = await service.delete_fee(db, fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee record not found")
