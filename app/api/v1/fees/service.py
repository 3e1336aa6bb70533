"""
Fee lifecycle: outstanding -> paid (terminal).

- pay() settles the full amount and mints receipt_no (SEC-<year>-<seq>) if absent.
- Paid fees cannot be paid again or deleted.
- Receipt sequence comes from an atomic per-year counter, seeded from existing receipts.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import BillingType, FeeStatus, PaymentMethod
from app.core.exceptions import ConflictError, NotFoundError
from app.core.models import Fee, Student
from app.core.sequences import RECEIPT_SEQUENCE, format_sequence, next_value

from .schemas import (
    FeeCreate,
    FeeListResponse,
    FeeResponse,
    FeeStudentRef,
    FeeSummaryResponse,
    FeeTotals,
    FeeYearTotals,
    OutstandingFeeEntry,
    ReceiptResponse,
    StudentFeeSummary,
    StudentFeesResponse,
)

logger = logging.getLogger(__name__)

SUMMARY_LIST_LIMIT = 10
RECENT_PAYMENT_DAYS = 30


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def fee_to_response(f: Fee) -> FeeResponse:
    student = None
    if f.student is not None:
        student = FeeStudentRef(
            id=_to_uuid(f.student.id),
            full_name=f.student.full_name,
            admission_no=f.student.admission_no,
        )
    return FeeResponse(
        id=_to_uuid(f.id),
        student_id=_to_uuid(f.student_id),
        student=student,
        receipt_no=f.receipt_no,
        amount=_to_decimal(f.amount),
        billing_type=f.billing_type,
        description=f.description,
        status=f.status,
        due_date=f.due_date,
        paid_date=f.paid_date,
        paid_amount=_to_decimal(f.paid_amount),
        balance=f.balance,
        payment_method=f.payment_method,
        recorded_by=_to_uuid(f.recorded_by),
        paid_recorded_by=_to_uuid(f.paid_recorded_by),
        term=f.term,
        year=f.year,
        created_at=f.created_at,
        updated_at=f.updated_at,
    )


async def get_fee_obj(db: AsyncSession, fee_id: UUID) -> Optional[Fee]:
    result = await db.execute(
        select(Fee).where(Fee.id == fee_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_fee(db: AsyncSession, fee_id: UUID) -> Optional[FeeResponse]:
    fee = await get_fee_obj(db, fee_id)
    return fee_to_response(fee) if fee else None


async def add_fee(
    db: AsyncSession,
    student_id: UUID,
    amount: Decimal,
    billing_type: BillingType,
    recorded_by: Optional[UUID],
    description: Optional[str] = None,
    due_date: Optional[date] = None,
    term: Optional[str] = None,
    year: Optional[int] = None,
) -> Fee:
    """Add an outstanding fee. Does not commit; caller must commit."""
    fee = Fee(
        student_id=student_id,
        amount=_to_decimal(amount),
        billing_type=BillingType(billing_type).value,
        description=(description or "").strip() or None,
        status=FeeStatus.outstanding.value,
        due_date=due_date,
        paid_amount=Decimal("0"),
        recorded_by=recorded_by,
        term=(term or "").strip() or None,
        year=year or date.today().year,
    )
    db.add(fee)
    await db.flush()
    return fee


async def create_fee(db: AsyncSession, payload: FeeCreate, recorded_by: Optional[UUID]) -> FeeResponse:
    student = await db.get(Student, payload.student_id)
    if not student:
        raise NotFoundError("Student not found")
    fee = await add_fee(
        db,
        payload.student_id,
        payload.amount,
        payload.billing_type,
        recorded_by,
        description=payload.description,
        due_date=payload.due_date,
        term=payload.term,
        year=payload.year,
    )
    await db.commit()
    logger.info(f"Recorded {fee.billing_type} fee of {fee.amount} for student {student.admission_no}")
    return await get_fee(db, fee.id)


async def list_fees(
    db: AsyncSession,
    status_filter: Optional[FeeStatus] = None,
    student_id: Optional[UUID] = None,
    billing_type: Optional[BillingType] = None,
    year: Optional[int] = None,
) -> FeeListResponse:
    stmt = select(Fee)
    if status_filter is not None:
        stmt = stmt.where(Fee.status == FeeStatus(status_filter).value)
    if student_id is not None:
        stmt = stmt.where(Fee.student_id == student_id)
    if billing_type is not None:
        stmt = stmt.where(Fee.billing_type == BillingType(billing_type).value)
    if year is not None:
        stmt = stmt.where(Fee.year == year)
    stmt = stmt.order_by(Fee.created_at.desc())
    result = await db.execute(stmt)
    fees = result.scalars().unique().all()

    outstanding = sum(
        (_to_decimal(f.amount) for f in fees if f.status == FeeStatus.outstanding.value), Decimal("0")
    )
    paid = sum((_to_decimal(f.paid_amount) for f in fees if f.status == FeeStatus.paid.value), Decimal("0"))
    total = sum((_to_decimal(f.amount) for f in fees), Decimal("0"))
    return FeeListResponse(
        count=len(fees),
        fees=[fee_to_response(f) for f in fees],
        totals=FeeTotals(outstanding=outstanding, paid=paid, total=total),
    )


async def list_fee_objs_for_student(db: AsyncSession, student_id: UUID) -> List[Fee]:
    result = await db.execute(
        select(Fee).where(Fee.student_id == student_id).order_by(Fee.created_at.desc())
    )
    return list(result.scalars().unique().all())


async def student_fees(db: AsyncSession, student_id: UUID) -> StudentFeesResponse:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    fees = await list_fee_objs_for_student(db, student_id)
    outstanding = [f for f in fees if f.status == FeeStatus.outstanding.value]
    paid = [f for f in fees if f.status == FeeStatus.paid.value]
    return StudentFeesResponse(
        fees=[fee_to_response(f) for f in fees],
        summary=StudentFeeSummary(
            outstanding=sum((_to_decimal(f.amount) for f in outstanding), Decimal("0")),
            paid=sum((_to_decimal(f.paid_amount) for f in paid), Decimal("0")),
            outstanding_count=len(outstanding),
            paid_count=len(paid),
        ),
    )


async def delete_fees_for_student(db: AsyncSession, student_id: UUID) -> None:
    """Remove every fee of a student (paid ones included). Does not commit; caller must commit."""
    await db.execute(delete(Fee).where(Fee.student_id == student_id))


# --- Receipt numbering ---
def _receipt_prefix(year: int) -> str:
    return f"{settings.receipt_prefix}-{year}-"


async def _count_receipts(db: AsyncSession, year: int) -> int:
    result = await db.execute(
        select(func.count(Fee.id)).where(Fee.receipt_no.like(f"{_receipt_prefix(year)}%"))
    )
    return result.scalar() or 0


async def mint_receipt_no(db: AsyncSession, year: int) -> str:
    """Next receipt number for the year. Does not commit; caller must commit."""

    async def _seed() -> int:
        return await _count_receipts(db, year)

    value = await next_value(db, RECEIPT_SEQUENCE, year, seed=_seed)
    return format_sequence(settings.receipt_prefix, year, value, "-")


# --- Lifecycle transitions ---
async def pay(
    db: AsyncSession,
    fee_id: UUID,
    payment_method: Optional[PaymentMethod],
    paid_by: Optional[UUID],
) -> FeeResponse:
    """Settle the full amount: outstanding -> paid. Conflict if already paid."""
    fee = await get_fee_obj(db, fee_id)
    if not fee:
        raise NotFoundError("Fee record not found")
    if fee.status == FeeStatus.paid.value:
        raise ConflictError("This fee has already been paid")

    method = PaymentMethod(payment_method or PaymentMethod.cash)
    fee.status = FeeStatus.paid.value
    fee.paid_amount = _to_decimal(fee.amount)
    fee.paid_date = datetime.now(timezone.utc)
    fee.payment_method = method.value
    fee.paid_recorded_by = paid_by
    try:
        if not fee.receipt_no:
            fee.receipt_no = await mint_receipt_no(db, date.today().year)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Receipt number was taken by a concurrent payment, retry")
    logger.info(f"Payment of {fee.amount} recorded for fee {fee.id} via {method.value} ({fee.receipt_no})")
    return await get_fee(db, fee_id)


async def delete_fee(db: AsyncSession, fee_id: UUID) -> bool:
    fee = await get_fee_obj(db, fee_id)
    if not fee:
        return False
    if fee.status == FeeStatus.paid.value:
        raise ConflictError("Cannot delete paid fee records")
    await db.delete(fee)
    await db.commit()
    logger.info(f"Deleted outstanding fee {fee_id}")
    return True


async def get_receipt(db: AsyncSession, fee_id: UUID) -> ReceiptResponse:
    fee = await get_fee_obj(db, fee_id)
    if not fee:
        raise NotFoundError("Fee record not found")
    if fee.status != FeeStatus.paid.value or not fee.receipt_no:
        raise ConflictError("Receipt only available for paid fees")
    student = fee.student
    return ReceiptResponse(
        receipt_no=fee.receipt_no,
        fee=fee_to_response(fee),
        grade_name=student.grade.name if student and student.grade else None,
        classroom_name=student.classroom.name if student and student.classroom else None,
        parent_full_name=student.parent_full_name if student else None,
        parent_phone=student.parent_phone if student else None,
    )


async def fee_summary(
    db: AsyncSession,
    year: Optional[int] = None,
    now: Optional[datetime] = None,
) -> FeeSummaryResponse:
    """Year totals, the ten largest outstanding fees and the ten latest payments of the last 30 days."""
    year = year or date.today().year
    now = now or datetime.now(timezone.utc)

    totals = (
        await db.execute(
            select(
                func.coalesce(func.sum(Fee.amount), 0),
                func.coalesce(
                    func.sum(case((Fee.status == FeeStatus.paid.value, Fee.paid_amount), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(case((Fee.status == FeeStatus.outstanding.value, Fee.amount), else_=0)), 0
                ),
            ).where(Fee.year == year)
        )
    ).one()
    expected, collected, outstanding = (_to_decimal(v) for v in totals)
    rate = 0.0
    if expected > 0:
        rate = float((collected / expected * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    largest = await db.execute(
        select(Fee)
        .where(Fee.status == FeeStatus.outstanding.value, Fee.year == year)
        .order_by(Fee.amount.desc(), Fee.created_at)
        .limit(SUMMARY_LIST_LIMIT)
    )
    recent = await db.execute(
        select(Fee)
        .where(Fee.status == FeeStatus.paid.value, Fee.paid_date >= now - timedelta(days=RECENT_PAYMENT_DAYS))
        .order_by(Fee.paid_date.desc())
        .limit(SUMMARY_LIST_LIMIT)
    )

    students_with_outstanding = []
    for f in largest.scalars().unique().all():
        grade = f.student.grade if f.student is not None else None
        students_with_outstanding.append(
            OutstandingFeeEntry(**fee_to_response(f).model_dump(), grade_name=grade.name if grade else None)
        )
    return FeeSummaryResponse(
        summary=FeeYearTotals(
            year=year,
            total_expected=expected,
            total_collected=collected,
            total_outstanding=outstanding,
            collection_rate=rate,
        ),
        students_with_outstanding=students_with_outstanding,
        recent_payments=[fee_to_response(f) for f in recent.scalars().unique().all()],
    )
