"""
Grade promotion: move a batch of students from one grade to another.

Students are handled one at a time, each move in its own transaction:
release the old classroom, allocate in the target grade (opening a section when all are full),
occupy it. Students that cannot be moved are reported in `skipped` with a reason.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.core.models import Student

from app.api.v1.classrooms import service as classroom_service
from app.api.v1.grades import service as grade_service

from .schemas import PromotionResult, PromotionSkip

logger = logging.getLogger(__name__)


async def promote(
    db: AsyncSession,
    source_grade_id: UUID,
    target_grade_id: UUID,
    student_ids: List[UUID],
) -> PromotionResult:
    source = await grade_service.require_grade(db, source_grade_id)
    target = await grade_service.require_grade(db, target_grade_id)
    if source.id == target.id:
        raise ConflictError("Target grade must differ from the source grade")
    source_name, target_name = source.name, target.name

    promoted: List[UUID] = []
    skipped: List[PromotionSkip] = []
    for student_id in student_ids:
        student = await db.get(Student, student_id)
        if not student:
            reason = "Student not found"
        elif student.grade_id != source_grade_id:
            reason = f"Student is not in {source_name}"
        else:
            reason = None
        if reason:
            logger.warning(f"Promotion skipped student {student_id}: {reason}")
            skipped.append(PromotionSkip(student_id=student_id, reason=reason))
            continue

        try:
            holds_seat = student.holds_seat
            if holds_seat:
                await classroom_service.release(db, student.classroom_id)
            classroom = await classroom_service.allocate(db, target_grade_id)
            student.grade_id = target_grade_id
            student.classroom_id = classroom.id
            if holds_seat:
                await classroom_service.occupy(db, classroom.id)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            reason = "Classroom allocation conflicted with a concurrent request"
            logger.warning(f"Promotion skipped student {student_id}: {reason}")
            skipped.append(PromotionSkip(student_id=student_id, reason=reason))
            continue
        promoted.append(student_id)

    logger.info(
        f"Promoted {len(promoted)} students from {source_name} to {target_name} ({len(skipped)} skipped)"
    )
    return PromotionResult(promoted_count=len(promoted), promoted_ids=promoted, skipped=skipped)
