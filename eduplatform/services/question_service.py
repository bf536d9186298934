import logging
from typing import List

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.exceptions import NotFoundError
from eduplatform.models.document import PendingQuestion, Question
from eduplatform.schemas.document_schema import ApproveQuestionsResponse
from eduplatform.utils.time_utils import get_local_time

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


def _to_question(pending: PendingQuestion, approved_by: int) -> Question:
    images = pending.question_images or []
    return Question(
        topic_id=pending.topic_id,
        question_text=pending.question_text,
        question_format=pending.question_format,
        question_type=pending.question_type,
        difficulty=pending.difficulty,
        marks=pending.marks,
        options=pending.options,
        correct_answer=pending.correct_answer,
        explanation=pending.explanation,
        question_image_url=images[0] if images else None,
        contains_formula=pending.contains_formula,
        is_verified=True,
        is_ai_generated=True,
        verified_by=approved_by,
    )


async def approve_and_transfer(db: AsyncSession, question_ids: List[int], approved_by: int, ip_address: str) -> ApproveQuestionsResponse:
    result = await db.execute(select(PendingQuestion).where(PendingQuestion.id.in_(question_ids)))
    pending = list(result.scalars().all())
    if not pending:
        raise NotFoundError("No pending questions found")

    now = get_local_time()
    transferred = []
    for item in pending:
        item.is_approved = True
        item.approved_by = approved_by
        item.approved_at = now
        item.approved_ip_address = ip_address

        question = _to_question(item, approved_by)
        db.add(question)
        await db.flush()

        item.transferred_to_question_bank = True
        item.question_bank_id = question.id
        item.transferred_at = now
        transferred.append(question.id)

    await db.commit()
    logger.info(f"User {approved_by} approved {len(transferred)} questions from {ip_address}")

    return ApproveQuestionsResponse(
        transferred_count=len(transferred),
        question_ids=transferred,
        approved_by=approved_by,
        approved_from=ip_address,
    )
