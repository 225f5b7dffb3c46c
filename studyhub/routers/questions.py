"""
Question endpoints.

Questions live inside a chapter. Creating or deleting one refreshes the
chapter's cached ``questionCount``.

Route summary
-------------
GET    /api/questions/chapter/{chapter_id}       — questions of a chapter
GET    /api/questions/{question_id}              — single question
POST   /api/questions                            — create question
PUT    /api/questions/{question_id}              — partial update
PUT    /api/questions/{question_id}/toggle-logic — flip logic visibility
PUT    /api/questions/{question_id}/toggle-code  — flip code visibility
DELETE /api/questions/{question_id}              — delete question
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.database import get_db
from studyhub.dependencies.auth import get_current_user
from studyhub.dependencies.ownership import get_owned_chapter, load_owned
from studyhub.models.database_models import Chapter, Question, User
from studyhub.models.schemas import (
    Envelope,
    ListEnvelope,
    QuestionCreate,
    QuestionResponse,
    QuestionUpdate,
)
from studyhub.services.study_content import load_chapter_questions, refresh_question_count
from studyhub.utils.helpers import clean_tags

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_owned_question(
    question_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Question:
    return await load_owned(db, Question, question_id, user, "Question")


@router.get("/chapter/{chapter_id}", response_model=ListEnvelope[QuestionResponse])
async def list_chapter_questions(
    chapter: Chapter = Depends(get_owned_chapter),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[QuestionResponse]:
    questions = await load_chapter_questions(db, chapter.id)
    return ListEnvelope(
        count=len(questions),
        data=[QuestionResponse.from_model(q) for q in questions],
    )


@router.get("/{question_id}", response_model=Envelope[QuestionResponse])
async def get_question(
    question: Question = Depends(get_owned_question),
) -> Envelope[QuestionResponse]:
    return Envelope(data=QuestionResponse.from_model(question))


@router.post("", response_model=Envelope[QuestionResponse], status_code=status.HTTP_201_CREATED)
async def create_question(
    body: QuestionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[QuestionResponse]:
    chapter = await load_owned(db, Chapter, body.chapter_id, user, "Chapter")

    max_order = (
        await db.execute(select(func.max(Question.order)).where(Question.chapter_id == chapter.id))
    ).scalar()

    question = Question(
        chapter_id=chapter.id,
        user_id=user.id,
        title=body.title,
        link=body.link or "",
        tags=clean_tags(body.tags),
        difficulty=body.difficulty,
        order=0 if max_order is None else max_order + 1,
    )
    if body.logic is not None:
        question.logic_content = body.logic.content
        question.logic_visible = body.logic.is_visible
    if body.code is not None:
        question.code_content = body.code.content
        question.code_language = body.code.language
        question.code_visible = body.code.is_visible

    db.add(question)
    await db.flush()
    await refresh_question_count(db, chapter.id)

    logger.info("Created question id=%d in chapter id=%d", question.id, chapter.id)
    return Envelope(data=QuestionResponse.from_model(question))


@router.put("/{question_id}", response_model=Envelope[QuestionResponse])
async def update_question(
    body: QuestionUpdate,
    question: Question = Depends(get_owned_question),
    db: AsyncSession = Depends(get_db),
) -> Envelope[QuestionResponse]:
    """Partial update. ``logic`` and ``code`` are merged field by field."""
    if body.title is not None:
        question.title = body.title
    if body.link is not None:
        question.link = body.link
    if body.tags is not None:
        question.tags = clean_tags(body.tags)
    if body.difficulty is not None:
        question.difficulty = body.difficulty
    if body.order is not None:
        question.order = body.order

    if body.logic is not None:
        if body.logic.content is not None:
            question.logic_content = body.logic.content
        if body.logic.is_visible is not None:
            question.logic_visible = body.logic.is_visible

    if body.code is not None:
        if body.code.content is not None:
            question.code_content = body.code.content
        if body.code.language is not None:
            question.code_language = body.code.language
        if body.code.is_visible is not None:
            question.code_visible = body.code.is_visible

    await db.flush()
    return Envelope(data=QuestionResponse.from_model(question))


@router.put("/{question_id}/toggle-logic", response_model=Envelope[QuestionResponse])
async def toggle_logic(
    question: Question = Depends(get_owned_question),
    db: AsyncSession = Depends(get_db),
) -> Envelope[QuestionResponse]:
    question.logic_visible = not question.logic_visible
    await db.flush()
    return Envelope(data=QuestionResponse.from_model(question))


@router.put("/{question_id}/toggle-code", response_model=Envelope[QuestionResponse])
async def toggle_code(
    question: Question = Depends(get_owned_question),
    db: AsyncSession = Depends(get_db),
) -> Envelope[QuestionResponse]:
    question.code_visible = not question.code_visible
    await db.flush()
    return Envelope(data=QuestionResponse.from_model(question))


@router.delete("/{question_id}", response_model=Envelope[Dict[str, Any]])
async def delete_question(
    question: Question = Depends(get_owned_question),
    db: AsyncSession = Depends(get_db),
) -> Envelope[Dict[str, Any]]:
    question_id, chapter_id = question.id, question.chapter_id

    await db.delete(question)
    await refresh_question_count(db, chapter_id)

    logger.info("Deleted question id=%d from chapter id=%d", question_id, chapter_id)
    return Envelope(data={})
