"""
Chapter management endpoints.

A chapter is a user-owned folder of questions. Mindmaps and practice
tests hang off a chapter too, so deleting one removes all of them.

Route summary
-------------
GET    /api/chapters                — list caller's chapters
GET    /api/chapters/{chapter_id}   — chapter detail with questions
POST   /api/chapters                — create chapter (appended last)
PUT    /api/chapters/{chapter_id}   — partial update
DELETE /api/chapters/{chapter_id}   — delete chapter (cascades)
PUT    /api/chapters/reorder/all    — bulk reorder
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.database import get_db
from studyhub.dependencies.auth import get_current_user
from studyhub.dependencies.ownership import get_owned_chapter
from studyhub.models.database_models import (
    Chapter,
    Mindmap,
    Question,
    Test,
    TestQuestion,
    User,
)
from studyhub.models.schemas import (
    ChapterCreate,
    ChapterDetailResponse,
    ChapterReorderRequest,
    ChapterResponse,
    ChapterUpdate,
    Envelope,
    ListEnvelope,
    QuestionResponse,
)
from studyhub.services.study_content import load_chapter_questions
from studyhub.utils.helpers import clean_tags

logger = logging.getLogger(__name__)

router = APIRouter()


async def _list_chapters(db: AsyncSession, user_id: int) -> List[Chapter]:
    result = await db.execute(
        select(Chapter)
        .where(Chapter.user_id == user_id)
        .order_by(Chapter.order.asc(), Chapter.created_at.desc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@router.get("", response_model=ListEnvelope[ChapterResponse])
async def list_chapters(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[ChapterResponse]:
    chapters = await _list_chapters(db, user.id)
    return ListEnvelope(
        count=len(chapters),
        data=[ChapterResponse.from_model(c) for c in chapters],
    )


@router.get("/{chapter_id}", response_model=Envelope[ChapterDetailResponse])
async def get_chapter(
    chapter: Chapter = Depends(get_owned_chapter),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ChapterDetailResponse]:
    questions = await load_chapter_questions(db, chapter.id)
    detail = ChapterDetailResponse(
        **ChapterResponse.from_model(chapter).model_dump(),
        questions=[QuestionResponse.from_model(q) for q in questions],
    )
    return Envelope(data=detail)


@router.post("", response_model=Envelope[ChapterResponse], status_code=status.HTTP_201_CREATED)
async def create_chapter(
    body: ChapterCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ChapterResponse]:
    max_order = (
        await db.execute(select(func.max(Chapter.order)).where(Chapter.user_id == user.id))
    ).scalar()

    chapter = Chapter(
        user_id=user.id,
        title=body.title,
        description=body.description,
        tags=clean_tags(body.tags),
        order=0 if max_order is None else max_order + 1,
    )
    if body.color is not None:
        chapter.color = body.color
    if body.icon is not None:
        chapter.icon = body.icon

    db.add(chapter)
    await db.flush()

    logger.info("Created chapter id=%d title=%r user=%d", chapter.id, chapter.title, user.id)
    return Envelope(data=ChapterResponse.from_model(chapter))


@router.put("/{chapter_id}", response_model=Envelope[ChapterResponse])
async def update_chapter(
    body: ChapterUpdate,
    chapter: Chapter = Depends(get_owned_chapter),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ChapterResponse]:
    changes = body.model_dump(exclude_unset=True)
    if "tags" in changes:
        changes["tags"] = clean_tags(changes["tags"] or [])

    for field, value in changes.items():
        if value is None and field in ("title", "order", "color", "icon"):
            continue
        setattr(chapter, field, value)

    await db.flush()
    return Envelope(data=ChapterResponse.from_model(chapter))


@router.delete("/{chapter_id}", response_model=Envelope[Dict[str, Any]])
async def delete_chapter(
    chapter: Chapter = Depends(get_owned_chapter),
    db: AsyncSession = Depends(get_db),
) -> Envelope[Dict[str, Any]]:
    chapter_id = chapter.id
    test_ids = select(Test.id).where(Test.chapter_id == chapter_id)

    await db.execute(delete(TestQuestion).where(TestQuestion.test_id.in_(test_ids)))
    await db.execute(delete(Test).where(Test.chapter_id == chapter_id))
    await db.execute(delete(Mindmap).where(Mindmap.chapter_id == chapter_id))
    await db.execute(delete(Question).where(Question.chapter_id == chapter_id))
    await db.delete(chapter)
    await db.flush()

    logger.info("Deleted chapter id=%d and its questions, mindmaps and tests", chapter_id)
    return Envelope(data={})


# ---------------------------------------------------------------------------
# Reorder
# ---------------------------------------------------------------------------

@router.put("/reorder/all", response_model=Envelope[List[ChapterResponse]])
async def reorder_chapters(
    body: ChapterReorderRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[ChapterResponse]]:
    """
    Apply ``{id, order}`` pairs in bulk.

    Ids that belong to another user (or don't exist) are skipped.
    """
    wanted = {entry.id: entry.order for entry in body.chapters}
    if wanted:
        result = await db.execute(
            select(Chapter).where(Chapter.user_id == user.id, Chapter.id.in_(list(wanted)))
        )
        for chapter in result.scalars().all():
            chapter.order = wanted[chapter.id]
        await db.flush()

    result = await db.execute(
        select(Chapter).where(Chapter.user_id == user.id).order_by(Chapter.order.asc())
    )
    return Envelope(data=[ChapterResponse.from_model(c) for c in result.scalars().all()])
