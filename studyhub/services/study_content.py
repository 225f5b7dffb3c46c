"""
Shared chapter-level operations: prompt content assembly and the
denormalised counters (chapter question count, test score/status).

The counters are recomputed inside the caller's session, so they commit
together with the write that triggered them. Concurrent writers can still
interleave; the recount is best-effort.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.models.database_models import Chapter, Question, Test, TestStatus
from studyhub.utils.helpers import strip_html, unique_preserving_order

logger = logging.getLogger(__name__)


@dataclass
class ChapterContent:
    """Plain-text rendering of a chapter's questions for prompts."""

    text: str
    tags: List[str] = field(default_factory=list)


async def load_chapter_questions(db: AsyncSession, chapter_id: int) -> List[Question]:
    result = await db.execute(
        select(Question)
        .where(Question.chapter_id == chapter_id)
        .order_by(Question.order.asc(), Question.created_at.desc())
    )
    return list(result.scalars().all())


async def build_chapter_content(db: AsyncSession, chapter_id: int) -> ChapterContent:
    """
    Render every question of a chapter as prompt text.

    Each question contributes ``Question:``, ``Logic:`` (HTML stripped),
    ``Code:`` and ``Concept Tags:`` lines followed by a blank line.
    The unique tags across all questions are returned alongside.
    """
    parts: List[str] = []
    all_tags: List[str] = []

    for q in await load_chapter_questions(db, chapter_id):
        parts.append(f"Question: {q.title}\n")
        if q.logic_content:
            parts.append(f"Logic: {strip_html(q.logic_content)}\n")
        if q.code_content:
            parts.append(f"Code: {q.code_content}\n")
        if q.tags:
            parts.append(f"Concept Tags: {', '.join(q.tags)}\n")
            all_tags.extend(q.tags)
        parts.append("\n")

    return ChapterContent(text="".join(parts), tags=unique_preserving_order(all_tags))


async def refresh_question_count(db: AsyncSession, chapter_id: int) -> int:
    """Recount a chapter's questions and store the result on the chapter."""
    await db.flush()
    count = (
        await db.execute(
            select(func.count(Question.id)).where(Question.chapter_id == chapter_id)
        )
    ).scalar() or 0

    chapter = await db.get(Chapter, chapter_id)
    if chapter is not None:
        chapter.question_count = count
        await db.flush()
        logger.debug("Chapter %d question_count=%d", chapter_id, count)
    return count


def apply_test_progress(test: Test) -> None:
    """
    Recompute ``score_completed`` and ``status`` from the question flags.

    ``score_total`` is fixed when the test is created.
    """
    test.score_completed = sum(1 for q in test.questions if q.is_completed)

    if test.score_completed == test.score_total:
        test.status = TestStatus.COMPLETED
    elif test.score_completed > 0:
        test.status = TestStatus.IN_PROGRESS
    else:
        test.status = TestStatus.PENDING
