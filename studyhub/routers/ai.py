"""
AI-assisted study endpoints.

Every route works on one of the caller's chapters (or a question/test in
one). Someone else's record is reported as not found.

Route summary
-------------
POST /api/ai/mindmap                              — generate chapter mindmap
GET  /api/ai/mindmap/{chapter_id}                 — latest mindmap
POST /api/ai/test                                 — generate practice test
GET  /api/ai/tests/{chapter_id}                   — caller's tests for chapter
PUT  /api/ai/tests/{test_id}/questions/{index}    — mark question done / undone
POST /api/ai/guide                                — ask about the chapter notes
POST /api/ai/suggestions                          — study suggestions
POST /api/ai/extract-tags                         — tag a single question
POST /api/ai/auto-tag-chapter                     — tag every question in a chapter
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.database import get_db
from studyhub.dependencies.auth import get_current_user
from studyhub.dependencies.ownership import load_owned
from studyhub.models.database_models import (
    Chapter,
    Difficulty,
    Mindmap,
    MindmapSource,
    Question,
    Test,
    TestGenerator,
    TestQuestion,
    TestStatus,
    User,
)
from studyhub.models.schemas import (
    AutoTagResponse,
    AutoTagResult,
    ChapterRef,
    Envelope,
    ExtractTagsRequest,
    ExtractTagsResponse,
    GuideRequest,
    GuideResponse,
    ListEnvelope,
    MindmapResponse,
    SuggestionsResponse,
    TestGenerateRequest,
    TestQuestionUpdate,
    TestResponse,
)
from studyhub.services.ai_provider import AIProvider, AIProviderError, get_ai_provider
from studyhub.services.study_content import (
    apply_test_progress,
    build_chapter_content,
    load_chapter_questions,
)
from studyhub.utils.helpers import strip_html

logger = logging.getLogger(__name__)

router = APIRouter()


async def _own_chapter(db: AsyncSession, chapter_id: int, user: User) -> Chapter:
    return await load_owned(
        db, Chapter, chapter_id, user, "Chapter", foreign_status=status.HTTP_404_NOT_FOUND
    )


async def _load_test(db: AsyncSession, test_id: int) -> Test:
    await db.flush()
    result = await db.execute(
        select(Test)
        .where(Test.id == test_id)
        .options(selectinload(Test.questions))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _tag_question(ai: AIProvider, question: Question) -> List[str]:
    tags = await ai.extract_tags(
        question.title,
        strip_html(question.logic_content or ""),
        question.code_content or "",
    )
    question.tags = tags
    return tags


# ---------------------------------------------------------------------------
# Mindmaps
# ---------------------------------------------------------------------------

@router.post("/mindmap", response_model=Envelope[MindmapResponse], status_code=status.HTTP_201_CREATED)
async def generate_mindmap(
    body: ChapterRef,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIProvider = Depends(get_ai_provider),
) -> Envelope[MindmapResponse]:
    """Generate a mindmap for the chapter, replacing the previous one."""
    chapter = await _own_chapter(db, body.chapter_id, user)

    content = await build_chapter_content(db, chapter.id)
    full_content = f"{chapter.description or ''}\n\n{content.text}"

    graph = await ai.generate_mindmap(chapter.title, full_content)

    await db.execute(
        delete(Mindmap).where(Mindmap.chapter_id == chapter.id, Mindmap.user_id == user.id)
    )
    mindmap = Mindmap(
        chapter_id=chapter.id,
        user_id=user.id,
        title=f"{chapter.title} - Mindmap",
        nodes=graph["nodes"],
        edges=graph["edges"],
        generated_from=MindmapSource.CHAPTER,
        raw_data=full_content,
    )
    db.add(mindmap)
    await db.flush()

    logger.info(
        "Generated mindmap id=%d for chapter id=%d (%d nodes)",
        mindmap.id, chapter.id, len(graph["nodes"]),
    )
    return Envelope(data=MindmapResponse.from_model(mindmap))


@router.get("/mindmap/{chapter_id}", response_model=Envelope[MindmapResponse])
async def get_mindmap(
    chapter_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[MindmapResponse]:
    result = await db.execute(
        select(Mindmap)
        .where(Mindmap.chapter_id == chapter_id, Mindmap.user_id == user.id)
        .order_by(Mindmap.created_at.desc(), Mindmap.id.desc())
        .limit(1)
    )
    mindmap = result.scalar_one_or_none()
    if mindmap is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No mindmap found for this chapter",
        )
    return Envelope(data=MindmapResponse.from_model(mindmap))


# ---------------------------------------------------------------------------
# Practice tests
# ---------------------------------------------------------------------------

@router.post("/test", response_model=Envelope[TestResponse], status_code=status.HTTP_201_CREATED)
async def generate_test(
    body: TestGenerateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIProvider = Depends(get_ai_provider),
) -> Envelope[TestResponse]:
    """Generate a practice test for the chapter, replacing earlier tests."""
    chapter = await _own_chapter(db, body.chapter_id, user)

    content = await build_chapter_content(db, chapter.id)
    generated = await ai.generate_test_questions(
        chapter.title,
        content.text,
        body.difficulty.value,
        body.count,
        content.tags,
    )

    old_tests = select(Test.id).where(Test.chapter_id == chapter.id, Test.user_id == user.id)
    await db.execute(delete(TestQuestion).where(TestQuestion.test_id.in_(old_tests)))
    await db.execute(delete(Test).where(Test.chapter_id == chapter.id, Test.user_id == user.id))

    test = Test(
        chapter_id=chapter.id,
        user_id=user.id,
        title=f"{chapter.title} - Practice Test",
        generated_by=TestGenerator.AI,
        status=TestStatus.PENDING,
        score_completed=0,
        score_total=len(generated),
        questions=[
            TestQuestion(
                position=i,
                question=q["question"],
                source=q.get("source") or "AI Generated",
                source_url=q.get("source_url"),
                solution=q.get("solution") or "",
                solution_code=q.get("solution_code") or "",
                difficulty=Difficulty(q.get("difficulty") or Difficulty.MEDIUM.value),
                tags=list(q.get("tags") or []),
            )
            for i, q in enumerate(generated)
        ],
    )
    db.add(test)
    await db.flush()

    logger.info("Generated test id=%d for chapter id=%d (%d questions)", test.id, chapter.id, len(generated))
    return Envelope(data=TestResponse.from_model(await _load_test(db, test.id)))


@router.get("/tests/{chapter_id}", response_model=ListEnvelope[TestResponse])
async def list_tests(
    chapter_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[TestResponse]:
    result = await db.execute(
        select(Test)
        .where(Test.chapter_id == chapter_id, Test.user_id == user.id)
        .options(selectinload(Test.questions))
        .order_by(Test.created_at.desc(), Test.id.desc())
    )
    tests = result.scalars().all()
    return ListEnvelope(count=len(tests), data=[TestResponse.from_model(t) for t in tests])


@router.put("/tests/{test_id}/questions/{index}", response_model=Envelope[TestResponse])
async def update_test_question(
    test_id: int,
    index: int,
    body: TestQuestionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[TestResponse]:
    test = await load_owned(
        db, Test, test_id, user, "Test",
        foreign_status=status.HTTP_404_NOT_FOUND,
        options=[selectinload(Test.questions)],
    )

    if index < 0 or index >= len(test.questions):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid question index")

    test.questions[index].is_completed = body.is_completed
    apply_test_progress(test)

    return Envelope(data=TestResponse.from_model(await _load_test(db, test.id)))


# ---------------------------------------------------------------------------
# Guide / suggestions
# ---------------------------------------------------------------------------

@router.post("/guide", response_model=Envelope[GuideResponse])
async def study_guide(
    body: GuideRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIProvider = Depends(get_ai_provider),
) -> Envelope[GuideResponse]:
    chapter = await _own_chapter(db, body.chapter_id, user)
    content = await build_chapter_content(db, chapter.id)

    answer = await ai.get_study_guide(chapter.title, content.text, body.query)
    return Envelope(data=GuideResponse(query=body.query, response=answer, chapter_title=chapter.title))


@router.post("/suggestions", response_model=Envelope[SuggestionsResponse])
async def suggestions(
    body: ChapterRef,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIProvider = Depends(get_ai_provider),
) -> Envelope[SuggestionsResponse]:
    chapter = await _own_chapter(db, body.chapter_id, user)
    content = await build_chapter_content(db, chapter.id)

    result = await ai.get_suggestions(content.text, chapter.title)
    return Envelope(data=SuggestionsResponse.model_validate(result))


# ---------------------------------------------------------------------------
# Concept tags
# ---------------------------------------------------------------------------

@router.post("/extract-tags", response_model=Envelope[ExtractTagsResponse])
async def extract_tags(
    body: ExtractTagsRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIProvider = Depends(get_ai_provider),
) -> Envelope[ExtractTagsResponse]:
    question = await load_owned(
        db, Question, body.question_id, user, "Question", foreign_status=status.HTTP_404_NOT_FOUND
    )

    try:
        tags = await _tag_question(ai, question)
    except AIProviderError as exc:
        logger.error("Tag extraction failed for question id=%d: %s", question.id, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    await db.flush()
    return Envelope(data=ExtractTagsResponse(question_id=question.id, tags=tags))


@router.post("/auto-tag-chapter", response_model=Envelope[AutoTagResponse])
async def auto_tag_chapter(
    body: ChapterRef,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai: AIProvider = Depends(get_ai_provider),
) -> Envelope[AutoTagResponse]:
    """Tag each question independently; one failure doesn't stop the rest."""
    chapter = await _own_chapter(db, body.chapter_id, user)
    questions = [q for q in await load_chapter_questions(db, chapter.id) if q.user_id == user.id]

    results: List[AutoTagResult] = []
    for question in questions:
        try:
            tags = await _tag_question(ai, question)
        except AIProviderError as exc:
            logger.warning("Auto-tag failed for question id=%d: %s", question.id, exc)
            results.append(AutoTagResult(
                question_id=question.id, title=question.title, success=False, error=str(exc),
            ))
            continue
        results.append(AutoTagResult(
            question_id=question.id, title=question.title, success=True, tags=tags,
        ))

    await db.flush()
    tagged = sum(1 for r in results if r.success)
    logger.info("Auto-tagged %d/%d questions in chapter id=%d", tagged, len(questions), chapter.id)

    return Envelope(data=AutoTagResponse(
        chapter_id=chapter.id,
        total_questions=len(questions),
        tagged=tagged,
        results=results,
    ))
