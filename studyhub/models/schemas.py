"""
Pydantic schemas for request/response validation.

Field names are snake_case in Python and camelCase on the wire.
Every endpoint wraps its payload in an envelope:
``{"success": true, "data": ...}`` or ``{"success": false, "message": ...}``.
"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar
from datetime import datetime

from studyhub.models.database_models import (
    Blog,
    BlogStatus,
    Chapter,
    Cheatsheet,
    CheatsheetItem,
    Difficulty,
    Mindmap,
    MindmapSource,
    Question,
    Test,
    TestGenerator,
    TestQuestion,
    TestStatus,
    Thread,
    ThreadReply,
    User,
    UserRole,
)

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, accepts either spelling on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

class Envelope(BaseModel, Generic[DataT]):
    success: bool = True
    data: DataT


class ListEnvelope(BaseModel, Generic[DataT]):
    success: bool = True
    count: int
    data: List[DataT]


class MessageEnvelope(BaseModel):
    success: bool
    message: str


# ---------------------------------------------------------------------------
# Users / auth
# ---------------------------------------------------------------------------

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SettingsUpdateRequest(CamelModel):
    settings: Dict[str, bool]


class AuthorSummary(CamelModel):
    """Populated author reference: only the public fields."""

    id: int
    name: str
    email: str

    @classmethod
    def from_model(cls, user: User) -> "AuthorSummary":
        return cls(id=user.id, name=user.name, email=user.email)


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    settings: Dict[str, Any] = {}
    created_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            settings=user.settings or {},
            created_at=user.created_at,
        )


class AuthResponse(UserResponse):
    token: str


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

class LogicBlock(CamelModel):
    content: str = ""
    is_visible: bool = True


class CodeBlock(CamelModel):
    content: str = ""
    language: str = "javascript"
    is_visible: bool = True


class LogicPatch(CamelModel):
    content: Optional[str] = None
    is_visible: Optional[bool] = None


class CodePatch(CamelModel):
    content: Optional[str] = None
    language: Optional[str] = None
    is_visible: Optional[bool] = None


class QuestionCreate(CamelModel):
    chapter_id: int
    title: str = Field(..., min_length=1, max_length=200)
    logic: Optional[LogicBlock] = None
    code: Optional[CodeBlock] = None
    link: Optional[str] = None
    tags: List[str] = []
    difficulty: Difficulty = Difficulty.MEDIUM


class QuestionUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    logic: Optional[LogicPatch] = None
    code: Optional[CodePatch] = None
    link: Optional[str] = None
    tags: Optional[List[str]] = None
    difficulty: Optional[Difficulty] = None
    order: Optional[int] = None


class QuestionResponse(CamelModel):
    id: int
    chapter: int
    user: int
    title: str
    logic: LogicBlock
    code: CodeBlock
    order: int
    link: str
    tags: List[str]
    difficulty: Difficulty
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, q: Question) -> "QuestionResponse":
        return cls(
            id=q.id,
            chapter=q.chapter_id,
            user=q.user_id,
            title=q.title,
            logic=LogicBlock(content=q.logic_content, is_visible=q.logic_visible),
            code=CodeBlock(
                content=q.code_content,
                language=q.code_language,
                is_visible=q.code_visible,
            ),
            order=q.order,
            link=q.link,
            tags=q.tags or [],
            difficulty=q.difficulty,
            created_at=q.created_at,
            updated_at=q.updated_at,
        )


# ---------------------------------------------------------------------------
# Chapters
# ---------------------------------------------------------------------------

class ChapterCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = None
    icon: Optional[str] = None
    tags: List[str] = []


class ChapterUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = None
    icon: Optional[str] = None
    tags: Optional[List[str]] = None
    order: Optional[int] = None


class ChapterOrder(CamelModel):
    id: int
    order: int


class ChapterReorderRequest(CamelModel):
    chapters: List[ChapterOrder]


class ChapterResponse(CamelModel):
    id: int
    user: int
    title: str
    description: Optional[str] = None
    order: int
    color: str
    icon: str
    tags: List[str]
    question_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, chapter: Chapter) -> "ChapterResponse":
        return cls(
            id=chapter.id,
            user=chapter.user_id,
            title=chapter.title,
            description=chapter.description,
            order=chapter.order,
            color=chapter.color,
            icon=chapter.icon,
            tags=chapter.tags or [],
            question_count=chapter.question_count,
            created_at=chapter.created_at,
            updated_at=chapter.updated_at,
        )


class ChapterDetailResponse(ChapterResponse):
    """Chapter with its questions joined in."""

    questions: List[QuestionResponse] = []


# ---------------------------------------------------------------------------
# Cheatsheets
# ---------------------------------------------------------------------------

class CheatsheetItemCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = ""
    question_links: str = ""
    answer_links: str = ""
    tags: List[str] = []


class CheatsheetItemUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    question_links: Optional[str] = None
    answer_links: Optional[str] = None
    tags: Optional[List[str]] = None
    order: Optional[int] = None


class CheatsheetCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    subject: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=300)
    color: Optional[str] = None
    icon: Optional[str] = None
    is_public: bool = False
    items: List[CheatsheetItemCreate] = []


class CheatsheetUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    subject: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=300)
    color: Optional[str] = None
    icon: Optional[str] = None
    is_public: Optional[bool] = None
    items: Optional[List[CheatsheetItemCreate]] = None


class CheatsheetItemResponse(CamelModel):
    id: int
    title: str
    content: str
    question_links: str
    answer_links: str
    tags: List[str]
    order: int

    @classmethod
    def from_model(cls, item: CheatsheetItem) -> "CheatsheetItemResponse":
        return cls(
            id=item.id,
            title=item.title,
            content=item.content,
            question_links=item.question_links,
            answer_links=item.answer_links,
            tags=item.tags or [],
            order=item.order,
        )


class CheatsheetResponse(CamelModel):
    id: int
    user: int
    title: str
    subject: Optional[str] = None
    description: Optional[str] = None
    color: str
    icon: str
    is_public: bool
    items: List[CheatsheetItemResponse] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, sheet: Cheatsheet) -> "CheatsheetResponse":
        return cls(
            id=sheet.id,
            user=sheet.user_id,
            title=sheet.title,
            subject=sheet.subject,
            description=sheet.description,
            color=sheet.color,
            icon=sheet.icon,
            is_public=sheet.is_public,
            items=[CheatsheetItemResponse.from_model(i) for i in sheet.items],
            created_at=sheet.created_at,
            updated_at=sheet.updated_at,
        )


# ---------------------------------------------------------------------------
# Mindmaps
# ---------------------------------------------------------------------------

class MindmapNode(CamelModel):
    id: str
    label: str
    x: float = 0
    y: float = 0
    type: Literal["root", "branch", "leaf"] = "branch"


class MindmapEdge(CamelModel):
    source: str
    target: str


class MindmapGraph(CamelModel):
    """Shape the AI provider must return for a mindmap."""

    nodes: List[MindmapNode] = Field(..., min_length=1)
    edges: List[MindmapEdge] = []


class MindmapResponse(CamelModel):
    id: int
    chapter: int
    user: int
    title: str
    nodes: List[MindmapNode]
    edges: List[MindmapEdge]
    generated_from: MindmapSource
    raw_data: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, mindmap: Mindmap) -> "MindmapResponse":
        return cls(
            id=mindmap.id,
            chapter=mindmap.chapter_id,
            user=mindmap.user_id,
            title=mindmap.title,
            nodes=mindmap.nodes or [],
            edges=mindmap.edges or [],
            generated_from=mindmap.generated_from,
            raw_data=mindmap.raw_data,
            created_at=mindmap.created_at,
            updated_at=mindmap.updated_at,
        )


# ---------------------------------------------------------------------------
# Practice tests
# ---------------------------------------------------------------------------

class GeneratedQuestion(CamelModel):
    """One practice question as produced by the AI provider."""

    question: str = Field(..., min_length=1)
    source: str = "AI Generated"
    source_url: Optional[str] = None
    solution: str = ""
    solution_code: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: List[str] = []

    @field_validator("difficulty", mode="before")
    @classmethod
    def _coerce_difficulty(cls, value: Any) -> Any:
        # Models sometimes answer "Medium" or "moderate"
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in {d.value for d in Difficulty}:
                return Difficulty.MEDIUM
        return value

    @field_validator("source", "solution", "solution_code", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any, info) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value


class TestQuestionResponse(GeneratedQuestion):
    id: int
    is_completed: bool = False

    @classmethod
    def from_model(cls, tq: TestQuestion) -> "TestQuestionResponse":
        return cls(
            id=tq.id,
            question=tq.question,
            source=tq.source,
            source_url=tq.source_url,
            solution=tq.solution,
            solution_code=tq.solution_code,
            difficulty=tq.difficulty,
            tags=tq.tags or [],
            is_completed=tq.is_completed,
        )


class TestScore(CamelModel):
    completed: int = 0
    total: int = 0


class TestResponse(CamelModel):
    id: int
    chapter: int
    user: int
    title: str
    questions: List[TestQuestionResponse]
    generated_by: TestGenerator
    status: TestStatus
    score: TestScore
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, test: Test) -> "TestResponse":
        return cls(
            id=test.id,
            chapter=test.chapter_id,
            user=test.user_id,
            title=test.title,
            questions=[TestQuestionResponse.from_model(q) for q in test.questions],
            generated_by=test.generated_by,
            status=test.status,
            score=TestScore(completed=test.score_completed, total=test.score_total),
            created_at=test.created_at,
            updated_at=test.updated_at,
        )


# ---------------------------------------------------------------------------
# AI requests / responses
# ---------------------------------------------------------------------------

class ChapterRef(CamelModel):
    chapter_id: int


class TestGenerateRequest(CamelModel):
    chapter_id: int
    difficulty: Difficulty = Difficulty.MEDIUM
    count: int = Field(5, ge=1, le=20)


class TestQuestionUpdate(CamelModel):
    is_completed: bool


class GuideRequest(CamelModel):
    chapter_id: int
    query: str = Field(..., min_length=1)


class GuideResponse(CamelModel):
    query: str
    response: str
    chapter_title: str


class Suggestion(CamelModel):
    type: str = "tip"
    icon: str = ""
    text: str


class SuggestionsResponse(CamelModel):
    suggestions: List[Suggestion]


class ExtractTagsRequest(CamelModel):
    question_id: int


class ExtractTagsResponse(CamelModel):
    question_id: int
    tags: List[str]


class AutoTagResult(CamelModel):
    question_id: int
    title: str
    success: bool
    tags: Optional[List[str]] = None
    error: Optional[str] = None


class AutoTagResponse(CamelModel):
    chapter_id: int
    total_questions: int
    tagged: int
    results: List[AutoTagResult]


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------

class ThreadCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    tags: List[str] = []


class ReplyCreate(CamelModel):
    content: str = Field(..., min_length=1)


class ReplyResponse(CamelModel):
    id: int
    user: AuthorSummary
    content: str
    created_at: datetime

    @classmethod
    def from_model(cls, reply: ThreadReply) -> "ReplyResponse":
        return cls(
            id=reply.id,
            user=AuthorSummary.from_model(reply.user),
            content=reply.content,
            created_at=reply.created_at,
        )


class ThreadResponse(CamelModel):
    id: int
    user: AuthorSummary
    title: str
    content: str
    tags: List[str]
    replies: List[ReplyResponse]
    views: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, thread: Thread) -> "ThreadResponse":
        return cls(
            id=thread.id,
            user=AuthorSummary.from_model(thread.user),
            title=thread.title,
            content=thread.content,
            tags=thread.tags or [],
            replies=[ReplyResponse.from_model(r) for r in thread.replies],
            views=thread.views,
            created_at=thread.created_at,
            updated_at=thread.updated_at,
        )


# ---------------------------------------------------------------------------
# Blogs
# ---------------------------------------------------------------------------

class BlogCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    subtitle: Optional[str] = Field(None, max_length=300)
    content: str = Field(..., min_length=1)
    cover_image: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[BlogStatus] = None


class BlogUpdate(CamelModel):
    title: Optional[str] = Field(None, max_length=200)
    subtitle: Optional[str] = Field(None, max_length=300)
    content: Optional[str] = None
    cover_image: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[BlogStatus] = None


class BlogReviewRequest(CamelModel):
    action: str
    rejection_reason: Optional[str] = None


class BlogResponse(CamelModel):
    id: int
    author: AuthorSummary
    title: str
    subtitle: Optional[str] = None
    content: str
    cover_image: str
    tags: List[str]
    status: BlogStatus
    rejection_reason: str
    read_time: int
    views: int
    likes: List[int]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, blog: Blog) -> "BlogResponse":
        return cls(
            id=blog.id,
            author=AuthorSummary.from_model(blog.author),
            title=blog.title,
            subtitle=blog.subtitle,
            content=blog.content,
            cover_image=blog.cover_image,
            tags=blog.tags or [],
            status=blog.status,
            rejection_reason=blog.rejection_reason,
            read_time=blog.read_time,
            views=blog.views,
            likes=[like.user_id for like in blog.likes],
            created_at=blog.created_at,
            updated_at=blog.updated_at,
        )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    success: bool
    message: str
    database: str
    timestamp: datetime
    version: str = "1.0.0"
