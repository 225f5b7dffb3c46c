"""Database and schema models for StudyHub."""
from studyhub.models.database_models import (
    User,
    Chapter,
    Question,
    Cheatsheet,
    CheatsheetItem,
    Mindmap,
    Test,
    TestQuestion,
    Thread,
    ThreadReply,
    Blog,
    BlogLike,
    UserRole,
    Difficulty,
    MindmapSource,
    TestGenerator,
    TestStatus,
    BlogStatus,
)
from studyhub.models.schemas import (
    Envelope,
    ListEnvelope,
    MessageEnvelope,
    UserResponse,
    ChapterResponse,
    QuestionResponse,
    CheatsheetResponse,
    MindmapResponse,
    TestResponse,
    ThreadResponse,
    BlogResponse,
)

__all__ = [
    # Database models
    "User",
    "Chapter",
    "Question",
    "Cheatsheet",
    "CheatsheetItem",
    "Mindmap",
    "Test",
    "TestQuestion",
    "Thread",
    "ThreadReply",
    "Blog",
    "BlogLike",
    "UserRole",
    "Difficulty",
    "MindmapSource",
    "TestGenerator",
    "TestStatus",
    "BlogStatus",
    # Pydantic schemas
    "Envelope",
    "ListEnvelope",
    "MessageEnvelope",
    "UserResponse",
    "ChapterResponse",
    "QuestionResponse",
    "CheatsheetResponse",
    "MindmapResponse",
    "TestResponse",
    "ThreadResponse",
    "BlogResponse",
]
