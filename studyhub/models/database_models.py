"""
SQLAlchemy ORM models for the StudyHub database.
Embedded sub-documents (cheatsheet items, test questions, thread replies,
blog likes) live in their own child tables.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Boolean,
    Enum as SQLEnum,
    JSON,
    Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum

from studyhub.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls, default):
    # Store the lowercase values, not the member names
    return Column(
        SQLEnum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=default,
    )


# Enums
class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class Difficulty(str, enum.Enum):
    """Difficulty shared by questions and generated test questions."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MindmapSource(str, enum.Enum):
    CHAPTER = "chapter"
    QUESTIONS = "questions"
    CHEATSHEET = "cheatsheet"
    MANUAL = "manual"


class TestGenerator(str, enum.Enum):
    AI = "ai"
    MANUAL = "manual"
    WEB = "web"


class TestStatus(str, enum.Enum):
    """Progress of a practice test, derived from its score."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class BlogStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


DEFAULT_USER_SETTINGS = {
    "aiEnabled": True,
    "mindmapEnabled": True,
    "suggestionsEnabled": True,
}


# Models
class User(Base):
    """Registered account."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = _enum_column(UserRole, UserRole.USER)
    settings = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_USER_SETTINGS))
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Chapter(Base):
    """User-owned folder grouping related questions and notes."""

    __tablename__ = "chapters"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    color = Column(Text, nullable=False, default="")  # empty = default gradient
    icon = Column(Text, nullable=False, default="📚")
    tags = Column(JSON, nullable=False, default=list)
    # Cached count, refreshed after question create/delete
    question_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class Question(Base):
    """Study question with a rich-text explanation ("logic") and code."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)

    logic_content = Column(Text, nullable=False, default="")
    logic_visible = Column(Boolean, nullable=False, default=True)
    code_content = Column(Text, nullable=False, default="")
    code_language = Column(Text, nullable=False, default="javascript")
    code_visible = Column(Boolean, nullable=False, default=True)

    order = Column(Integer, nullable=False, default=0)
    link = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    difficulty = _enum_column(Difficulty, Difficulty.MEDIUM)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class Cheatsheet(Base):
    """User-owned collection of titled reference items."""

    __tablename__ = "cheatsheets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    subject = Column(String(50), nullable=True)
    description = Column(String(300), nullable=True)
    color = Column(Text, nullable=False, default="#10b981")
    icon = Column(Text, nullable=False, default="📋")
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    items = relationship(
        "CheatsheetItem",
        back_populates="cheatsheet",
        order_by="CheatsheetItem.order",
        cascade="all, delete-orphan",
    )


class CheatsheetItem(Base):
    __tablename__ = "cheatsheet_items"

    id = Column(Integer, primary_key=True, index=True)
    cheatsheet_id = Column(Integer, ForeignKey("cheatsheets.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    question_links = Column(Text, nullable=False, default="")
    answer_links = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    order = Column(Integer, nullable=False, default=0)

    cheatsheet = relationship("Cheatsheet", back_populates="items")


class Mindmap(Base):
    """AI-generated graph of labelled nodes and edges tied to a chapter."""

    __tablename__ = "mindmaps"

    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    nodes = Column(JSON, nullable=False, default=list)  # [{id, label, x, y, type}]
    edges = Column(JSON, nullable=False, default=list)  # [{source, target}]
    generated_from = _enum_column(MindmapSource, MindmapSource.CHAPTER)
    raw_data = Column(Text, nullable=True)  # source text, kept for regeneration
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class Test(Base):
    """Practice test generated for a chapter."""

    __tablename__ = "tests"

    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    generated_by = _enum_column(TestGenerator, TestGenerator.AI)
    status = _enum_column(TestStatus, TestStatus.PENDING)
    score_completed = Column(Integer, nullable=False, default=0)
    score_total = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    questions = relationship(
        "TestQuestion",
        back_populates="test",
        order_by="TestQuestion.position",
        cascade="all, delete-orphan",
    )


class TestQuestion(Base):
    __tablename__ = "test_questions"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    question = Column(Text, nullable=False)
    source = Column(Text, nullable=False, default="AI Generated")
    source_url = Column(Text, nullable=True)
    solution = Column(Text, nullable=False, default="")
    solution_code = Column(Text, nullable=False, default="")
    difficulty = _enum_column(Difficulty, Difficulty.MEDIUM)
    tags = Column(JSON, nullable=False, default=list)
    is_completed = Column(Boolean, nullable=False, default=False)

    test = relationship("Test", back_populates="questions")


class Thread(Base):
    """Discussion post with nested replies."""

    __tablename__ = "threads"
    __table_args__ = (
        Index("ix_threads_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    views = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    user = relationship("User")
    replies = relationship(
        "ThreadReply",
        back_populates="thread",
        order_by="ThreadReply.created_at",
        cascade="all, delete-orphan",
    )


class ThreadReply(Base):
    __tablename__ = "thread_replies"

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(Integer, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    thread = relationship("Thread", back_populates="replies")
    user = relationship("User")


class Blog(Base):
    """Blog post that goes through admin review before publication."""

    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    subtitle = Column(String(300), nullable=True)
    content = Column(Text, nullable=False)
    cover_image = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    status = _enum_column(BlogStatus, BlogStatus.DRAFT)
    rejection_reason = Column(Text, nullable=False, default="")
    # Recomputed from content on every content change
    read_time = Column(Integer, nullable=False, default=1)
    views = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    author = relationship("User")
    likes = relationship("BlogLike", cascade="all, delete-orphan")


class BlogLike(Base):
    __tablename__ = "blog_likes"

    blog_id = Column(Integer, ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
