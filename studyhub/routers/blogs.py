"""
Blog endpoints with an admin review workflow.

Users write drafts and submit them for review (``pending``); admins
approve (``published``) or reject them. Admins may publish directly.

Route summary
-------------
GET    /api/blogs                    — published blogs
GET    /api/blogs/mine               — caller's blogs, every status
GET    /api/blogs/pending            — review queue (admin)
GET    /api/blogs/admin/all          — every blog (admin)
GET    /api/blogs/{blog_id}          — blog detail, counts a view
POST   /api/blogs                    — create blog
PUT    /api/blogs/{blog_id}          — update (author or admin)
PUT    /api/blogs/{blog_id}/review   — approve / reject (admin)
PUT    /api/blogs/{blog_id}/like     — toggle caller's like
DELETE /api/blogs/{blog_id}          — delete (author or admin)
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.database import get_db
from studyhub.dependencies.auth import get_current_user, require_admin
from studyhub.models.database_models import Blog, BlogLike, BlogStatus, User
from studyhub.models.schemas import (
    BlogCreate,
    BlogResponse,
    BlogReviewRequest,
    BlogUpdate,
    Envelope,
    ListEnvelope,
)
from studyhub.utils.helpers import clean_tags, compute_read_time

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_REJECTION_REASON = "Does not meet guidelines"

_POPULATE = [selectinload(Blog.author), selectinload(Blog.likes)]


async def _list_blogs(db: AsyncSession, *criteria) -> ListEnvelope[BlogResponse]:
    result = await db.execute(
        select(Blog)
        .where(*criteria)
        .options(*_POPULATE)
        .order_by(Blog.created_at.desc(), Blog.id.desc())
    )
    blogs = result.scalars().all()
    return ListEnvelope(count=len(blogs), data=[BlogResponse.from_model(b) for b in blogs])


async def _load_blog(db: AsyncSession, blog_id: int, refresh: bool = False) -> Blog:
    stmt = select(Blog).where(Blog.id == blog_id).options(*_POPULATE)
    if refresh:
        await db.flush()
        stmt = stmt.execution_options(populate_existing=True)

    blog = (await db.execute(stmt)).scalar_one_or_none()
    if blog is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog


def _ensure_can_edit(blog: Blog, user: User) -> None:
    if blog.author_id != user.id and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")


def initial_status(requested: Optional[BlogStatus], user: User) -> BlogStatus:
    """Admins may publish directly; everyone else starts as draft or pending."""
    if requested == BlogStatus.PUBLISHED and user.is_admin:
        return BlogStatus.PUBLISHED
    if requested == BlogStatus.PENDING:
        return BlogStatus.PENDING
    return BlogStatus.DRAFT


def next_status(current: BlogStatus, requested: BlogStatus, user: User) -> BlogStatus:
    """
    Resolve a requested status change.

    Admins may set anything. Authors may submit a draft or rejected blog for
    review, or pull any blog back to draft. Other requests keep *current*.
    """
    if user.is_admin:
        return requested
    if requested == BlogStatus.PENDING and current in (BlogStatus.DRAFT, BlogStatus.REJECTED):
        return BlogStatus.PENDING
    if requested == BlogStatus.DRAFT:
        return BlogStatus.DRAFT
    return current


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

@router.get("", response_model=ListEnvelope[BlogResponse])
async def list_published(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[BlogResponse]:
    return await _list_blogs(db, Blog.status == BlogStatus.PUBLISHED)


@router.get("/mine", response_model=ListEnvelope[BlogResponse])
async def list_mine(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[BlogResponse]:
    return await _list_blogs(db, Blog.author_id == user.id)


@router.get("/pending", response_model=ListEnvelope[BlogResponse])
async def list_pending(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[BlogResponse]:
    return await _list_blogs(db, Blog.status == BlogStatus.PENDING)


@router.get("/admin/all", response_model=ListEnvelope[BlogResponse])
async def list_all(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[BlogResponse]:
    return await _list_blogs(db)


# ---------------------------------------------------------------------------
# Single blog
# ---------------------------------------------------------------------------

@router.get("/{blog_id}", response_model=Envelope[BlogResponse])
async def get_blog(
    blog_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[BlogResponse]:
    blog = await _load_blog(db, blog_id)

    if blog.status != BlogStatus.PUBLISHED:
        _ensure_can_edit(blog, user)

    blog.views += 1
    await db.flush()
    return Envelope(data=BlogResponse.from_model(blog))


@router.post("", response_model=Envelope[BlogResponse], status_code=status.HTTP_201_CREATED)
async def create_blog(
    body: BlogCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[BlogResponse]:
    blog = Blog(
        author_id=user.id,
        title=body.title,
        subtitle=body.subtitle,
        content=body.content,
        cover_image=body.cover_image or "",
        tags=clean_tags(body.tags or []),
        status=initial_status(body.status, user),
        read_time=compute_read_time(body.content),
    )
    db.add(blog)
    await db.flush()

    logger.info("Created blog id=%d status=%s author=%d", blog.id, blog.status.value, user.id)
    blog = await _load_blog(db, blog.id, refresh=True)
    return Envelope(data=BlogResponse.from_model(blog))


@router.put("/{blog_id}", response_model=Envelope[BlogResponse])
async def update_blog(
    blog_id: int,
    body: BlogUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[BlogResponse]:
    blog = await _load_blog(db, blog_id)
    _ensure_can_edit(blog, user)

    # Empty title/content keep the stored value
    if body.title:
        blog.title = body.title
    if body.content:
        blog.content = body.content
        blog.read_time = compute_read_time(body.content)
    if body.subtitle is not None:
        blog.subtitle = body.subtitle
    if body.cover_image is not None:
        blog.cover_image = body.cover_image
    if body.tags is not None:
        blog.tags = clean_tags(body.tags)

    if body.status is not None:
        blog.status = next_status(blog.status, body.status, user)

    blog = await _load_blog(db, blog_id, refresh=True)
    return Envelope(data=BlogResponse.from_model(blog))


@router.put("/{blog_id}/review", response_model=Envelope[BlogResponse])
async def review_blog(
    blog_id: int,
    body: BlogReviewRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Envelope[BlogResponse]:
    blog = await _load_blog(db, blog_id)

    if body.action == "approve":
        blog.status = BlogStatus.PUBLISHED
        blog.rejection_reason = ""
    elif body.action == "reject":
        blog.status = BlogStatus.REJECTED
        blog.rejection_reason = body.rejection_reason or DEFAULT_REJECTION_REASON
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")

    logger.info("Blog id=%d reviewed by admin=%d: %s", blog_id, admin.id, body.action)
    blog = await _load_blog(db, blog_id, refresh=True)
    return Envelope(data=BlogResponse.from_model(blog))


@router.put("/{blog_id}/like", response_model=Envelope[BlogResponse])
async def toggle_like(
    blog_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[BlogResponse]:
    blog = await _load_blog(db, blog_id)

    existing = next((like for like in blog.likes if like.user_id == user.id), None)
    if existing is not None:
        blog.likes.remove(existing)
    else:
        blog.likes.append(BlogLike(user_id=user.id))

    blog = await _load_blog(db, blog_id, refresh=True)
    return Envelope(data=BlogResponse.from_model(blog))


@router.delete("/{blog_id}", response_model=Envelope[Dict[str, Any]])
async def delete_blog(
    blog_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[Dict[str, Any]]:
    blog = await _load_blog(db, blog_id)
    _ensure_can_edit(blog, user)

    await db.delete(blog)
    await db.flush()

    logger.info("Deleted blog id=%d", blog_id)
    return Envelope(data={})
