"""
Discussion thread endpoints.

Route summary
-------------
GET    /api/threads                                — all threads, newest first
GET    /api/threads/{thread_id}                    — thread detail, counts a view
POST   /api/threads                                — create (daily limit applies)
POST   /api/threads/{thread_id}/replies            — add reply
DELETE /api/threads/{thread_id}                    — delete (owner only)
DELETE /api/threads/{thread_id}/replies/{reply_id} — delete reply (reply owner only)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.config import settings
from studyhub.database import get_db
from studyhub.dependencies.auth import get_current_user
from studyhub.models.database_models import Thread, ThreadReply, User
from studyhub.models.schemas import (
    Envelope,
    ListEnvelope,
    MessageEnvelope,
    ReplyCreate,
    ThreadCreate,
    ThreadResponse,
)
from studyhub.utils.helpers import clean_tags, start_of_utc_day

logger = logging.getLogger(__name__)

router = APIRouter()

_POPULATE = [
    selectinload(Thread.user),
    selectinload(Thread.replies).selectinload(ThreadReply.user),
]


async def _load_thread(db: AsyncSession, thread_id: int, refresh: bool = False) -> Thread:
    stmt = select(Thread).where(Thread.id == thread_id).options(*_POPULATE)
    if refresh:
        await db.flush()
        stmt = stmt.execution_options(populate_existing=True)

    thread = (await db.execute(stmt)).scalar_one_or_none()
    if thread is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")
    return thread


async def count_threads_today(db: AsyncSession, user_id: int) -> int:
    """Threads *user_id* created since midnight UTC."""
    result = await db.execute(
        select(func.count(Thread.id)).where(
            Thread.user_id == user_id,
            Thread.created_at >= start_of_utc_day(),
        )
    )
    return result.scalar() or 0


@router.get("", response_model=ListEnvelope[ThreadResponse])
async def list_threads(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[ThreadResponse]:
    result = await db.execute(
        select(Thread).options(*_POPULATE).order_by(Thread.created_at.desc(), Thread.id.desc())
    )
    threads = result.scalars().all()
    return ListEnvelope(count=len(threads), data=[ThreadResponse.from_model(t) for t in threads])


@router.get("/{thread_id}", response_model=Envelope[ThreadResponse])
async def get_thread(
    thread_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ThreadResponse]:
    thread = await _load_thread(db, thread_id)
    thread.views += 1
    await db.flush()
    return Envelope(data=ThreadResponse.from_model(thread))


@router.post("", response_model=Envelope[ThreadResponse], status_code=status.HTTP_201_CREATED)
async def create_thread(
    body: ThreadCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ThreadResponse]:
    limit = settings.THREAD_DAILY_LIMIT
    if await count_threads_today(db, user.id) >= limit:
        logger.warning("User id=%d hit the daily thread limit", user.id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Daily thread limit reached ({limit} threads per day)",
        )

    thread = Thread(
        user_id=user.id,
        title=body.title,
        content=body.content,
        tags=clean_tags(body.tags),
    )
    db.add(thread)
    await db.flush()

    logger.info("Created thread id=%d user=%d", thread.id, user.id)
    thread = await _load_thread(db, thread.id, refresh=True)
    return Envelope(data=ThreadResponse.from_model(thread))


@router.post("/{thread_id}/replies", response_model=Envelope[ThreadResponse])
async def add_reply(
    thread_id: int,
    body: ReplyCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ThreadResponse]:
    thread = await _load_thread(db, thread_id)
    thread.replies.append(ThreadReply(user_id=user.id, content=body.content))

    thread = await _load_thread(db, thread_id, refresh=True)
    return Envelope(data=ThreadResponse.from_model(thread))


@router.delete("/{thread_id}", response_model=MessageEnvelope)
async def delete_thread(
    thread_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageEnvelope:
    thread = await _load_thread(db, thread_id)
    if thread.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")

    await db.delete(thread)
    await db.flush()

    logger.info("Deleted thread id=%d", thread_id)
    return MessageEnvelope(success=True, message="Thread deleted")


@router.delete("/{thread_id}/replies/{reply_id}", response_model=Envelope[ThreadResponse])
async def delete_reply(
    thread_id: int,
    reply_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[ThreadResponse]:
    thread = await _load_thread(db, thread_id)

    reply = next((r for r in thread.replies if r.id == reply_id), None)
    if reply is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reply not found")
    if reply.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")

    thread.replies.remove(reply)

    thread = await _load_thread(db, thread_id, refresh=True)
    return Envelope(data=ThreadResponse.from_model(thread))
