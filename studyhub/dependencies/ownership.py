"""
Ownership checks shared by the resource routers.

Load-by-id, then compare the owner column with the requester. Resources
differ only in the status used for someone else's record: chapters,
questions and cheatsheets answer 401, the AI routes hide foreign records
behind 404.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence, Type, TypeVar

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.database import get_db
from studyhub.dependencies.auth import get_current_user
from studyhub.models.database_models import Chapter, User

ModelT = TypeVar("ModelT")


async def load_owned(
    db: AsyncSession,
    model: Type[ModelT],
    obj_id: int,
    user: User,
    label: str,
    foreign_status: int = status.HTTP_401_UNAUTHORIZED,
    owner_attr: str = "user_id",
    options: Optional[Sequence[Any]] = None,
) -> ModelT:
    """
    Fetch ``model`` by primary key and make sure *user* owns it.

    Raises 404 ``"<label> not found"`` when missing and *foreign_status*
    when it belongs to someone else (404 reuses the not-found message).
    """
    stmt = select(model).where(model.id == obj_id)
    if options:
        stmt = stmt.options(*options)
    obj = (await db.execute(stmt)).scalar_one_or_none()

    if obj is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")

    if getattr(obj, owner_attr) != user.id:
        detail = f"{label} not found" if foreign_status == status.HTTP_404_NOT_FOUND else "Not authorized"
        raise HTTPException(status_code=foreign_status, detail=detail)

    return obj


async def get_owned_chapter(
    chapter_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Chapter:
    """Path-parameter variant for ``/{chapter_id}`` routes."""
    return await load_owned(db, Chapter, chapter_id, user, "Chapter")
