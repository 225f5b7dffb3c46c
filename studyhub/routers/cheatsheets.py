"""
Cheatsheet endpoints.

Route summary
-------------
GET    /api/cheatsheets                          — list caller's cheatsheets
GET    /api/cheatsheets/{sheet_id}               — cheatsheet with items
POST   /api/cheatsheets                          — create (items optional)
PUT    /api/cheatsheets/{sheet_id}               — partial update
DELETE /api/cheatsheets/{sheet_id}               — delete with items
POST   /api/cheatsheets/{sheet_id}/items         — append item
PUT    /api/cheatsheets/{sheet_id}/items/{item_id} — merge item fields
DELETE /api/cheatsheets/{sheet_id}/items/{item_id} — remove item
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studyhub.database import get_db
from studyhub.dependencies.auth import get_current_user
from studyhub.dependencies.ownership import load_owned
from studyhub.models.database_models import Cheatsheet, CheatsheetItem, User
from studyhub.models.schemas import (
    CheatsheetCreate,
    CheatsheetItemCreate,
    CheatsheetItemUpdate,
    CheatsheetResponse,
    CheatsheetUpdate,
    Envelope,
    ListEnvelope,
)
from studyhub.utils.helpers import clean_tags

logger = logging.getLogger(__name__)

router = APIRouter()

_WITH_ITEMS = [selectinload(Cheatsheet.items)]


def _build_items(items: List[CheatsheetItemCreate], start: int = 0) -> List[CheatsheetItem]:
    return [
        CheatsheetItem(
            title=item.title,
            content=item.content,
            question_links=item.question_links,
            answer_links=item.answer_links,
            tags=clean_tags(item.tags),
            order=start + i,
        )
        for i, item in enumerate(items)
    ]


async def _reload(db: AsyncSession, sheet_id: int) -> Cheatsheet:
    # Refresh the items collection so it comes back in ``order``
    await db.flush()
    result = await db.execute(
        select(Cheatsheet)
        .where(Cheatsheet.id == sheet_id)
        .options(*_WITH_ITEMS)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_owned_sheet(
    sheet_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Cheatsheet:
    return await load_owned(db, Cheatsheet, sheet_id, user, "Cheatsheet", options=_WITH_ITEMS)


# ---------------------------------------------------------------------------
# Cheatsheets
# ---------------------------------------------------------------------------

@router.get("", response_model=ListEnvelope[CheatsheetResponse])
async def list_cheatsheets(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ListEnvelope[CheatsheetResponse]:
    result = await db.execute(
        select(Cheatsheet)
        .where(Cheatsheet.user_id == user.id)
        .options(*_WITH_ITEMS)
        .order_by(Cheatsheet.created_at.desc(), Cheatsheet.id.desc())
    )
    sheets = result.scalars().all()
    return ListEnvelope(count=len(sheets), data=[CheatsheetResponse.from_model(s) for s in sheets])


@router.get("/{sheet_id}", response_model=Envelope[CheatsheetResponse])
async def get_cheatsheet(
    sheet: Cheatsheet = Depends(get_owned_sheet),
) -> Envelope[CheatsheetResponse]:
    return Envelope(data=CheatsheetResponse.from_model(sheet))


@router.post("", response_model=Envelope[CheatsheetResponse], status_code=status.HTTP_201_CREATED)
async def create_cheatsheet(
    body: CheatsheetCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[CheatsheetResponse]:
    sheet = Cheatsheet(
        user_id=user.id,
        title=body.title,
        subject=body.subject,
        description=body.description,
        is_public=body.is_public,
        items=_build_items(body.items),
    )
    if body.color is not None:
        sheet.color = body.color
    if body.icon is not None:
        sheet.icon = body.icon

    db.add(sheet)
    await db.flush()

    logger.info("Created cheatsheet id=%d with %d items", sheet.id, len(body.items))
    return Envelope(data=CheatsheetResponse.from_model(await _reload(db, sheet.id)))


@router.put("/{sheet_id}", response_model=Envelope[CheatsheetResponse])
async def update_cheatsheet(
    body: CheatsheetUpdate,
    sheet: Cheatsheet = Depends(get_owned_sheet),
    db: AsyncSession = Depends(get_db),
) -> Envelope[CheatsheetResponse]:
    """Partial update. A given ``items`` list replaces the existing one."""
    changes = body.model_dump(exclude_unset=True, exclude={"items"})
    for field, value in changes.items():
        if value is None and field in ("title", "color", "icon", "is_public"):
            continue
        setattr(sheet, field, value)

    if body.items is not None:
        sheet.items = _build_items(body.items)

    return Envelope(data=CheatsheetResponse.from_model(await _reload(db, sheet.id)))


@router.delete("/{sheet_id}", response_model=Envelope[Dict[str, Any]])
async def delete_cheatsheet(
    sheet: Cheatsheet = Depends(get_owned_sheet),
    db: AsyncSession = Depends(get_db),
) -> Envelope[Dict[str, Any]]:
    sheet_id = sheet.id
    await db.delete(sheet)
    await db.flush()

    logger.info("Deleted cheatsheet id=%d", sheet_id)
    return Envelope(data={})


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

@router.post(
    "/{sheet_id}/items",
    response_model=Envelope[CheatsheetResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_item(
    body: CheatsheetItemCreate,
    sheet: Cheatsheet = Depends(get_owned_sheet),
    db: AsyncSession = Depends(get_db),
) -> Envelope[CheatsheetResponse]:
    next_order = max((i.order for i in sheet.items), default=-1) + 1
    sheet.items.extend(_build_items([body], start=next_order))
    return Envelope(data=CheatsheetResponse.from_model(await _reload(db, sheet.id)))


@router.put("/{sheet_id}/items/{item_id}", response_model=Envelope[CheatsheetResponse])
async def update_item(
    item_id: int,
    body: CheatsheetItemUpdate,
    sheet: Cheatsheet = Depends(get_owned_sheet),
    db: AsyncSession = Depends(get_db),
) -> Envelope[CheatsheetResponse]:
    item = next((i for i in sheet.items if i.id == item_id), None)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

    changes = body.model_dump(exclude_unset=True)
    if "tags" in changes:
        changes["tags"] = clean_tags(changes["tags"] or [])
    for field, value in changes.items():
        if value is not None:
            setattr(item, field, value)

    return Envelope(data=CheatsheetResponse.from_model(await _reload(db, sheet.id)))


@router.delete("/{sheet_id}/items/{item_id}", response_model=Envelope[CheatsheetResponse])
async def delete_item(
    item_id: int,
    sheet: Cheatsheet = Depends(get_owned_sheet),
    db: AsyncSession = Depends(get_db),
) -> Envelope[CheatsheetResponse]:
    """Remove an item. Unknown ids leave the cheatsheet unchanged."""
    sheet.items = [i for i in sheet.items if i.id != item_id]
    return Envelope(data=CheatsheetResponse.from_model(await _reload(db, sheet.id)))
