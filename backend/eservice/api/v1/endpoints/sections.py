"""
About and administration sections.

Both are simple name/description/image entries: reads are public, writes
need `<resource>:manage` or `<resource>:update`.
"""
from typing import Type

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import Base, get_db
from eservice.core.logging_config import logger
from eservice.models.content import About, Administration
from eservice.models.user import User
from eservice.modules.auth.dependencies import require_any_permission
from eservice.schemas.common import dump, dump_list
from eservice.schemas.content import (
    AboutCreate,
    AboutUpdate,
    AdministrationCreate,
    AdministrationUpdate,
    SectionResponse,
)
from eservice.utils.responses import success_response


def build_section_router(
    model: Type[Base],
    resource: str,
    label: str,
    not_found: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=f"/{resource}", tags=[label])
    can_write = require_any_permission(f"{resource}:manage", f"{resource}:update")

    async def get_or_404(db: AsyncSession, item_id: str):
        item = await db.get(model, item_id)
        if not item:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return item

    @router.get("")
    async def list_items(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(model).order_by(model.created_at))
        return success_response(dump_list(SectionResponse, result.scalars().all()))

    @router.get("/{item_id}")
    async def get_item(item_id: str, db: AsyncSession = Depends(get_db)):
        return success_response(dump(SectionResponse, await get_or_404(db, item_id)))

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_item(
        payload: create_schema,
        current_user: User = Depends(can_write),
        db: AsyncSession = Depends(get_db),
    ):
        item = model(**payload.model_dump())
        db.add(item)
        await db.flush()
        await db.refresh(item)

        logger.info(f"{label} created: {item.id} by {current_user.id}")
        return success_response(dump(SectionResponse, item), message=f"{label} created successfully")

    @router.patch("/{item_id}")
    async def update_item(
        item_id: str,
        payload: update_schema,
        current_user: User = Depends(can_write),
        db: AsyncSession = Depends(get_db),
    ):
        item = await get_or_404(db, item_id)
        for field, value in payload.model_dump(exclude_none=True).items():
            setattr(item, field, value)
        await db.flush()
        await db.refresh(item)

        return success_response(dump(SectionResponse, item), message=f"{label} updated successfully")

    @router.delete("/{item_id}")
    async def delete_item(
        item_id: str,
        current_user: User = Depends(can_write),
        db: AsyncSession = Depends(get_db),
    ):
        item = await get_or_404(db, item_id)
        await db.delete(item)
        await db.flush()

        logger.info(f"{label} deleted: {item_id} by {current_user.id}")
        return success_response(message=f"{label} deleted successfully")

    return router


about_router = build_section_router(
    About, "about", "About", "About section not found", AboutCreate, AboutUpdate
)
administration_router = build_section_router(
    Administration, "administration", "Administration", "Administration not found",
    AdministrationCreate, AdministrationUpdate,
)
