"""Public gallery; images keep the order they were submitted in"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.models.content import Gallery, GalleryImage
from eservice.models.user import User
from eservice.modules.auth.dependencies import require_permission
from eservice.schemas.common import dump, dump_list
from eservice.schemas.content import GalleryCreate, GalleryUpdate, GalleryResponse
from eservice.utils.responses import success_response

router = APIRouter(prefix="/gallery", tags=["Gallery"])


def ordered_images(filenames):
    return [GalleryImage(filename=filename, order=index) for index, filename in enumerate(filenames)]


async def get_gallery_or_404(db: AsyncSession, gallery_id: str) -> Gallery:
    gallery = await db.get(Gallery, gallery_id)
    if not gallery:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gallery not found")
    return gallery


@router.get("")
async def list_galleries(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Gallery).order_by(Gallery.created_at.desc()))
    return success_response(dump_list(GalleryResponse, result.scalars().all()))


@router.get("/{gallery_id}")
async def get_gallery(gallery_id: str, db: AsyncSession = Depends(get_db)):
    gallery = await get_gallery_or_404(db, gallery_id)
    return success_response(dump(GalleryResponse, gallery))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_gallery(
    payload: GalleryCreate,
    current_user: User = Depends(require_permission("gallery:create")),
    db: AsyncSession = Depends(get_db),
):
    gallery = Gallery(
        name=payload.name,
        description=payload.description,
        images=ordered_images(payload.images),
    )
    db.add(gallery)
    await db.flush()
    await db.refresh(gallery)

    logger.info(f"Gallery created: {gallery.id} with {len(payload.images)} image(s)")
    return success_response(dump(GalleryResponse, gallery), message="Gallery created successfully")


@router.patch("/{gallery_id}")
async def update_gallery(
    gallery_id: str,
    payload: GalleryUpdate,
    current_user: User = Depends(require_permission("gallery:update")),
    db: AsyncSession = Depends(get_db),
):
    gallery = await get_gallery_or_404(db, gallery_id)

    if payload.name is not None:
        gallery.name = payload.name
    if "description" in payload.model_fields_set:
        gallery.description = payload.description
    if payload.images is not None:
        gallery.images = ordered_images(payload.images)

    await db.flush()
    await db.refresh(gallery)

    return success_response(dump(GalleryResponse, gallery), message="Gallery updated successfully")


@router.delete("/{gallery_id}")
async def delete_gallery(
    gallery_id: str,
    current_user: User = Depends(require_permission("gallery:delete")),
    db: AsyncSession = Depends(get_db),
):
    gallery = await get_gallery_or_404(db, gallery_id)
    await db.delete(gallery)
    await db.flush()

    logger.info(f"Gallery deleted: {gallery_id} by {current_user.id}")
    return success_response(message="Gallery deleted successfully")
