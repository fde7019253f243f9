"""Locale file administration and the public translations feed"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from eservice.core.logging_config import logger
from eservice.models.user import User
from eservice.modules.auth.dependencies import require_permission, require_any_permission
from eservice.schemas.language import (
    LanguageCreate,
    BulkTranslations,
    TranslationKey,
    TranslationValueUpdate,
    TranslationRow,
)
from eservice.services.locale_service import LocaleStore, get_locale_store, is_valid_key
from eservice.utils.responses import success_response

router = APIRouter(prefix="/languages", tags=["Languages"])
translations_router = APIRouter(prefix="/translations", tags=["Languages"])

can_edit = require_any_permission("language:update", "language:manage")


def parse_translation_key(item: TranslationKey) -> TranslationRow:
    """Key must be a dotted string; values a {lang: str} object"""
    if not is_valid_key(item.key) or not isinstance(item.values, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid translation key data")
    if not all(isinstance(v, str) for v in item.values.values()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid translation key data")
    return TranslationRow(key=item.key.strip(), values=item.values)


@router.get("")
async def list_languages(
    current_user: User = Depends(require_permission("language:read")),
    store: LocaleStore = Depends(get_locale_store),
):
    """Available languages and every translation key across the locale files"""
    return success_response({
        "languages": await store.list_languages(),
        "translations": await store.load_all_translations(),
    })


@router.put("")
async def save_translations(
    payload: BulkTranslations,
    current_user: User = Depends(can_edit),
    store: LocaleStore = Depends(get_locale_store),
):
    rows: List[TranslationRow] = [parse_translation_key(item) for item in payload.translations]
    saved = await store.save_translations([row.model_dump() for row in rows])

    logger.info(f"[Locale] Bulk saved {saved} translation key(s) by {current_user.id}")
    return success_response({"saved": saved}, message="Translations saved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_language(
    payload: LanguageCreate,
    current_user: User = Depends(require_permission("language:manage")),
    store: LocaleStore = Depends(get_locale_store),
):
    code = (payload.code or "").strip().lower()
    name = (payload.name or "").strip()
    if not code or not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Language code and name are required")

    language = await store.add_language(code, name, (payload.native_name or "").strip() or None)
    return success_response(language, message="Language added successfully")


@router.delete("")
async def delete_language(
    code: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("language:manage")),
    store: LocaleStore = Depends(get_locale_store),
):
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Language code is required")

    await store.delete_language(code.strip().lower())
    return success_response(message="Language deleted successfully")


@router.post("/keys", status_code=status.HTTP_201_CREATED)
@router.put("/keys")
async def upsert_translation_key(
    payload: TranslationKey,
    current_user: User = Depends(can_edit),
    store: LocaleStore = Depends(get_locale_store),
):
    row = parse_translation_key(payload)
    await store.add_translation_key(row.key, row.values)
    return success_response(row.model_dump(), message="Translation key saved successfully")


@router.delete("/keys")
async def delete_translation_key(
    key: Optional[str] = Query(None),
    current_user: User = Depends(can_edit),
    store: LocaleStore = Depends(get_locale_store),
):
    if not is_valid_key(key):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid translation key data")

    changed = await store.delete_translation_key(key.strip())
    if not changed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Translation key not found")
    return success_response({"files_updated": changed}, message="Translation key deleted successfully")


@router.put("/{lang_code}/{key}")
async def update_translation(
    lang_code: str,
    key: str,
    payload: TranslationValueUpdate,
    current_user: User = Depends(can_edit),
    store: LocaleStore = Depends(get_locale_store),
):
    if not is_valid_key(key):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid translation key data")
    if lang_code not in await store.language_codes():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid language code")

    await store.update_translation(lang_code, key, payload.value)
    return success_response({"lang": lang_code, "key": key, "value": payload.value})


@translations_router.get("/{lang}")
async def get_translations(lang: str, store: LocaleStore = Depends(get_locale_store)):
    """Nested translations for the frontend; public"""
    return success_response(await store.get_nested(lang))
