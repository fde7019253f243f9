"""
File-backed translations.

One `{code}.json` file per language holds nested translation objects; the
API works on the flattened dot-notation view ("common.loading"). The list
of languages lives in `_languages.json` next to the locale files.
"""

import asyncio
import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Any

import aiofiles

from eservice.core.config import settings
from eservice.core.exceptions import LocaleError, ResourceNotFoundError, ValidationError
from eservice.core.logging_config import logger

REGISTRY_FILENAME = "_languages.json"
LANG_CODE_RE = re.compile(r"^[a-z]{2,3}(-[A-Za-z0-9]{2,8})?$")

DEFAULT_LANGUAGE_INFO = {
    "en": {"name": "English", "native_name": "English"},
    "am": {"name": "Amharic", "native_name": "አማርኛ"},
    "or": {"name": "Oromo", "native_name": "Afaan Oromoo"},
}


def flatten_translations(obj: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """{"common": {"loading": "..."}} -> {"common.loading": "..."}; non-string leaves are dropped"""
    flat: Dict[str, str] = {}
    for key, value in obj.items():
        new_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_translations(value, new_key))
        elif isinstance(value, str):
            flat[new_key] = value
    return flat


def unflatten_translations(flat: Dict[str, str]) -> Dict[str, Any]:
    """Inverse of flatten_translations"""
    result: Dict[str, Any] = {}
    for key, value in flat.items():
        set_nested(result, key, value)
    return result


def set_nested(tree: Dict[str, Any], key: str, value: str) -> None:
    parts = key.split(".")
    current = tree
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def delete_nested(tree: Dict[str, Any], key: str) -> bool:
    """Remove `key`; an emptied direct parent is removed too"""
    parts = key.split(".")
    parents = [tree]
    current = tree
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            return False
        current = current[part]
        parents.append(current)

    if parts[-1] not in current:
        return False
    del current[parts[-1]]

    if not current and len(parts) > 1:
        del parents[-2][parts[-2]]
    return True


def is_valid_key(key: Any) -> bool:
    return isinstance(key, str) and bool(key.strip()) and all(part for part in key.split("."))


class LocaleStore:
    """Reads and writes the locale JSON files"""

    def __init__(self, locales_dir: Optional[Path] = None, default_languages: Optional[List[str]] = None):
        self.locales_dir = Path(locales_dir or settings.LOCALES_DIR)
        self.locales_dir.mkdir(parents=True, exist_ok=True)
        self.default_languages = default_languages or settings.DEFAULT_LANGUAGES
        self._lock = asyncio.Lock()

    # ==================== File helpers ====================

    def _path(self, code: str) -> Path:
        if not LANG_CODE_RE.match(code or ""):
            raise LocaleError("Invalid language code", lang_code=code)
        return self.locales_dir / f"{code}.json"

    async def _read_json(self, path: Path, default=None):
        if not path.exists():
            return {} if default is None else default
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
        try:
            return json.loads(content) if content.strip() else ({} if default is None else default)
        except json.JSONDecodeError as e:
            logger.error(f"[Locale] Corrupt JSON in {path.name}: {e}")
            raise LocaleError(f"Translation file {path.name} is not valid JSON", status_code=500)

    async def _write_json(self, path: Path, data) -> None:
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, ensure_ascii=False, indent=2))

    def _locale_files(self) -> List[Path]:
        return sorted(
            p for p in self.locales_dir.glob("*.json") if not p.name.startswith("_")
        )

    # ==================== Languages ====================

    async def list_languages(self) -> List[Dict[str, Any]]:
        registry = await self._read_json(self.locales_dir / REGISTRY_FILENAME, default=[])
        languages = {entry["code"]: entry for entry in registry if isinstance(entry, dict) and entry.get("code")}

        for code in self.default_languages:
            if code not in languages:
                info = DEFAULT_LANGUAGE_INFO.get(code, {"name": code, "native_name": code})
                languages[code] = {"code": code, **info}

        ordered = [languages[c] for c in self.default_languages] + [
            entry for code, entry in languages.items() if code not in self.default_languages
        ]
        return [
            {
                "code": entry["code"],
                "name": entry.get("name") or entry["code"],
                "native_name": entry.get("native_name") or entry.get("name") or entry["code"],
                "is_default": entry["code"] in self.default_languages,
            }
            for entry in ordered
        ]

    async def language_codes(self) -> List[str]:
        return [language["code"] for language in await self.list_languages()]

    async def _save_registry(self, languages: List[Dict[str, Any]]) -> None:
        entries = [
            {"code": lang["code"], "name": lang["name"], "native_name": lang["native_name"]}
            for lang in languages
        ]
        await self._write_json(self.locales_dir / REGISTRY_FILENAME, entries)

    async def add_language(self, code: str, name: str, native_name: Optional[str] = None) -> Dict[str, Any]:
        path = self._path(code)
        async with self._lock:
            languages = await self.list_languages()
            if any(lang["code"] == code for lang in languages):
                raise ValidationError("Language already exists", field="code")

            language = {"code": code, "name": name, "native_name": native_name or name, "is_default": False}
            languages.append(language)
            await self._save_registry(languages)

            if not path.exists():
                # Start from the keys of the first default language with empty values
                template = {}
                for default_code in self.default_languages:
                    default_path = self.locales_dir / f"{default_code}.json"
                    if default_path.exists():
                        flat = flatten_translations(await self._read_json(default_path))
                        template = unflatten_translations({key: "" for key in flat})
                        break
                await self._write_json(path, template)

        logger.info(f"[Locale] Added language {code}")
        return language

    async def delete_language(self, code: str) -> None:
        if code in self.default_languages:
            raise ValidationError("Cannot delete default language", field="code")
        path = self._path(code)
        async with self._lock:
            languages = await self.list_languages()
            remaining = [lang for lang in languages if lang["code"] != code]
            if len(remaining) == len(languages) and not path.exists():
                raise ResourceNotFoundError("Language", code, message="Language not found")
            await self._save_registry(remaining)
            if path.exists():
                path.unlink()
        logger.info(f"[Locale] Deleted language {code}")

    # ==================== Translations ====================

    async def load_flat(self) -> Dict[str, Dict[str, str]]:
        """{lang_code: {dotted.key: value}} for every locale file"""
        by_lang = {}
        for path in self._locale_files():
            by_lang[path.stem] = flatten_translations(await self._read_json(path))
        return by_lang

    async def load_all_translations(self) -> List[Dict[str, Any]]:
        """[{key, values: {lang: value}}] across all locale files, sorted by key"""
        by_lang = await self.load_flat()
        keys = sorted({key for flat in by_lang.values() for key in flat})
        return [
            {
                "key": key,
                "values": {lang: flat[key] for lang, flat in by_lang.items() if key in flat},
            }
            for key in keys
        ]

    async def save_translations(self, rows: List[Dict[str, Any]]) -> int:
        """
        Merge the flat rows into the locale files.

        Keys not mentioned in `rows` keep their values. Every language code
        must be a registered language.
        """
        by_lang: Dict[str, Dict[str, str]] = {}
        for row in rows:
            for lang, value in row["values"].items():
                by_lang.setdefault(lang, {})[row["key"]] = value

        unknown = sorted(set(by_lang) - set(await self.language_codes()))
        if unknown:
            raise LocaleError(f"Unknown language code: {', '.join(unknown)}", lang_code=unknown[0])

        async with self._lock:
            for lang, flat in by_lang.items():
                path = self._path(lang)
                tree = await self._read_json(path)
                for key, value in flat.items():
                    set_nested(tree, key, value)
                await self._write_json(path, tree)
        return len(rows)

    async def add_translation_key(self, key: str, values: Dict[str, str]) -> None:
        """Set `key` in every language; languages missing from `values` get an empty string"""
        async with self._lock:
            for lang in await self.language_codes():
                path = self._path(lang)
                tree = await self._read_json(path)
                set_nested(tree, key, values.get(lang, "") or "")
                await self._write_json(path, tree)

    async def update_translation(self, lang: str, key: str, value: str) -> None:
        path = self._path(lang)
        async with self._lock:
            tree = await self._read_json(path)
            set_nested(tree, key, value)
            await self._write_json(path, tree)

    async def delete_translation_key(self, key: str) -> int:
        """Remove `key` from every locale file; returns how many files changed"""
        changed = 0
        async with self._lock:
            for path in self._locale_files():
                tree = await self._read_json(path)
                if delete_nested(tree, key):
                    await self._write_json(path, tree)
                    changed += 1
        return changed

    async def get_nested(self, lang: str) -> Dict[str, Any]:
        """Nested translations for one language, as served to the frontend"""
        if lang not in await self.language_codes():
            raise LocaleError("Invalid language code", lang_code=lang)
        path = self._path(lang)
        if not path.exists():
            raise ResourceNotFoundError("Translation file", lang, message="Translation file not found")
        return await self._read_json(path)


_locale_store: Optional[LocaleStore] = None


def get_locale_store() -> LocaleStore:
    global _locale_store
    if _locale_store is None:
        _locale_store = LocaleStore()
    return _locale_store
