"""
File storage under FILEDATA_PATH.

Chunked uploads write every chunk to `{base}_chunks/chunk_{i}`; the request
carrying the last chunk (index + 1 == total) joins chunks 0..total-1 into
the final file and removes the chunk folder.
"""

import mimetypes
import random
import shutil
import time
from pathlib import Path
from typing import Optional, Dict, Any

import aiofiles

from eservice.core.config import settings
from eservice.core.exceptions import (
    InvalidFileTypeError,
    FileTooLargeError,
    InvalidFilenameError,
    MissingChunkError,
    ResourceNotFoundError,
    ValidationError,
)
from eservice.core.logging_config import logger

REQUEST_FILE_MIME_TYPES = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
]

LOGO_MIME_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
MAX_LOGO_SIZE = 5 * 1024 * 1024

MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
    ".txt": "text/plain",
}


def media_type_for(filename: str, default: str = "application/octet-stream") -> str:
    return MEDIA_TYPES.get(Path(filename).suffix.lower(), default)


def check_safe_filename(filename: str) -> str:
    """Reject names that could leave the storage directory"""
    if not filename or ".." in filename or "/" in filename or "\\" in filename:
        raise InvalidFilenameError(filename or "")
    return filename


def generate_filename(ext: str) -> str:
    """`{timestamp}-{random}.{ext}`"""
    ext = ext.lstrip(".") or "bin"
    return f"{int(time.time() * 1000)}-{random.randint(0, 99999)}.{ext}"


def generate_unique_name(original_name: str) -> str:
    """Random name keeping the original extension"""
    suffix = Path(original_name or "").suffix.lower()
    return generate_filename(suffix or ".bin")


class FileStore:
    """Reads and writes files below one root directory"""

    def __init__(self, root: Optional[Path] = None, logo_dir: Optional[Path] = None):
        self.root = Path(root or settings.FILEDATA_DIR)
        self.logo_dir = Path(logo_dir or settings.LOGO_DIR)
        self.root.mkdir(parents=True, exist_ok=True)
        self.logo_dir.mkdir(parents=True, exist_ok=True)

    # ==================== Chunked upload ====================

    def _validate_chunk_request(
        self,
        filename: Optional[str],
        original_name: Optional[str],
        chunk_index: int,
        total_chunks: int,
        total_size: Optional[int],
    ) -> str:
        if total_chunks < 1 or chunk_index < 0 or chunk_index >= total_chunks:
            raise ValidationError("Invalid chunk index", field="chunk_index")

        candidate = filename or original_name or ""
        ext = Path(candidate).suffix.lower()
        if ext and ext not in settings.ALLOWED_EXTENSIONS:
            raise InvalidFileTypeError(ext, settings.ALLOWED_EXTENSIONS)

        if total_size is not None and total_size > settings.MAX_UPLOAD_SIZE:
            raise FileTooLargeError(total_size, settings.MAX_UPLOAD_SIZE)

        if filename:
            return check_safe_filename(filename)

        if not ext and original_name and "." in original_name:
            ext = "." + original_name.rsplit(".", 1)[-1].lower()
        return generate_filename(ext or "bin")

    async def save_chunk(
        self,
        data: bytes,
        chunk_index: int,
        total_chunks: int,
        filename: Optional[str] = None,
        original_name: Optional[str] = None,
        total_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Store one chunk; assemble the file when it is the last one.

        Returns {"filename": ..., "complete": bool}.
        """
        if not data:
            raise ValidationError("Missing file chunk", field="chunk")

        filename = self._validate_chunk_request(
            filename, original_name, chunk_index, total_chunks, total_size
        )
        base_name = filename.rsplit(".", 1)[0] if "." in filename else filename
        chunk_dir = self.root / f"{base_name}_chunks"
        chunk_dir.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(chunk_dir / f"chunk_{chunk_index}", "wb") as f:
            await f.write(data)

        if chunk_index + 1 < total_chunks:
            return {"filename": filename, "complete": False}

        await self._assemble(chunk_dir, self.root / filename, total_chunks)
        logger.info(f"[Upload] Assembled {filename} from {total_chunks} chunk(s)")
        return {"filename": filename, "complete": True}

    async def _assemble(self, chunk_dir: Path, final_path: Path, total_chunks: int) -> None:
        try:
            for i in range(total_chunks):
                if not (chunk_dir / f"chunk_{i}").exists():
                    raise MissingChunkError(i)

            async with aiofiles.open(final_path, "wb") as out:
                for i in range(total_chunks):
                    async with aiofiles.open(chunk_dir / f"chunk_{i}", "rb") as part:
                        await out.write(await part.read())
        finally:
            shutil.rmtree(chunk_dir, ignore_errors=True)

    # ==================== Single files ====================

    async def save_request_file(self, data: bytes, original_name: str, content_type: str) -> Dict[str, Any]:
        """Image or PDF attachment, at most MAX_REQUEST_FILE_SIZE"""
        if content_type not in REQUEST_FILE_MIME_TYPES:
            raise InvalidFileTypeError(content_type or "unknown", REQUEST_FILE_MIME_TYPES)
        if len(data) > settings.MAX_REQUEST_FILE_SIZE:
            raise FileTooLargeError(len(data), settings.MAX_REQUEST_FILE_SIZE)

        filename = generate_unique_name(original_name)
        async with aiofiles.open(self.root / filename, "wb") as f:
            await f.write(data)

        return {
            "name": original_name,
            "filepath": f"filedata/{filename}",
            "size": len(data),
            "type": content_type,
        }

    async def save_logo(self, data: bytes, original_name: str, content_type: str) -> Dict[str, Any]:
        if content_type not in LOGO_MIME_TYPES:
            raise InvalidFileTypeError(content_type or "unknown", LOGO_MIME_TYPES)
        if len(data) > MAX_LOGO_SIZE:
            raise FileTooLargeError(len(data), MAX_LOGO_SIZE)

        filename = generate_unique_name(original_name)
        async with aiofiles.open(self.logo_dir / filename, "wb") as f:
            await f.write(data)

        return {
            "filename": filename,
            "url": f"/api/upload/logo/{filename}",
            "size": len(data),
            "type": content_type,
        }

    def delete_logo(self, filename: str) -> None:
        path = self.logo_dir / check_safe_filename(filename)
        if not path.is_file():
            raise ResourceNotFoundError("File", message="File not found")
        path.unlink()

    # ==================== Reads ====================

    def resolve(self, filename: str, logo: bool = False) -> Path:
        """Existing file path for a bare filename"""
        check_safe_filename(filename)
        path = (self.logo_dir if logo else self.root) / filename
        if not path.is_file():
            raise ResourceNotFoundError("File", message="File not found")
        return path


def guess_content_type(filename: str, declared: Optional[str]) -> str:
    """Declared multipart type, falling back to the extension"""
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "application/octet-stream"


_file_store: Optional[FileStore] = None


def get_file_store() -> FileStore:
    global _file_store
    if _file_store is None:
        _file_store = FileStore()
    return _file_store
