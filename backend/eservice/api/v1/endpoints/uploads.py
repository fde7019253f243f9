"""
Uploads and file downloads.

Large files arrive in sequential chunks on POST /upload; the request with
the last chunk gets the final filename back.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from eservice.core.logging_config import logger
from eservice.models.user import User
from eservice.modules.auth.dependencies import require_permission, require_any_permission
from eservice.services.upload_service import FileStore, get_file_store, guess_content_type, media_type_for
from eservice.utils.responses import success_response

router = APIRouter(prefix="/upload", tags=["Uploads"])
filedata_router = APIRouter(prefix="/filedata", tags=["Uploads"])


@router.post("")
async def upload_chunk(
    chunk: Optional[UploadFile] = File(None),
    filename: Optional[str] = Form(None),
    chunk_index: Optional[int] = Form(None),
    total_chunks: Optional[int] = Form(None),
    total_size: Optional[int] = Form(None),
    current_user: User = Depends(require_permission("file:upload")),
    store: FileStore = Depends(get_file_store),
):
    """
    Store one chunk.

    Intermediate chunks answer {success, chunk_index, received}; the last
    one answers {success, filename} once the file is assembled.
    """
    if chunk is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing file chunk")
    if chunk_index is None or total_chunks is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing chunk indexes")

    data = await chunk.read()
    result = await store.save_chunk(
        data,
        chunk_index=chunk_index,
        total_chunks=total_chunks,
        filename=filename,
        original_name=chunk.filename,
        total_size=total_size,
    )

    if result["complete"]:
        logger.info(f"[Upload] {result['filename']} uploaded by {current_user.id}")
        return {"success": True, "filename": result["filename"]}
    return {"success": True, "chunk_index": chunk_index, "received": True, "filename": result["filename"]}


@router.post("/request-file")
async def upload_request_file(
    file: UploadFile = File(...),
    current_user: User = Depends(require_permission("file:upload")),
    store: FileStore = Depends(get_file_store),
):
    """Single image or PDF attached to a service request"""
    data = await file.read()
    saved = await store.save_request_file(data, file.filename, guess_content_type(file.filename, file.content_type))
    return success_response(saved, message="File uploaded successfully")


@router.post("/logo")
async def upload_logo(
    file: UploadFile = File(...),
    current_user: User = Depends(require_any_permission("office:update", "office:configure", "office:create")),
    store: FileStore = Depends(get_file_store),
):
    data = await file.read()
    saved = await store.save_logo(data, file.filename, guess_content_type(file.filename, file.content_type))
    logger.info(f"[Upload] Logo {saved['filename']} uploaded by {current_user.id}")
    return success_response(saved, message="Logo uploaded successfully")


@router.get("/logo/{filename}")
async def get_logo(filename: str, store: FileStore = Depends(get_file_store)):
    path = store.resolve(filename, logo=True)
    return FileResponse(path, media_type=media_type_for(filename))


@router.delete("/logo/{filename}")
async def delete_logo(
    filename: str,
    current_user: User = Depends(require_any_permission("office:update", "office:configure")),
    store: FileStore = Depends(get_file_store),
):
    store.delete_logo(filename)
    return success_response(message="Logo deleted successfully")


@filedata_router.get("/{filename}")
async def get_file(
    filename: str,
    current_user: User = Depends(require_permission("file:download")),
    store: FileStore = Depends(get_file_store),
):
    """Serve an uploaded file; names with path separators or `..` are rejected"""
    path = store.resolve(filename)
    return FileResponse(path, media_type=media_type_for(filename))
