# backend/shelfindex/router/upload_router.py
from __future__ import annotations
import logging
from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse

from shelfindex.container import AppContainer
from shelfindex.db.deps import get_container
from shelfindex.models.schemas import UploadResponse

logger = logging.getLogger("shelf.upload")

router = APIRouter(prefix="/upload", tags=["upload"])

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


def _reject(code: int, filename: str, error: str) -> JSONResponse:
    body = UploadResponse(success=False, filename=filename, status="failed_save", error=error)
    return JSONResponse(status_code=code, content=body.model_dump())


@router.post("", response_model=UploadResponse)
def upload(file: UploadFile | None = File(None), container: AppContainer = Depends(get_container)):
    if file is None or not file.filename:
        return _reject(status.HTTP_400_BAD_REQUEST, "", "No file provided")

    is_pdf = file.content_type == "application/pdf" or file.filename.lower().endswith(".pdf")
    if not is_pdf:
        return _reject(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, file.filename, "Only PDF files are allowed")

    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        return _reject(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, file.filename, "File too large. Maximum size is 25MB.")

    logger.info("Upload request received | filename=%s | size=%d", file.filename, len(data))
    result = container.uploads.handle(data, file.filename)
    body = UploadResponse.from_entity(result)
    code = status.HTTP_200_OK if result.success else status.HTTP_422_UNPROCESSABLE_ENTITY
    return JSONResponse(status_code=code, content=body.model_dump())
