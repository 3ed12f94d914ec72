# backend/shelfindex/router/documents.py
from __future__ import annotations
import os
import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from shelfindex.container import AppContainer
from shelfindex.db.deps import get_container
from shelfindex.models.schemas import DocumentList, DocumentOut

logger = logging.getLogger("shelf.documents")

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=DocumentList)
def list_documents(container: AppContainer = Depends(get_container)):
    """All tracked documents, newest first, with committed chunk counts."""
    rows = container.store.list_documents()
    return DocumentList(
        items=[DocumentOut.from_entity(doc, chunk_count=committed) for doc, committed in rows],
        total=len(rows),
    )


@router.get("/by-filename/{filename}/download")
def download_by_filename(filename: str, container: AppContainer = Depends(get_container)):
    doc = container.store.find_by_filename(filename)
    if doc is None:
        raise HTTPException(status_code=404, detail="document_not_found")
    if not os.path.isfile(doc.path):
        logger.warning("File for %s is missing on disk: %s", filename, doc.path)
        raise HTTPException(status_code=404, detail="file_missing")
    return FileResponse(doc.path, filename=doc.filename)
