"""Archive snapshot management.

GET    /logs/archives          — snapshot names, newest first
DELETE /logs/archives/{name}   — delete one snapshot
POST   /logs/archives/clear    — delete every snapshot
GET    /logs/download/{name}   — download one snapshot as an attachment

Names are matched with the ``path`` converter so that encoded separators
(``..%2f..%2fetc``) reach the validator and are refused with 400 instead of
falling through to routing.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from logrelay.archive import ArchiveStore
from logrelay.dependencies import get_archive_store
from logrelay.errors import ArchiveError, ArchiveNotFound, InvalidArchiveName
from logrelay.schemas import ArchiveDeleted, ArchivesCleared

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["archives"])


def _locate(archives: ArchiveStore, name: str) -> Path:
    try:
        return archives.path_for(name)
    except InvalidArchiveName:
        logger.warning("Rejected archive name %r", name)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid filename")
    except ArchiveNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")


@router.get("/archives", response_model=list[str])
async def list_archives(archives: ArchiveStore = Depends(get_archive_store)) -> list[str]:
    try:
        return archives.list_snapshots()
    except ArchiveError:
        logger.exception("Error listing archives")
        raise HTTPException(status_code=500, detail="Unable to list archives")


@router.post("/archives/clear", response_model=ArchivesCleared)
async def clear_archives(archives: ArchiveStore = Depends(get_archive_store)) -> ArchivesCleared:
    try:
        deleted = archives.delete_all()
    except ArchiveError:
        logger.exception("Error clearing archives")
        raise HTTPException(status_code=500, detail="Failed to clear archives")
    logger.info("Cleared %d archives", len(deleted))
    return ArchivesCleared(deleted=deleted)


@router.delete("/archives/{name:path}", response_model=ArchiveDeleted)
async def delete_archive(
    name: str,
    archives: ArchiveStore = Depends(get_archive_store),
) -> ArchiveDeleted:
    try:
        deleted = archives.delete(name)
    except InvalidArchiveName:
        logger.warning("Rejected archive name %r", name)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid filename")
    except ArchiveNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    except ArchiveError:
        logger.exception("Error deleting archive %s", name)
        raise HTTPException(status_code=500, detail="Failed to delete archive")
    logger.info("Deleted archive %s", deleted)
    return ArchiveDeleted(deleted=deleted)


@router.get("/download/{name:path}")
async def download_archive(
    name: str,
    archives: ArchiveStore = Depends(get_archive_store),
) -> FileResponse:
    full = _locate(archives, name)
    return FileResponse(
        full,
        media_type="application/json",
        filename=full.name,
        content_disposition_type="attachment",
    )
