"""API routes for catalog records (listing, uploads, edits, thumbnails)."""

from pathlib import Path
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Response,
    UploadFile,
)
from fastapi.responses import FileResponse

from api.deps import get_catalog, get_media_store, get_settings, require_operator
from api.schemas import VideoDetail, VideoSummary
from config import Settings
from core.errors import DatabaseError, FileMissingError, StorageError, UploadError
from core.storage.catalog import CatalogStore
from core.storage.media_store import MediaStore
from core.utils.logger import logger

router = APIRouter(prefix="/api/videos", tags=["videos"])


def _ready(
    catalog: CatalogStore | None, store: MediaStore | None
) -> tuple[CatalogStore, MediaStore]:
    if not catalog or not catalog.is_open or not store:
        raise HTTPException(status_code=503, detail="Catalog not ready")
    return catalog, store


def _check_extension(upload: UploadFile, allowed: set[str], kind: str) -> None:
    suffix = Path(upload.filename or "").suffix.lower()
    if suffix not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported {kind} type '{suffix or upload.filename}'",
        )


def _has_file(upload: UploadFile | None) -> bool:
    return upload is not None and bool(upload.filename)


@router.get("")
async def list_videos(
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
) -> list[VideoSummary]:
    """List all videos, newest first."""
    catalog, _ = _ready(catalog, store)
    try:
        assets = catalog.list_assets()
    except DatabaseError as e:
        logger.error(f"[Videos] List failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return [VideoSummary.from_asset(a) for a in assets]


@router.get("/{video_id}")
async def get_video(
    video_id: int,
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
) -> VideoDetail:
    """Get one video's metadata.

    Args:
        video_id: Catalog id of the video.

    Returns:
        The full record plus its stream and thumbnail URLs.
    """
    catalog, _ = _ready(catalog, store)
    asset = catalog.get(video_id)
    if asset is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return VideoDetail.from_asset(asset)


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(require_operator)],
)
def create_video(
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    title: Annotated[str, Form()] = "",
    video: Annotated[UploadFile | None, File()] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
) -> VideoDetail:
    """Upload a video (and optional thumbnail) and add it to the catalog.

    Args:
        title: Display title, required.
        video: The video file, required.
        thumbnail: Optional still image.

    Returns:
        The created record.

    Raises:
        HTTPException: 400 when the title or video is missing or a file type
            is not allowed.
    """
    catalog, store = _ready(catalog, store)
    title = title.strip()
    if not title or not _has_file(video):
        raise HTTPException(status_code=400, detail="Title and video required")

    _check_extension(video, settings.allowed_video_extensions, "video")
    if _has_file(thumbnail):
        _check_extension(thumbnail, settings.allowed_thumbnail_extensions, "thumbnail")

    filename = thumb_name = None
    try:
        filename, size = store.save_video(video.filename, video.file)
        if _has_file(thumbnail):
            thumb_name = store.save_thumbnail(thumbnail.filename, thumbnail.file)
        asset = catalog.add(title, filename, thumb_name, size)
    except (UploadError, StorageError, DatabaseError) as e:
        # Leave no orphaned files behind a failed insert
        if filename:
            store.delete_video(filename)
        store.delete_thumbnail(thumb_name)
        logger.error(f"[Videos] Upload of {video.filename!r} failed: {e}")
        status = 400 if isinstance(e, UploadError) else 500
        raise HTTPException(status_code=status, detail=str(e)) from e

    return VideoDetail.from_asset(asset)


@router.put("/{video_id}", dependencies=[Depends(require_operator)])
def update_video(
    video_id: int,
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    title: Annotated[str | None, Form()] = None,
    video: Annotated[UploadFile | None, File()] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
) -> VideoDetail:
    """Edit a video's title and optionally replace its files.

    Replaced files are deleted from storage once the record points at the
    new ones.
    """
    catalog, store = _ready(catalog, store)
    asset = catalog.get(video_id)
    if asset is None:
        raise HTTPException(status_code=404, detail="Video not found")

    if _has_file(video):
        _check_extension(video, settings.allowed_video_extensions, "video")
    if _has_file(thumbnail):
        _check_extension(thumbnail, settings.allowed_thumbnail_extensions, "thumbnail")

    changes: dict = {}
    if title is not None and title.strip():
        changes["title"] = title.strip()

    try:
        if _has_file(video):
            changes["filename"], changes["size_bytes"] = store.save_video(
                video.filename, video.file
            )
        if _has_file(thumbnail):
            changes["thumbnail"] = store.save_thumbnail(thumbnail.filename, thumbnail.file)
        updated = catalog.update(video_id, **changes)
    except (UploadError, StorageError, DatabaseError) as e:
        _discard_new_files(store, changes)
        logger.error(f"[Videos] Update of video {video_id} failed: {e}")
        status = 400 if isinstance(e, UploadError) else 500
        raise HTTPException(status_code=status, detail=str(e)) from e

    if updated is None:
        # Record deleted concurrently; the old files went with it
        _discard_new_files(store, changes)
        raise HTTPException(status_code=404, detail="Video not found")

    if "filename" in changes:
        store.delete_video(asset.filename)
    if "thumbnail" in changes:
        store.delete_thumbnail(asset.thumbnail)
    return VideoDetail.from_asset(updated)


def _discard_new_files(store: MediaStore, changes: dict) -> None:
    if "filename" in changes:
        store.delete_video(changes["filename"])
    store.delete_thumbnail(changes.get("thumbnail"))


@router.delete(
    "/{video_id}",
    status_code=204,
    dependencies=[Depends(require_operator)],
)
def delete_video(
    video_id: int,
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
) -> Response:
    """Remove a video record together with its files."""
    catalog, store = _ready(catalog, store)
    asset = catalog.get(video_id)
    if asset is None:
        raise HTTPException(status_code=404, detail="Video not found")

    catalog.delete(video_id)
    try:
        store.delete_video(asset.filename)
        store.delete_thumbnail(asset.thumbnail)
    except StorageError as e:
        logger.error(f"[Videos] Video {video_id} deleted but its files remain: {e}")
    return Response(status_code=204)


@router.get("/{video_id}/thumb")
async def get_thumbnail(
    video_id: int,
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
) -> FileResponse:
    """Serve a video's thumbnail image."""
    catalog, store = _ready(catalog, store)
    asset = catalog.get(video_id)
    if asset is None or not asset.thumbnail:
        raise HTTPException(status_code=404, detail="Thumbnail not found")

    try:
        path = store.thumbnail_path(asset.thumbnail)
    except FileMissingError as e:
        raise HTTPException(status_code=404, detail="Thumbnail missing") from e
    if not path.is_file():
        logger.error(f"[Videos] Thumbnail {asset.thumbnail} of video {video_id} is missing")
        raise HTTPException(status_code=404, detail="Thumbnail missing")
    return FileResponse(path)
