"""API routes for byte-range video streaming."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from api.deps import (
    get_catalog,
    get_media_store,
    get_streamer,
    require_operator,
)
from core.errors import (
    FileMissingError,
    MalformedRangeError,
    RangeRequiredError,
    StorageError,
    UnsatisfiableRangeError,
)
from core.storage.catalog import CatalogStore
from core.storage.media_store import MediaStore
from core.streaming.range import RangeStreamer, media_type_for
from core.utils.logger import logger

router = APIRouter()


async def stream_video(
    video_id: int,
    request: Request,
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
    streamer: Annotated[RangeStreamer, Depends(get_streamer)],
) -> Response:
    """Streams one window of a catalog video in answer to a Range request.

    Args:
        video_id: Catalog id of the video.
        request: The incoming HTTP request containing the Range header.
        catalog: Catalog store holding the video record.
        store: Media store holding the video file.
        streamer: Shared range streamer.

    Returns:
        A 206 partial-content response streaming the window.

    Raises:
        HTTPException: 404 for unknown videos or missing files, 400 when the
            Range header is required but absent, 416 for unsatisfiable ranges.
    """
    if not catalog or not catalog.is_open or not store:
        raise HTTPException(status_code=503, detail="Catalog not ready")

    asset = catalog.get(video_id)
    if asset is None:
        raise HTTPException(status_code=404, detail="Video not found")

    try:
        media = store.open_video(asset.filename)
    except FileMissingError as e:
        logger.error(
            f"[Stream] Video {video_id} is catalogued but {asset.filename} is missing from storage"
        )
        raise HTTPException(status_code=404, detail="File missing") from e
    except StorageError as e:
        logger.error(f"[Stream] Cannot open video {video_id}: {e}")
        raise HTTPException(status_code=500, detail="Cannot read video") from e

    if asset.size_bytes and asset.size_bytes != media.size:
        logger.warning(
            f"[Stream] Video {video_id} recorded as {asset.size_bytes} bytes "
            f"but storage holds {media.size}, using the stored size"
        )

    try:
        return streamer.serve(
            request.headers.get("range"),
            media.size,
            media.byte_range,
            media_type=media_type_for(asset.filename),
        )
    except RangeRequiredError as e:
        media.close()
        raise HTTPException(status_code=400, detail="Requires Range header") from e
    except (UnsatisfiableRangeError, MalformedRangeError) as e:
        media.close()
        raise HTTPException(
            status_code=416,
            detail="Range Not Satisfiable",
            headers={"Content-Range": f"bytes */{e.file_size}"},
        ) from e
    except Exception:
        media.close()
        raise


router.add_api_route(
    "/api/videos/{video_id}/stream",
    stream_video,
    methods=["GET"],
    response_model=None,
    tags=["stream"],
)

# Same handler behind the operator gate
router.add_api_route(
    "/api/operator/videos/{video_id}/stream",
    stream_video,
    methods=["GET"],
    response_model=None,
    dependencies=[Depends(require_operator)],
    tags=["stream", "operator"],
)
