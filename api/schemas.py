"""API request and response schemas using Pydantic."""

from __future__ import annotations

from pydantic import BaseModel

from core.storage.catalog import MediaAsset


class VideoSummary(BaseModel):
    """Entry of the catalog listing."""

    id: int
    title: str
    thumbnail: str | None = None
    thumbnail_url: str
    stream_url: str

    @classmethod
    def from_asset(cls, asset: MediaAsset) -> VideoSummary:
        return cls(
            id=asset.id,
            title=asset.title,
            thumbnail=asset.thumbnail,
            thumbnail_url=thumbnail_url(asset.id),
            stream_url=stream_url(asset.id),
        )


class VideoDetail(VideoSummary):
    """Full catalog record with access URLs."""

    filename: str
    size_bytes: int
    created_at: str

    @classmethod
    def from_asset(cls, asset: MediaAsset) -> VideoDetail:
        return cls(
            **asset.to_dict(),
            thumbnail_url=thumbnail_url(asset.id),
            stream_url=stream_url(asset.id),
        )


def stream_url(asset_id: int) -> str:
    return f"/api/videos/{asset_id}/stream"


def thumbnail_url(asset_id: int) -> str:
    return f"/api/videos/{asset_id}/thumb"
