"""API dependency injection components."""

import secrets

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from config import Settings
from core.storage.catalog import CatalogStore
from core.storage.media_store import MediaStore
from core.streaming.range import RangeStreamer
from core.utils.logger import logger

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_settings(request: Request) -> Settings:
    """Retrieve the settings the app was built with."""
    return request.app.state.settings


def get_catalog(request: Request) -> CatalogStore | None:
    """Retrieve the catalog store from app state."""
    return getattr(request.app.state, "catalog", None)


def get_media_store(request: Request) -> MediaStore | None:
    """Retrieve the media store from app state."""
    return getattr(request.app.state, "media_store", None)


def get_streamer(request: Request) -> RangeStreamer:
    """Retrieve the singleton RangeStreamer from app state."""
    return request.app.state.streamer


def require_operator(
    api_key: str | None = Security(api_key_header),
    settings: Settings = Depends(get_settings),
) -> None:
    """Gate for operator-only routes.

    Raises:
        HTTPException: 503 when no key is configured, 401 on a missing or
            wrong key.
    """
    expected = settings.operator_api_key
    if expected is None:
        raise HTTPException(status_code=503, detail="Operator access not configured")
    if not api_key or not secrets.compare_digest(
        api_key.encode(), expected.get_secret_value().encode()
    ):
        logger.warning("Rejected operator request with missing or invalid API key")
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "APIKey"},
        )
