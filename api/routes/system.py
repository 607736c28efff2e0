"""Health check route."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from api.deps import get_catalog, get_media_store, get_settings
from config import Settings
from core.storage.catalog import CatalogStore
from core.storage.media_store import MediaStore

router = APIRouter()


@router.get("/health")
async def health(
    catalog: Annotated[CatalogStore | None, Depends(get_catalog)],
    store: Annotated[MediaStore | None, Depends(get_media_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "catalog": "open" if catalog and catalog.is_open else "closed",
        "storage": "ready" if store else "unavailable",
        "missing_range_policy": settings.missing_range_policy.value,
        "operator_gate": settings.operator_gate_enabled,
    }
