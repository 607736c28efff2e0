"""FastAPI application factory and lifecycle for the video catalog."""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.routes import stream, system, videos
from config import Settings, settings as default_settings
from core.storage.catalog import CatalogStore
from core.storage.media_store import MediaStore
from core.streaming.range import RangeStreamer
from core.utils.logger import bind_context, clear_context, logger, setup_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Opens the catalog and storage on startup and closes the catalog on
    shutdown. Handlers reach them through ``app.state``.
    """
    config: Settings = app.state.settings
    setup_logger(config)
    logger.info("startup")

    app.state.media_store = MediaStore.from_settings(config)
    catalog = CatalogStore(config.db_path)
    try:
        catalog.open()
        app.state.catalog = catalog
    except Exception as exc:
        app.state.catalog = None
        logger.error(f"Catalog init failed: {exc}")

    if not config.operator_gate_enabled:
        logger.warning("No operator API key configured; operator routes are disabled")

    yield

    if app.state.catalog:
        app.state.catalog.close()
    logger.info("shutdown")


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or default_settings

    app = FastAPI(
        title="Video Catalog",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.streamer = RangeStreamer.from_settings(config)
    app.state.catalog = None
    app.state.media_store = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length", "X-Trace-Id"],
    )

    @app.middleware("http")
    async def trace_middleware(request: Request, call_next):
        trace_id = request.headers.get("x-trace-id") or uuid4().hex
        bind_context(trace_id=trace_id, component="api")
        try:
            response = await call_next(request)
            response.headers["X-Trace-Id"] = trace_id
            return response
        finally:
            clear_context()

    app.include_router(system.router)
    app.include_router(videos.router)
    app.include_router(stream.router)

    return app


app = create_app()
