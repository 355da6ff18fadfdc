import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube.api import api_router
from vidtube.clients.media_client import CloudinaryClient, MediaUploader
from vidtube.core.config import AppSettings, Settings
from vidtube.core.errors import ApiError, ServiceUnavailableError
from vidtube.core.responses import (
    api_error_handler,
    http_exception_handler,
    request_validation_handler,
    respond,
    unhandled_exception_handler,
)
from vidtube.db.database import create_store, get_store, init_store
from vidtube.db.store import DocumentStore


def get_app_settings() -> Settings:
    try:
        return Settings.load()
    except Exception as e:
        logger.error(f"Error loading settings: {e}")
        raise


def setup_logging(settings: AppSettings):
    logger.remove()
    logger.add(sys.stderr, level=settings.app_log_level.value.upper(), format=settings.log_format)
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.app_log_level.value.upper(),
            rotation=settings.log_rotation,
            compression=settings.log_compression.value,
            format=settings.log_format,
        )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    media: Optional[MediaUploader] = None,
) -> FastAPI:
    settings = settings or get_app_settings()
    setup_logging(settings.app)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = await init_store(store if store is not None else create_store(settings.store))
        app.state.media = media if media is not None else CloudinaryClient(settings.media)
        logger.info(f"{settings.app.app_name} started")
        try:
            yield
        finally:
            await app.state.media.close()
            await app.state.store.close()
            logger.info(f"{settings.app.app_name} stopped")

    app = FastAPI(
        title=settings.app.app_name,
        description="API for a video sharing platform",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/")
    def read_root():
        return respond({"name": settings.app.app_name}, "Welcome to VidTube")

    @app.get("/health")
    async def health_check(store: DocumentStore = Depends(get_store)):
        if not await store.ping():
            raise ServiceUnavailableError("Document store is unreachable.")
        return respond({"status": "ok"}, "Healthy")

    app.include_router(api_router, prefix=settings.app.api_prefix)

    return app


if __name__ == "__main__":
    app_settings = AppSettings()
    uvicorn.run(
        "vidtube.main:create_app",
        factory=True,
        host=app_settings.app_host,
        port=app_settings.app_port,
        reload=app_settings.app_reload,
    )
