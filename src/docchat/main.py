"""FastAPI application factory."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from docchat.api import chat_router, retrieval_router, vectorization_router
from docchat.config import get_settings
from docchat.dependencies import get_database
from docchat.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_dir, settings.log_level)
    database = app.dependency_overrides.get(get_database, get_database)()
    await database.create_all()
    LOGGER.info("docchat started with %s embeddings", settings.embedding_provider)
    try:
        yield
    finally:
        await database.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="docchat", lifespan=lifespan)
    app.include_router(vectorization_router)
    app.include_router(retrieval_router)
    app.include_router(chat_router)

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthcheck() -> str:
        """Liveness check."""
        return "ok"

    return app


app = create_app()
