"""FastAPI application factory.

Creates the app with CORS, routers, error handlers, and OpenAPI metadata.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rewriter.exceptions import (
    EvidenceBuildError,
    GenerationUnavailableError,
    InvalidInputError,
    RewriteEngineError,
)

from .routers import rewrite

logger = logging.getLogger(__name__)

# Map engine exceptions to HTTP status codes
EXCEPTION_STATUS_MAP = {
    InvalidInputError: 422,
    EvidenceBuildError: 422,
    GenerationUnavailableError: 503,
}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Anchor rewrite API starting")
        yield

    app = FastAPI(
        title="Anchor Rewrite API",
        description="Evidence-anchored rewriting of resume bullets, summaries and sections",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS: allow localhost on any port
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"https?://localhost(:\d+)?",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rewrite.router, prefix="/api/v1", tags=["Rewrite"])

    # Global exception handler for engine errors
    @app.exception_handler(RewriteEngineError)
    async def rewrite_engine_error_handler(request: Request, exc: RewriteEngineError):
        status_code = EXCEPTION_STATUS_MAP.get(type(exc), 500)
        if status_code >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.code, "details": exc.details},
        )

    @app.get("/health", tags=["System"])
    async def health():
        return {"status": "ok"}

    return app
