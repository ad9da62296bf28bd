"""FastAPI application configuration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..domain.errors import LnurlError
from ..infrastructure.repositories import register_lnurl_scripts
from .dependencies import (
    get_background_jobs,
    get_chain_client,
    get_database_client_dependency,
    get_lightning_client,
    get_settings_dependency,
    get_store_dependency,
)
from .routers import admin, auth, channel, generate, pay, well_known, withdraw

logger = logging.getLogger(__name__)

settings = get_settings_dependency()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await get_database_client_dependency().ping()
    await register_lnurl_scripts(get_store_dependency())
    jobs = get_background_jobs()
    jobs.start()
    logger.info("%s listening for %s", settings.app_name, settings.domain)
    try:
        yield
    finally:
        await jobs.stop()
        await get_lightning_client().aclose()
        await get_chain_client().aclose()
        await get_database_client_dependency().close()


def _error_response(status_code: int, reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"status": "ERROR", "reason": reason}
    )


async def lnurl_error_handler(request: Request, exc: LnurlError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.reason)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.reason)
    return _error_response(exc.status_code, exc.reason)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "query")
        reason = f"Invalid {location} parameter" if location else first.get("msg", "")
    else:
        reason = "Invalid request"
    logger.warning("%s %s rejected: %s", request.method, request.url.path, reason)
    return _error_response(400, reason)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LNURL withdraw, pay, channel and auth server",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LnurlError, lnurl_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(withdraw.router)
    app.include_router(pay.router)
    app.include_router(channel.router)
    app.include_router(auth.router)
    app.include_router(generate.router)
    app.include_router(well_known.router)
    app.include_router(admin.router)

    @app.get("/")
    async def root() -> dict[str, object]:
        """Service info."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "domain": settings.domain,
            "docs": "/docs",
            "endpoints": {
                "withdraw": "/withdraw",
                "pay": "/pay/{payment_id}",
                "channel": "/channel",
                "auth": "/auth",
                "generate": "/generate/{type}",
                "lightning_address": "/.well-known/lnurlp/{username}",
                "health": "/health",
            },
        }

    return app


app = create_app()
