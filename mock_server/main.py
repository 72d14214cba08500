"""Mock Checkout Server - stand-in target for load runs."""

from __future__ import annotations

import logging
import random
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mock_server.config import get_settings
from mock_server.dependencies import set_store
from mock_server.store import CheckoutStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    try:
        yield
    finally:
        logger.info("Mock server shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    store = CheckoutStore(
        purchases_limit=settings.purchases_limit,
        error_ratio=settings.error_ratio,
        reserve_items=settings.reserve_items,
        code_len=settings.checkout_code_len,
        rng=random.Random(settings.seed),
    )
    set_store(store)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="In-memory checkout endpoint for load testing",
        lifespan=lifespan,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error": str(exc)},
        )

    from mock_server.api.routes import checkout, system

    app.include_router(checkout.router, tags=["Checkout"])
    app.include_router(system.router, tags=["System"])

    return app


def main():
    """Entry point for running the mock server."""
    settings = get_settings()

    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(f"Starting mock server on {settings.host}:{settings.port}")

    uvicorn.run(
        create_app(),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
