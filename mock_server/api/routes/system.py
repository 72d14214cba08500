"""System endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from mock_server.config import get_settings
from mock_server.dependencies import get_store

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health."""
    return {"status": "healthy"}


@router.get("/stats")
async def get_stats():
    """Checkout counters since start or last reset."""
    return get_store().stats()


@router.post("/reset")
async def reset():
    """Forget all checkouts."""
    get_store().reset()
    return {"status": "reset"}


@router.get("/config")
async def get_config():
    """Get server configuration."""
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "app_version": settings.app_version,
        "error_ratio": settings.error_ratio,
        "purchases_limit": settings.purchases_limit,
        "reserve_items": settings.reserve_items,
        "latency_ms": settings.latency_ms,
    }
