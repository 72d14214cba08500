"""Checkout endpoint."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, HTTPException

from mock_server.config import get_settings
from mock_server.dependencies import get_store
from mock_server.store import CheckoutResult

router = APIRouter()


def _parse_id(name: str, raw: Optional[str]) -> int:
    try:
        value = int(raw or "")
    except ValueError:
        raise HTTPException(status_code=400, detail=f"can't parse {name}: {raw!r}")
    if value == 0:
        raise HTTPException(status_code=400, detail=f"invalid {name}: 0")
    return value


@router.post("/checkout")
async def checkout(user_id: Optional[str] = None, item_id: Optional[str] = None):
    """Reserve an item for a user and return a checkout code."""
    user = _parse_id("user_id", user_id)
    item = _parse_id("item_id", item_id)

    latency_ms = get_settings().latency_ms
    if latency_ms:
        await asyncio.sleep(latency_ms / 1000)

    result, code = await get_store().checkout(user, item)

    if result == CheckoutResult.UNAVAILABLE:
        raise HTTPException(
            status_code=409,
            detail="item unavailable: either because it's already checked out or because the sale is not active",
        )
    if result == CheckoutResult.LIMIT_EXCEEDED:
        raise HTTPException(status_code=429, detail="purchases limit exceeded")
    if result == CheckoutResult.FAILED:
        raise HTTPException(status_code=500, detail="can't checkout item")

    return {"code": code}
