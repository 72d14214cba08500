"""In-memory checkout state for the mock server."""

from __future__ import annotations

import asyncio
import logging
import random
import string
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

_ALPHANUM = string.ascii_letters + string.digits


class CheckoutResult(str, Enum):
    """Outcome of a checkout attempt."""
    OK = "ok"
    UNAVAILABLE = "unavailable"
    LIMIT_EXCEEDED = "limit_exceeded"
    FAILED = "failed"


class CheckoutStore:
    """Tracks which items are checked out and how many checkouts each user made."""

    def __init__(
        self,
        purchases_limit: int = 10,
        error_ratio: float = 0.0,
        reserve_items: bool = True,
        code_len: int = 8,
        rng: Optional[random.Random] = None,
    ):
        self.purchases_limit = purchases_limit
        self.error_ratio = error_ratio
        self.reserve_items = reserve_items
        self.code_len = code_len
        self.rng = rng or random.Random()

        self._lock = asyncio.Lock()
        self._checked_out: dict[int, str] = {}
        self._user_checkouts: dict[int, int] = {}
        self._counts = {result.value: 0 for result in CheckoutResult}

    def generate_code(self, user_id: int, item_id: int) -> str:
        """Checkout code in ``user:item:random`` form."""
        suffix = "".join(self.rng.choice(_ALPHANUM) for _ in range(self.code_len))
        return f"{user_id}:{item_id}:{suffix}"

    async def checkout(self, user_id: int, item_id: int) -> tuple[CheckoutResult, Optional[str]]:
        """Reserve ``item_id`` for ``user_id``."""
        async with self._lock:
            if self.error_ratio and self.rng.random() < self.error_ratio:
                result, code = CheckoutResult.FAILED, None
            elif self.reserve_items and item_id in self._checked_out:
                result, code = CheckoutResult.UNAVAILABLE, None
            elif self._user_checkouts.get(user_id, 0) >= self.purchases_limit:
                result, code = CheckoutResult.LIMIT_EXCEEDED, None
            else:
                code = self.generate_code(user_id, item_id)
                if self.reserve_items:
                    self._checked_out[item_id] = code
                self._user_checkouts[user_id] = self._user_checkouts.get(user_id, 0) + 1
                result = CheckoutResult.OK

            self._counts[result.value] += 1

        return result, code

    def stats(self) -> dict:
        return {
            "checked_out_items": len(self._checked_out),
            "users": len(self._user_checkouts),
            "results": dict(self._counts),
            "total": sum(self._counts.values()),
        }

    def reset(self) -> None:
        self._checked_out.clear()
        self._user_checkouts.clear()
        self._counts = {result.value: 0 for result in CheckoutResult}
        logger.info("Checkout store reset")
