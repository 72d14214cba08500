"""Identifier pool generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from common.models.config import PoolConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentifierPool:
    """Ordered, read-only run of identifiers 1..N."""
    name: str
    values: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, value: object) -> bool:
        return value in self.values


def generate_pool(name: str, size: int) -> IdentifierPool:
    """Build the pool 1..size."""
    if size < 1:
        raise ValueError(f"Pool {name} must hold at least one identifier, got {size}")
    return IdentifierPool(name=name, values=tuple(range(1, size + 1)))


def build_pools(config: PoolConfig) -> tuple[IdentifierPool, IdentifierPool]:
    """Build the user and item pools."""
    users = generate_pool("users", config.user_pool_size)
    items = generate_pool("items", config.item_pool_size)
    logger.info(f"Setup completed: pools generated (users={len(users)}, items={len(items)})")
    return users, items
