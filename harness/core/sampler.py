"""Per-iteration identifier sampling."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Optional

from common.models.run import CheckoutRequest

if TYPE_CHECKING:
    from harness.core.scenario import RunContext


class RequestSampler:
    """Draw one user and one item, independently and uniformly."""

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else random.Random(seed)

    def sample(self, context: RunContext) -> CheckoutRequest:
        return CheckoutRequest(
            user_id=self.rng.choice(context.users.values),
            item_id=self.rng.choice(context.items.values),
        )
