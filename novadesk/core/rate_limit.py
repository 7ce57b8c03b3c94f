import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter

from novadesk.core.exceptions import RateLimitError

NAMESPACE = "novadesk-admin"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float  # seconds until the oldest counted request leaves the window

    def headers(self) -> Dict[str, str]:
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(math.ceil(self.reset_after)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(math.ceil(self.reset_after))
        return headers


class SlidingWindowRateLimiter:
    """
    At most `limit` accepted requests per client within the trailing
    `window_seconds`, using the moving-window strategy from `limits`.
    Rejected requests are not counted. The default MemoryStorage keeps state
    in this process only and drops expired entries on its own.
    """

    def __init__(self, limit: int = 100, window_seconds: int = 15 * 60,
                 storage: Optional[Storage] = None):
        self.limit = limit
        self.window_seconds = int(window_seconds)
        self.item = RateLimitItemPerSecond(limit, self.window_seconds)
        self.storage = storage or MemoryStorage()
        self.strategy = MovingWindowRateLimiter(self.storage)

    def hit(self, client_key: str) -> RateLimitDecision:
        allowed = self.strategy.hit(self.item, NAMESPACE, client_key)
        stats = self.strategy.get_window_stats(self.item, NAMESPACE, client_key)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, stats.remaining),
            reset_after=max(0.0, stats.reset_time - time.time()),
        )

    def check(self, client_key: str) -> RateLimitDecision:
        """Like hit(), but raises RateLimitError when the client is over the limit."""
        decision = self.hit(client_key)
        if not decision.allowed:
            raise RateLimitError(decision)
        return decision

    def reset(self) -> None:
        self.storage.reset()
