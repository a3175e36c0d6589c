"""
security/rate_limiter.py
-------------------------
Rate limiting to prevent API abuse.
Limits the number of requests an owner can send within a time window.
"""

import threading
import time
from collections import defaultdict

from fastapi import Depends, HTTPException, Request

from config import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_SECONDS
from security.auth import current_owner
from utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding-window request counter per owner.

    Configuration (via .env):
        RATE_LIMIT_REQUESTS: Max requests per window (default: 120).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).
    """

    def __init__(self, max_requests: int = RATE_LIMIT_REQUESTS, window_seconds: float = RATE_LIMIT_WINDOW_SECONDS):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        # {owner_id: [timestamp1, timestamp2, ...]}
        self._timestamps: dict[int, list[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def _cleanup(self, owner_id: int, now: float) -> None:
        """Remove expired timestamps for an owner."""
        cutoff = now - self.window_seconds
        self._timestamps[owner_id] = [t for t in self._timestamps[owner_id] if t > cutoff]

    def allow(self, owner_id: int) -> bool:
        """Record one request; False when the owner is over the limit."""
        now = time.monotonic()
        with self._lock:
            self._cleanup(owner_id, now)
            if len(self._timestamps[owner_id]) >= self.max_requests:
                return False
            self._timestamps[owner_id].append(now)
            return True


def rate_limited(request: Request, owner_id: int = Depends(current_owner)) -> int:
    """
    FastAPI dependency: authenticates the owner, then enforces the limit
    held by ``app.state.rate_limiter``.

    Returns:
        The owner id, so routes can depend on this instead of current_owner.
    """
    limiter: RateLimiter = request.app.state.rate_limiter
    if not limiter.allow(owner_id):
        logger.warning(f"⚠️ Rate limit hit for owner {owner_id}")
        raise HTTPException(status_code=429, detail="Too many requests, slow down and try again.")
    return owner_id
