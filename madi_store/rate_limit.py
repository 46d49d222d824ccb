import logging
import math
import time
from typing import Callable, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

class FixedWindowRateLimiter:
    """Counts hits per key in fixed windows that start at each key's first hit."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}

    def _sweep(self, now: float) -> None:
        expired = [key for key, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]

    def hit(self, key: str) -> Tuple[bool, int, int]:
        """
        Records one request for `key`.

        Returns:
            (allowed, remaining requests in the window, seconds until the window resets)
        """
        now = self.clock()
        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            self._sweep(now)
            start, count = now, 0
        count += 1
        self._windows[key] = (start, count)
        reset_in = max(0, math.ceil(start + self.window_seconds - now))
        return count <= self.max_requests, max(0, self.max_requests - count), reset_in

class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: FixedWindowRateLimiter, path_prefix: str = "/api/", message: str = "Too many requests"):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix
        self.message = message

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, remaining, reset_in = self.limiter.hit(client_ip)
        headers = {
            "RateLimit-Limit": str(self.limiter.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(reset_in),
        }
        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s", client_ip, request.url.path)
            headers["Retry-After"] = str(reset_in)
            return JSONResponse({"error": self.message}, status_code=429, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
