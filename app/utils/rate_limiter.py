"""
Rate limiting for API endpoints
"""
import time
from collections import defaultdict, deque
from fastapi import Request, HTTPException
from typing import Deque, Dict
import logging

from app.config import settings
from app.utils.identity import USER_ID_HEADER

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


class RateLimiter:
    """
    In-memory sliding-window rate limiter keyed by caller

    Autosave traffic is one request per 30s per open session, well under
    the default limits.
    """

    def __init__(self, requests_per_minute: int = 120, requests_per_hour: int = 3000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        # {client_id: timestamps of accepted requests}
        self.minute_tracker: Dict[str, Deque[float]] = defaultdict(deque)
        self.hour_tracker: Dict[str, Deque[float]] = defaultdict(deque)

    def _get_client_id(self, request: Request) -> str:
        """Caller identity if forwarded by the gateway, else client IP"""
        user_id = request.headers.get(USER_ID_HEADER)
        if user_id:
            return f"user:{user_id}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _cleanup_old_entries(self, tracker: Dict[str, Deque[float]], cutoff: float) -> None:
        """Drop timestamps older than the window, and callers left with none"""
        for client_id in list(tracker.keys()):
            window = tracker[client_id]
            while window and window[0] <= cutoff:
                window.popleft()

            # Remove empty entries
            if not window:
                del tracker[client_id]

    def _reject(self, client_id: str, limit: int, unit: str, retry_after: int):
        logger.warning(f"Rate limit exceeded ({unit}): {client_id}")
        raise HTTPException(
            status_code=429,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Limit: {limit} requests per {unit}",
                "retry_after": retry_after
            }
        )

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        now = time.time()

        self._cleanup_old_entries(self.minute_tracker, now - 60)
        self._cleanup_old_entries(self.hour_tracker, now - 3600)

        minute_window = self.minute_tracker[client_id]
        hour_window = self.hour_tracker[client_id]

        if len(minute_window) >= self.requests_per_minute:
            self._reject(client_id, self.requests_per_minute, "minute", 60)
        if len(hour_window) >= self.requests_per_hour:
            self._reject(client_id, self.requests_per_hour, "hour", 3600)

        minute_window.append(now)
        hour_window.append(now)

    def reset(self) -> None:
        self.minute_tracker.clear()
        self.hour_tracker.clear()


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
