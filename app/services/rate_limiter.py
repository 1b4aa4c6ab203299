"""
Rate limiting for booking writes
- Short-term: per-IP sliding window (default 5 requests per 10 seconds)
- Monthly: global API usage ceiling, read through a short-lived cache
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List, Mapping, Optional
from config.config import Config
from app.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_CLIENT_IP = 'unknown'


@dataclass(frozen=True)
class MonthlyLimitStatus:
    exceeded: bool
    current: int
    limit: int
    percent_used: float


class RateLimiter:
    """Process-local throttle; no coordination across instances"""

    def __init__(self, usage_provider: Optional[Callable[[], int]] = None,
                 monthly_limit: int = None,
                 window_seconds: float = None,
                 max_requests: int = None,
                 cleanup_interval_seconds: float = None,
                 cache_ttl_seconds: float = None,
                 clock: Callable[[], float] = time.time):
        self.usage_provider = usage_provider
        self.monthly_limit = monthly_limit if monthly_limit is not None else Config.USAGE_ALERT_THRESHOLD
        self.window_seconds = window_seconds if window_seconds is not None else Config.RATE_LIMIT_WINDOW_SECONDS
        self.max_requests = max_requests if max_requests is not None else Config.RATE_LIMIT_MAX_REQUESTS
        self.cleanup_interval_seconds = (
            cleanup_interval_seconds if cleanup_interval_seconds is not None
            else Config.RATE_LIMIT_CLEANUP_INTERVAL_SECONDS
        )
        self.cache_ttl_seconds = (
            cache_ttl_seconds if cache_ttl_seconds is not None
            else Config.MONTHLY_USAGE_CACHE_TTL_SECONDS
        )
        self.clock = clock

        self._lock = Lock()
        self._request_timestamps: Dict[str, List[float]] = {}
        self._last_cleanup = clock()
        self._monthly_cache: Optional[tuple] = None  # (total, fetched_at)

    def _cleanup_old_entries(self, now: float):
        """Drop IPs with no timestamps inside the window (caller holds the lock)"""
        if now - self._last_cleanup < self.cleanup_interval_seconds:
            return

        self._last_cleanup = now
        cutoff = now - self.window_seconds
        for ip in list(self._request_timestamps.keys()):
            recent = [t for t in self._request_timestamps[ip] if t > cutoff]
            if recent:
                self._request_timestamps[ip] = recent
            else:
                del self._request_timestamps[ip]

    def is_short_term_limited(self, ip: str) -> bool:
        """True if the request should be blocked; otherwise records it"""
        with self._lock:
            now = self.clock()
            self._cleanup_old_entries(now)

            cutoff = now - self.window_seconds
            recent = [t for t in self._request_timestamps.get(ip, []) if t > cutoff]

            if len(recent) >= self.max_requests:
                self._request_timestamps[ip] = recent
                logger.warning(f"Short-term rate limit exceeded for {ip}")
                return True

            recent.append(now)
            self._request_timestamps[ip] = recent
            return False

    def check_monthly_limit(self) -> MonthlyLimitStatus:
        """Compare this month's usage total against the ceiling"""
        now = self.clock()
        with self._lock:
            cached = self._monthly_cache
        if cached and now - cached[1] < self.cache_ttl_seconds:
            total = cached[0]
        else:
            total = self.usage_provider() if self.usage_provider else 0
            with self._lock:
                self._monthly_cache = (total, now)

        percent_used = (total / self.monthly_limit) * 100 if self.monthly_limit else 100.0
        exceeded = total >= self.monthly_limit
        if exceeded:
            logger.warning(f"Monthly API usage limit reached: {total}/{self.monthly_limit}")
        return MonthlyLimitStatus(exceeded, total, self.monthly_limit, percent_used)

    def invalidate_monthly_cache(self):
        """Force the next monthly check to read fresh usage"""
        with self._lock:
            self._monthly_cache = None

    def get_status(self, ip: str) -> Dict:
        """Current short-term usage for an IP (monitoring)"""
        with self._lock:
            cutoff = self.clock() - self.window_seconds
            recent = [t for t in self._request_timestamps.get(ip, []) if t > cutoff]
        return {
            'requests_in_window': len(recent),
            'max_requests': self.max_requests,
            'window_seconds': self.window_seconds,
        }

    def tracked_ips(self) -> int:
        with self._lock:
            return len(self._request_timestamps)

    def reset(self):
        """Clear all state"""
        with self._lock:
            self._request_timestamps.clear()
            self._monthly_cache = None
            self._last_cleanup = self.clock()


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Client IP from proxy headers; unidentifiable clients share one bucket"""
    forwarded = headers.get('X-Forwarded-For')
    if forwarded:
        first = forwarded.split(',')[0].strip()
        if first:
            return first

    return headers.get('X-Real-IP') or UNKNOWN_CLIENT_IP
