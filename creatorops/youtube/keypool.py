"""
YouTube API key pool with per-key quota tracking.

Keys are handed out by remaining quota. A key that hits the daily quota
is marked exhausted and skipped until ``reset_daily_quota`` runs.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .errors import NoApiKeyError, QuotaExhaustedError

logger = logging.getLogger(__name__)

QUOTA_LIMIT_PER_KEY = 10_000  # YouTube Data API daily units
QUOTA_WARNING_THRESHOLD = 0.8
MAX_CONSECUTIVE_ERRORS = 3

STATUS_ACTIVE = "active"
STATUS_LIMITED = "limited"
STATUS_EXHAUSTED = "exhausted"
STATUS_ERROR = "error"
HEALTHY_STATUSES = (STATUS_ACTIVE, STATUS_LIMITED)


@dataclass
class KeyStatus:
    """Usage counters for one API key."""
    key: str
    quota_limit: int = QUOTA_LIMIT_PER_KEY
    quota_used: int = 0
    last_used: float = 0.0
    error_count: int = 0
    status: str = STATUS_ACTIVE

    @property
    def key_prefix(self) -> str:
        return self.key[:8] + "..."

    @property
    def quota_remaining(self) -> int:
        return max(0, self.quota_limit - self.quota_used)

    def to_dict(self) -> dict:
        return {
            "key_prefix": self.key_prefix,
            "quota_used": self.quota_used,
            "quota_limit": self.quota_limit,
            "quota_remaining": self.quota_remaining,
            "error_count": self.error_count,
            "status": self.status,
        }


def parse_api_keys(many: Optional[str], single: Optional[str] = None) -> list[str]:
    """Split a comma-separated key list, falling back to a single key."""
    keys = [k.strip() for k in (many or "").split(",") if k.strip()]
    if keys:
        return keys
    single = (single or "").strip()
    return [single] if single else []


class KeyPool:
    """Hands out API keys and tracks their quota usage."""

    def __init__(
        self,
        keys: Iterable[str],
        quota_per_key: int = QUOTA_LIMIT_PER_KEY,
        clock: Callable[[], float] = time.time,
    ):
        self._clock = clock
        self._status: dict[str, KeyStatus] = {}
        for key in keys:
            if key and key not in self._status:
                self._status[key] = KeyStatus(key=key, quota_limit=quota_per_key)

    def __len__(self) -> int:
        return len(self._status)

    @property
    def keys(self) -> list[str]:
        return list(self._status)

    def status_of(self, key: str) -> KeyStatus:
        return self._status[key]

    def acquire(self, exclude: Iterable[str] = ()) -> str:
        """Return the healthy key with the most remaining quota.

        Ties go to the least recently used key.

        Raises:
            NoApiKeyError: The pool is empty.
            QuotaExhaustedError: No healthy key is left.
        """
        if not self._status:
            raise NoApiKeyError("YOUTUBE_API_KEY(S) is missing")

        skipped = set(exclude)
        available = [
            s for s in self._status.values()
            if s.status in HEALTHY_STATUSES and s.key not in skipped
        ]
        if not available:
            raise QuotaExhaustedError("YouTube API quota exceeded on all keys", 403)

        available.sort(key=lambda s: (-s.quota_remaining, s.last_used))
        return available[0].key

    def release(self, key: str, success: bool = True, cost: int = 1) -> None:
        """Record the outcome of a request made with ``key``."""
        status = self._status.get(key)
        if status is None:
            return

        status.last_used = self._clock()

        if success:
            status.quota_used += cost
            status.error_count = 0
            if status.quota_remaining == 0:
                status.status = STATUS_EXHAUSTED
            elif status.quota_remaining < status.quota_limit * (1 - QUOTA_WARNING_THRESHOLD):
                status.status = STATUS_LIMITED
            else:
                status.status = STATUS_ACTIVE
        else:
            status.error_count += 1
            if status.error_count >= MAX_CONSECUTIVE_ERRORS:
                status.status = STATUS_ERROR
                logger.warning("API key %s disabled after %d errors",
                               status.key_prefix, status.error_count)

    def mark_exhausted(self, key: str) -> None:
        status = self._status.get(key)
        if status is None:
            return
        status.quota_used = status.quota_limit
        status.status = STATUS_EXHAUSTED
        status.last_used = self._clock()
        logger.warning("API key %s quota exhausted", status.key_prefix)

    def reset_daily_quota(self) -> None:
        for status in self._status.values():
            status.quota_used = 0
            status.error_count = 0
            status.status = STATUS_ACTIVE

    def stats(self) -> dict:
        statuses = list(self._status.values())
        return {
            "keys": [s.to_dict() for s in statuses],
            "total_quota_used": sum(s.quota_used for s in statuses),
            "total_quota_limit": sum(s.quota_limit for s in statuses),
            "total_quota_remaining": sum(s.quota_remaining for s in statuses),
            "healthy_key_count": sum(1 for s in statuses if s.status == STATUS_ACTIVE),
        }

    def quota_warning(self) -> tuple[bool, str]:
        """Return (warning, message) describing overall quota health."""
        stats = self.stats()
        if not stats["keys"]:
            return True, "No API keys configured"

        usage = stats["total_quota_used"] / stats["total_quota_limit"]
        if usage >= 0.9:
            return True, f"Quota almost exhausted: {round(usage * 100)}% used"
        if usage >= QUOTA_WARNING_THRESHOLD:
            return True, f"Quota usage high: {round(usage * 100)}% used"
        if stats["healthy_key_count"] == 0:
            return True, "No API key is available"
        if stats["healthy_key_count"] <= 1 and len(stats["keys"]) > 1:
            return True, f"Only {stats['healthy_key_count']} healthy key left"
        return False, "Quota OK"
