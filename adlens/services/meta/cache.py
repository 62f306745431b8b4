"""
In-memory TTL cache for Graph API read-models.

Keys are built from the data kind, a fingerprint of the access token, the
ad account and the date range, so a different range never hits an entry
stored for another one. Stale entries are purged on the read that finds them.
"""
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from adlens.schemas.common import DateRange

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    """Cached value with the time it was stored"""
    data: Any
    timestamp: float
    ttl: float


def credential_fingerprint(access_token: str) -> str:
    """Short stable hash so raw tokens never end up in cache keys or logs"""
    return hashlib.sha256(access_token.encode("utf-8")).hexdigest()[:16]


class ResponseCache:
    """TTL cache. No size bound; entries only leave by expiry or clear()."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(
        kind: str,
        access_token: str,
        account_id: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> str:
        parts = [kind, credential_fingerprint(access_token)]
        if account_id:
            parts.append(account_id)
        if date_range is not None:
            parts.append(date_range.cache_suffix)
        return ":".join(parts)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp > entry.ttl:
                del self._entries[key]
                logger.debug(f"Cache expired: {key}")
                return None
            return entry.data

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                data=data,
                timestamp=self._clock(),
                ttl=self.default_ttl if ttl is None else ttl,
            )

    def clear(self, access_token: Optional[str] = None) -> int:
        """Drop everything, or only the entries of one credential. Returns count removed."""
        with self._lock:
            if access_token is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            fingerprint = credential_fingerprint(access_token)
            doomed = [key for key in self._entries if key.split(":")[1:2] == [fingerprint]]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
