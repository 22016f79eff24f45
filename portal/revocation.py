"""
Access-token revocation lists.

A revocation list maps a token id (``jti``) to the token's own expiry. An entry
only counts while "now" is before that expiry; past it the token is rejected
by expiry anyway, so the entry is logically absent and can be swept.

``InMemoryRevocationList`` is process-local: a restart clears every revocation
and separate instances do not see each other's logouts. Multi-instance
deployments should use ``RedisRevocationList``.
"""

import logging
import threading
from datetime import datetime
from typing import Optional

import redis

from .clock import Clock, utcnow

logger = logging.getLogger(__name__)


class InMemoryRevocationList:
    """Lock-guarded dict of jti -> expiry"""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utcnow
        self._entries: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def add(self, token_id: str, expires_at: datetime) -> None:
        with self._lock:
            self._entries[token_id] = expires_at

    def is_revoked(self, token_id: str) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._entries.get(token_id)
            if expires_at is None:
                return False
            if now >= expires_at:
                # Lazy pruning
                del self._entries[token_id]
                return False
            return True

    def cleanup(self) -> int:
        """Remove entries whose recorded expiry has passed. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [token_id for token_id, expires_at in self._entries.items() if now >= expires_at]
            for token_id in expired:
                del self._entries[token_id]

        if expired:
            logger.debug(f"🧹 Cleaned up {len(expired)} expired revocation entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisRevocationList:
    """Revocations shared across instances. Redis key expiry does the pruning."""

    def __init__(self, client: redis.Redis, clock: Optional[Clock] = None, prefix: str = "revoked_jti"):
        self._client = client
        self._clock = clock or utcnow
        self._prefix = prefix

    def _key(self, token_id: str) -> str:
        return f"{self._prefix}:{token_id}"

    def add(self, token_id: str, expires_at: datetime) -> None:
        ttl = int((expires_at - self._clock()).total_seconds())
        if ttl <= 0:
            # Already expired, nothing to reject
            return
        self._client.setex(self._key(token_id), ttl, expires_at.isoformat())

    def is_revoked(self, token_id: str) -> bool:
        return bool(self._client.exists(self._key(token_id)))

    def cleanup(self) -> int:
        return 0

    def __len__(self) -> int:
        return sum(1 for _ in self._client.scan_iter(match=f"{self._prefix}:*"))


class RevocationSweeper:
    """Background thread that periodically sweeps expired revocation entries"""

    def __init__(self, revocation_list, interval_seconds: int = 300):
        self._revocation_list = revocation_list
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="revocation-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"🧹 Revocation sweeper started (interval: {self._interval}s)")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Revocation sweeper stopped")

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._revocation_list.cleanup()
            except Exception as e:
                # Keep sweeping; a failed sweep only delays pruning
                logger.error(f"❌ Revocation sweep failed: {e}")
