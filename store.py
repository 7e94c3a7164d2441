"""
Short-lived in-memory store for processed files awaiting download.

Entries are keyed by a random token and expire after a TTL; expired
entries are evicted lazily whenever the store is touched.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Callable, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class StoredResult(BaseModel):
    filename: str
    content: bytes
    expires_at: float


class ResultStore:
    def __init__(
        self,
        ttl_seconds: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, StoredResult] = {}
        self._lock = threading.Lock()

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [t for t, e in self._entries.items() if e.expires_at <= now]
        for token in expired:
            del self._entries[token]
        if expired:
            logger.debug("Evicted %d expired result(s)", len(expired))

    def put(self, filename: str, content: bytes) -> str:
        """Store *content* and return the token it can be fetched with."""
        token = uuid.uuid4().hex
        with self._lock:
            self._evict_expired()
            self._entries[token] = StoredResult(
                filename=filename,
                content=content,
                expires_at=self._clock() + self._ttl,
            )
        return token

    def get(self, token: str) -> Optional[StoredResult]:
        with self._lock:
            self._evict_expired()
            return self._entries.get(token)

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired()
            return len(self._entries)
