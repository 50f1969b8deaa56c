"""In-memory TTL cache used for the content repository tiers."""

import threading
import time
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar('T')

# Entries stored with this expiry live until deleted or cleared.
INFINITE = float('inf')


class TTLCache(Generic[T]):
    """
    A key-value map whose entries carry an expiry timestamp.

    Nothing is invalidated implicitly: entries leave the cache through
    :meth:`delete`, :meth:`clear` or by expiring. Access is lock-guarded so
    one instance may be shared by worker threads.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        """Store ``value``. ``ttl`` is in seconds; ``None`` means no expiry."""
        expires_at = INFINITE if ttl is None else self._clock() + ttl
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)
