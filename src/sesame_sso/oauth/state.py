"""OAuth state management for CSRF protection."""

import logging
import threading
import time
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

_MISSING = object()


@runtime_checkable
class StateStore(Protocol):
    """
    Storage contract for OAuth state values.

    Any backend (in-process, Redis, database) can be plugged into the SSO
    client as long as it provides these coroutines. ``expires_at`` is an
    absolute UNIX timestamp in seconds. Stored values are never None, so
    None always means "absent".

    ``pop`` is mandatory and must be atomic: when two callbacks race on the
    same state, at most one of them may receive the value. A remote store
    should implement it with a conditional delete (e.g. Redis ``GETDEL``).
    Connectivity errors must be raised, never reported as a missing key.

    A store may also provide a synchronous ``stop()`` for shutdown.
    """

    async def set(self, key: str, value: Any, expires_at: Optional[float] = None) -> None:
        ...

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def has(self, key: str) -> bool:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def pop(self, key: str) -> Optional[Any]:
        ...


class InMemoryTTLStore:
    """
    Thread-safe in-memory store for OAuth state parameters.

    Entries expire after a configurable TTL (default 10 minutes). Expired
    entries are dropped lazily on access and by a background sweeper thread
    running every ``min(cleanup_interval_seconds, ttl_seconds)`` seconds.

    The store holds at most ``max_entries`` entries. When full, expired
    entries are swept first; if that does not free room, the oldest
    entries are evicted.

    For multi-process deployments, plug in a shared store implementing
    :class:`StateStore` instead.
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        max_entries: int = 10_000,
        cleanup_interval_seconds: float = 60.0,
    ):
        """
        Initialize the store and start the background sweeper.

        Args:
            ttl_seconds: Default time-to-live for entries in seconds
            max_entries: Maximum number of entries kept at once
            cleanup_interval_seconds: Interval between background sweeps
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be positive")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.cleanup_interval_seconds = min(cleanup_interval_seconds, ttl_seconds)

        # key -> (expires_at, value); dict order is insertion order
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._stopped = threading.Event()

        # Daemon thread: never keeps the interpreter alive on its own
        self._sweeper: Optional[threading.Thread] = threading.Thread(
            target=self._run_sweeper,
            name="sesame-sso-state-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    async def set(self, key: str, value: Any, expires_at: Optional[float] = None) -> None:
        """
        Store a value, replacing any previous entry for the key.

        Args:
            key: The state parameter (unique identifier)
            value: Data to associate with the state
            expires_at: Absolute expiry timestamp, defaults to now + TTL
        """
        if expires_at is None:
            expires_at = time.time() + self.ttl_seconds

        with self._lock:
            self._store.pop(key, None)
            if len(self._store) >= self.max_entries:
                self._make_room()
            self._store[key] = (expires_at, value)

    async def get(self, key: str) -> Optional[Any]:
        """
        Get the value for a key if it exists and has not expired.

        Returns:
            The associated value, or None if missing or expired
        """
        with self._lock:
            value = self._get_live(key)
        return None if value is _MISSING else value

    async def has(self, key: str) -> bool:
        """Check whether a live (non-expired) entry exists for the key."""
        with self._lock:
            return self._get_live(key) is not _MISSING

    async def delete(self, key: str) -> None:
        """Remove the entry for a key. Missing keys are ignored."""
        with self._lock:
            self._store.pop(key, None)

    async def pop(self, key: str) -> Optional[Any]:
        """
        Get and delete the value for a key in one step (single-use).

        Returns:
            The associated value if found and not expired, None otherwise
        """
        with self._lock:
            entry = self._store.pop(key, None)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.time():
            return None
        return value

    def cleanup(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._remove_expired()

    def stop(self) -> None:
        """
        Stop the background sweeper (call when shutting down).

        Safe to call more than once. The store keeps working afterwards,
        relying only on lazy expiry.
        """
        if self._stopped.is_set():
            return
        self._stopped.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=1.0)
        logger.debug("State store sweeper stopped")

    @property
    def stopped(self) -> bool:
        """True once the background sweeper has been stopped."""
        return self._stopped.is_set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __enter__(self) -> "InMemoryTTLStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _run_sweeper(self) -> None:
        while not self._stopped.wait(self.cleanup_interval_seconds):
            removed = self.cleanup()
            if removed:
                logger.debug(f"Swept {removed} expired state entries")

    def _get_live(self, key: str) -> Any:
        """Lookup with lazy expiry. Caller must hold the lock."""
        entry = self._store.get(key)
        if entry is None:
            return _MISSING
        expires_at, value = entry
        if expires_at <= time.time():
            del self._store[key]
            return _MISSING
        return value

    def _remove_expired(self) -> int:
        """Remove expired entries. Caller must hold the lock."""
        now = time.time()
        expired = [key for key, (expires_at, _) in self._store.items() if expires_at <= now]
        for key in expired:
            del self._store[key]
        return len(expired)

    def _make_room(self) -> None:
        """Free at least one slot. Caller must hold the lock."""
        removed = self._remove_expired()
        evicted = 0
        while len(self._store) >= self.max_entries:
            oldest = next(iter(self._store))
            del self._store[oldest]
            evicted += 1
        if evicted:
            logger.warning(
                f"State store full ({self.max_entries} entries): "
                f"swept {removed} expired, evicted {evicted} oldest"
            )
