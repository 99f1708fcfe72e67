"""
Request-scoped session backed by a distributed cache.

``LazySession`` holds one request's view of a session table. Nothing is
read from the cache until a handler actually reads the session, and
nothing is written back unless a handler changed it. The request
middleware creates one instance per request and calls ``commit`` once the
handler chain has finished.
"""

import time
from typing import Dict, List, Optional, Tuple, Union
from uuid import uuid4

from shared.config import SessionOptions
from shared.errors import SessionConfigurationError, SessionNotLoadedError, SessionSerializationError
from shared.metrics import MetricsCollector

from ..cache.distributed_cache import DistributedCache
from .serialization import serialize_table, deserialize_table


SESSION_KEY_PREFIX = "Session:"

BytesLike = Union[bytes, bytearray, memoryview]


class LazySession:
    """Lazily loaded, dirty-tracked session table for a single request."""

    def __init__(
        self,
        cache: DistributedCache,
        logger,
        options: SessionOptions,
        session_id: Optional[str] = None,
        *,
        metrics: Optional[MetricsCollector] = None,
    ):
        if cache is None:
            raise SessionConfigurationError("A distributed cache is required", {"dependency": "cache"})
        if logger is None:
            raise SessionConfigurationError("A logger is required", {"dependency": "logger"})
        if options is None:
            raise SessionConfigurationError("Session options are required", {"dependency": "options"})

        self._cache = cache
        self._logger = logger
        self._options = options
        self._metrics = metrics

        self._had_identity_on_entry = bool(session_id)
        self._session_id: Optional[str] = session_id or None
        self._table: Optional[Dict[str, bytes]] = None
        self._loaded = False
        self._modified = False

    @property
    def is_available(self) -> bool:
        return True

    @property
    def identity(self) -> str:
        """Session token; a new one is minted the first time it is needed."""
        if not self._session_id:
            self._session_id = uuid4().hex
        return self._session_id

    @property
    def cache_key(self) -> str:
        return SESSION_KEY_PREFIX + self.identity

    @property
    def had_identity_on_entry(self) -> bool:
        return self._had_identity_on_entry

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def was_modified(self) -> bool:
        return self._modified

    @property
    def has_data(self) -> bool:
        return bool(self._table)

    async def load(self) -> None:
        """Read the session from the cache unless that already happened."""
        await self._ensure_loaded()

    async def keys(self) -> List[str]:
        await self._ensure_loaded()
        return list(self._table) if self._table is not None else []

    async def get(self, key: str) -> Tuple[bytes, bool]:
        """Look up ``key``, loading the session first when a cookie was presented.

        Returns ``(value, True)`` on a hit and ``(b"", False)`` otherwise.
        """
        if not self._loaded:
            if not self._had_identity_on_entry:
                return b"", False
            await self._ensure_loaded()

        return self._lookup(key)

    def get_nowait(self, key: str) -> Tuple[bytes, bool]:
        """Synchronous lookup for handlers that already awaited ``load``."""
        if not self._loaded:
            if not self._had_identity_on_entry:
                return b"", False
            raise SessionNotLoadedError(details={"key": key})

        return self._lookup(key)

    def set(self, key: str, value: BytesLike) -> None:
        if key is None:
            raise ValueError("Session key must not be None")
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"Session values must be bytes, got {type(value).__name__}")

        self._ensure_table()
        self._table[key] = bytes(value)
        self._modified = True

    def remove(self, key: str) -> None:
        self._ensure_table()
        if self._table.pop(key, None) is not None:
            self._modified = True

    def clear(self) -> None:
        self._ensure_table()
        self._table.clear()
        self._modified = True

    async def commit(self) -> None:
        """Write the session back to the cache if it was modified.

        A failed store propagates to the caller. A failed delete is logged
        and swallowed; the stale entry expires on its own.
        """
        if not self._modified:
            return

        if self.has_data:
            cache_key = self.cache_key
            payload = serialize_table(self._table)
            start_time = time.time()
            try:
                await self._cache.store(cache_key, payload, self._options.idle_timeout)
            except Exception:
                self._record("store", "error", start_time)
                raise
            self._record("store", "ok", start_time)

        elif self._had_identity_on_entry:
            cache_key = self.cache_key
            start_time = time.time()
            try:
                await self._cache.delete(cache_key)
                self._record("delete", "ok", start_time)
            except Exception as e:
                self._record("delete", "error", start_time)
                self._logger.warning(
                    "Failed to remove session from distributed cache",
                    cache_key=cache_key,
                    error=str(e)
                )

    def _lookup(self, key: str) -> Tuple[bytes, bool]:
        if self._table is not None and key in self._table:
            return self._table[key], True
        return b"", False

    def _ensure_table(self) -> None:
        # Writes never consult the cache: an unloaded session starts empty.
        if not self._loaded:
            self._table = {}
            self._loaded = True
        elif self._table is None:
            self._table = {}

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return

        if not self._had_identity_on_entry:
            self._table = {}
            self._loaded = True
            return

        cache_key = self.cache_key
        start_time = time.time()
        try:
            payload = await self._cache.fetch(cache_key)
            self._table = deserialize_table(payload) if payload else {}
            self._record("fetch", "hit" if payload else "miss", start_time)
        except SessionSerializationError as e:
            self._record("fetch", "corrupt", start_time)
            self._logger.warning(
                "Discarding unreadable session payload",
                cache_key=cache_key,
                error=str(e)
            )
            self._table = {}
        except Exception as e:
            self._record("fetch", "error", start_time)
            self._logger.warning(
                "Failed to load session from distributed cache",
                cache_key=cache_key,
                error=str(e)
            )
            self._table = {}

        self._loaded = True

    def _record(self, operation: str, outcome: str, start_time: float) -> None:
        if self._metrics:
            self._metrics.record_cache_operation(operation, outcome, time.time() - start_time)
