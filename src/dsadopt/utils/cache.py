"""Write-once memo caches scoped to a single repository scan."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class MemoCache(Generic[_T]):
    """Async memo table where every key is computed at most once.

    The first request for a key schedules the computation and stores its
    future; every later or concurrent request awaits that same future, so
    all callers observe one value per key.  Entries are never evicted or
    replaced, which is why an instance must not outlive the scan it serves.

    Args:
        name: Label used in log messages.
    """

    def __init__(self, name: str = "memo") -> None:
        self._name = name
        self._store: dict[str, asyncio.Future[_T]] = {}
        self._computations = 0

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[_T]]) -> _T:
        """Return the value for *key*, computing it on first request."""
        future = self._store.get(key)
        if future is None:
            future = asyncio.ensure_future(compute())
            self._store[key] = future
            self._computations += 1
            logger.debug("%s cache miss: %s", self._name, key)
        return await future

    def __contains__(self, key: object) -> bool:
        return key in self._store

    @property
    def size(self) -> int:
        """Number of keys requested so far."""
        return len(self._store)

    @property
    def computations(self) -> int:
        """Number of computations started (one per distinct key)."""
        return self._computations
