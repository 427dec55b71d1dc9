"""In-memory cache with a fixed freshness window and manual invalidation."""

import time
from typing import Callable, Hashable

import cachetools

DEFAULT_TTL = 300.0
DEFAULT_MAXSIZE = 10000

MISSING = object()


class TTLCache(cachetools.TTLCache):
    """Key/value cache whose entries expire `ttl` seconds after being written.

    Writes via `setdefault` are first-write-wins: a concurrent computation that
    finishes second gets the already-published value back.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        maxsize: int = DEFAULT_MAXSIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(maxsize=maxsize, ttl=ttl, timer=clock)

    def set(self, key: Hashable, value) -> None:
        self[key] = value

    def invalidate(self, key: Hashable) -> None:
        self.pop(key, None)
