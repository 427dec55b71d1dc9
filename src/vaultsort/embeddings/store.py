"""Embedding lookup with an ordered fallback chain of backends."""

import logging
from typing import Sequence

from ..cache import MISSING, TTLCache
from ..models import ConnectionStatus
from .backends import EmbeddingBackend

logger = logging.getLogger(__name__)


class EmbeddingStore:
    """Resolves a note's vector by trying each backend in priority order.

    `get_embedding` never raises: a backend failure is logged and the next
    backend is tried; if none produces a vector the result is None.
    """

    def __init__(self, backends: Sequence[EmbeddingBackend], cache: TTLCache | None = None):
        self.backends = list(backends)
        self.cache = cache if cache is not None else TTLCache()

    async def get_embedding(self, doc_id: str) -> list[float] | None:
        cached = self.cache.get(doc_id, MISSING)
        if cached is not MISSING:
            return cached

        for backend in self.backends:
            try:
                vector = await backend.get_embedding(doc_id)
            except Exception as e:
                logger.debug(f"Embedding backend '{backend.name}' failed for {doc_id}: {e}")
                continue
            if vector is not None and len(vector) > 0:
                return self.cache.setdefault(doc_id, vector)
        return None

    def is_available(self) -> bool:
        """True if at least one backend could serve lookups."""
        return any(self._backend_available(b) for b in self.backends)

    @staticmethod
    def _backend_available(backend: EmbeddingBackend) -> bool:
        try:
            return backend.is_available()
        except Exception as e:
            logger.debug(f"Availability check for '{backend.name}' failed: {e}")
            return False

    def invalidate(self, doc_id: str | None = None) -> None:
        if doc_id is None:
            self.cache.clear()
        else:
            self.cache.invalidate(doc_id)

    def status(self) -> ConnectionStatus:
        backends = {b.name: self._backend_available(b) for b in self.backends}
        usable = [name for name, ok in backends.items() if ok]
        if usable:
            message = f"Embeddings available via {', '.join(usable)}"
        elif backends:
            message = "No embedding backend is usable"
        else:
            message = "No embedding backends configured"
        return ConnectionStatus(connected=bool(usable), backends=backends, message=message)
