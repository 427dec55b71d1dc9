"""Embedding backends: interchangeable sources of a note's vector."""

import asyncio
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

import numpy as np

from ..errors import TransportError
from ..vault.analyzer import split_frontmatter
from ..vault.reader import VaultReader

logger = logging.getLogger(__name__)


def as_vector(value: Any) -> list[float] | None:
    """Coerce a stored value into a flat list of floats, or None if it isn't one."""
    if value is None:
        return None
    if isinstance(value, dict):
        # Bundles written by some indexers nest the vector under "vec" or "embedding".
        value = value.get("vec", value.get("embedding"))
    try:
        arr = np.asarray(value, dtype=float)
    except (TypeError, ValueError):
        return None
    if arr.ndim != 1 or arr.size == 0:
        return None
    return arr.tolist()


class EmbeddingBackend(ABC):
    """Common interface for embedding sources."""

    name: str = "backend"

    @abstractmethod
    async def get_embedding(self, doc_id: str) -> list[float] | None:
        """Return the vector for a note, None on a miss. May raise on backend failure."""

    def is_available(self) -> bool:
        return True


class EncoderBackend(EmbeddingBackend):
    """Live provider: encodes the note's text with a sentence-transformers model."""

    name = "encoder"

    def __init__(
        self,
        reader: VaultReader,
        model_name: str,
        timeout: float = 5.0,
        encode: Callable[[str], Sequence[float]] | None = None,
    ):
        self.reader = reader
        self.model_name = model_name
        self.timeout = timeout
        self._encode = encode
        self._model = None
        self._model_lock = threading.Lock()

    @property
    def model(self):
        """Lazy-load the embedding model, once, from whichever worker thread asks first."""
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    from sentence_transformers import SentenceTransformer
                    self._model = SentenceTransformer(self.model_name)
        return self._model

    def _encode_text(self, text: str) -> Sequence[float]:
        if self._encode is not None:
            return self._encode(text)
        return self.model.encode(text).tolist()

    def _embed(self, doc_id: str) -> list[float] | None:
        if not self.reader.exists(doc_id):
            return None
        _, body = split_frontmatter(self.reader.read(doc_id))
        if not body.strip():
            return None
        return as_vector(self._encode_text(body))

    async def get_embedding(self, doc_id: str) -> list[float] | None:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._embed, doc_id), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"Embedding provider timed out after {self.timeout}s for {doc_id}") from e

    def is_available(self) -> bool:
        if self._encode is not None:
            return True
        try:
            import sentence_transformers  # noqa: F401
        except ImportError:
            return False
        return True


class VectorBundleBackend(EmbeddingBackend):
    """Offline cache: one or more JSON stores mapping note path -> vector.

    Each store is parsed once and memoized until the bundle goes stale, at which
    point the next lookup reloads every store before reporting a miss. Concurrent
    lookups share a single reload.
    """

    name = "bundle"

    def __init__(
        self,
        reader: VaultReader,
        bundle_paths: Sequence[str],
        ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.reader = reader
        self.bundle_paths = list(bundle_paths)
        self.ttl = ttl
        self._clock = clock
        self._stores: dict[str, dict[str, Any]] = {}
        self._loaded_at: float | None = None
        self.cache_valid = False
        self._generation = 0
        self._reload_lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    def is_fresh(self) -> bool:
        if self._loaded_at is None:
            return False
        return self.cache_valid and (self._clock() - self._loaded_at) < self.ttl

    def invalidate(self) -> None:
        self.cache_valid = False
        self._stores = {}

    def _parse_store(self, rel_path: str) -> dict[str, Any] | None:
        text = self.reader.read_artifact(rel_path)
        if text is None:
            logger.debug(f"Vector store not found: {rel_path}")
            return None
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{rel_path} is not a JSON object")
        return data

    def _read_stores(self) -> dict[str, dict[str, Any]]:
        stores = {}
        for rel_path in self.bundle_paths:
            try:
                data = self._parse_store(rel_path)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load vector store {rel_path}: {e}")
                continue
            if data is not None:
                stores[rel_path] = data
                logger.debug(f"Loaded {len(data)} embeddings from {rel_path}")
        return stores

    def _lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to one event loop; each new loop gets its own.
        loop = asyncio.get_running_loop()
        if self._reload_lock is None or self._lock_loop is not loop:
            self._reload_lock = asyncio.Lock()
            self._lock_loop = loop
        return self._reload_lock

    async def load(self) -> bool:
        """Re-read every store and swap them in as one unit."""
        stores = await asyncio.to_thread(self._read_stores)
        self._stores = stores
        self._loaded_at = self._clock()
        self._generation += 1
        self.cache_valid = bool(stores)
        return self.cache_valid

    async def _ensure_fresh(self) -> None:
        if self.is_fresh():
            return
        generation = self._generation
        async with self._lock():
            # Skip if another lookup reloaded while this one waited, even if that reload found nothing.
            if not self.is_fresh() and self._generation == generation:
                await self.load()

    def lookup(self, doc_id: str) -> list[float] | None:
        for store in self._stores.values():
            vector = as_vector(store.get(doc_id))
            if vector is not None:
                return vector
        return None

    async def get_embedding(self, doc_id: str) -> list[float] | None:
        await self._ensure_fresh()
        return self.lookup(doc_id)

    def is_available(self) -> bool:
        if self.is_fresh():
            return True
        return any(self.reader.exists(p) for p in self.bundle_paths)


class ChromaBackend(EmbeddingBackend):
    """Persisted chunk store: a note's vector is the mean of its chunk vectors."""

    name = "chroma"

    def __init__(self, chroma_path: str, vault_path: str, collection: str = "documents"):
        self.chroma_path = chroma_path
        self.vault_path = vault_path
        self.collection_name = collection
        self._collection = None

    @property
    def collection(self):
        if self._collection is None:
            import chromadb
            client = chromadb.PersistentClient(path=self.chroma_path)
            self._collection = client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        return self._collection

    def _fetch(self, doc_id: str) -> list[float] | None:
        sources = [doc_id, f"{self.vault_path.rstrip('/')}/{doc_id}"]
        result = self.collection.get(where={"source": {"$in": sources}}, include=["embeddings"])
        embeddings = result.get("embeddings")
        if embeddings is None or len(embeddings) == 0:
            return None
        return np.asarray(embeddings, dtype=float).mean(axis=0).tolist()

    async def get_embedding(self, doc_id: str) -> list[float] | None:
        return await asyncio.to_thread(self._fetch, doc_id)

    def is_available(self) -> bool:
        try:
            import chromadb  # noqa: F401
        except ImportError:
            return False
        return True


def build_backends(config: dict[str, Any], reader: VaultReader) -> list[EmbeddingBackend]:
    """Factory: instantiate the configured backends in priority order."""
    emb_cfg = config.get("embeddings", {})
    backends: list[EmbeddingBackend] = []
    for name in emb_cfg.get("backends", ["encoder", "bundle"]):
        if name == "encoder":
            backends.append(EncoderBackend(
                reader,
                model_name=config.get("embedding_model", "sentence-transformers/all-MiniLM-L6-v2"),
                timeout=emb_cfg.get("timeout", 5.0),
            ))
        elif name == "bundle":
            backends.append(VectorBundleBackend(
                reader,
                bundle_paths=emb_cfg.get("bundle_paths", [".smart-env/vectors.json"]),
                ttl=emb_cfg.get("ttl", 300),
            ))
        elif name == "chroma":
            backends.append(ChromaBackend(
                emb_cfg["chroma_path"],
                vault_path=config["vault_path"],
                collection=emb_cfg.get("collection", "documents"),
            ))
        else:
            raise ValueError(f"Unknown embedding backend: {name}")
    return backends
