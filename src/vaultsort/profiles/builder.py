"""Folder centroids and coherence scores from member embeddings."""

import asyncio
import logging
from itertools import combinations
from typing import Sequence

import numpy as np

from ..cache import MISSING, TTLCache
from ..embeddings.store import EmbeddingStore
from ..models import DEFAULT_COHERENCE, FolderProfile
from ..scoring.fusion import cosine_similarity

logger = logging.getLogger(__name__)


class ProfileBuilder:
    """Computes and caches per-folder centroid and coherence.

    Results are cached by folder path for the cache's TTL. Concurrent builds of
    the same folder may both compute; whichever publishes first is kept.
    """

    def __init__(self, store: EmbeddingStore, cache: TTLCache | None = None, max_concurrency: int = 8):
        self.store = store
        self.cache = cache if cache is not None else TTLCache()
        self.max_concurrency = max(1, max_concurrency)

    async def _vectors(self, member_ids: Sequence[str]) -> list[list[float]]:
        """Valid member embeddings, restricted to the first vector's dimension."""
        fetched = await asyncio.gather(*(self.store.get_embedding(m) for m in member_ids))
        vectors = [v for v in fetched if v is not None and len(v) > 0]
        if not vectors:
            return []
        dim = len(vectors[0])
        matching = [v for v in vectors if len(v) == dim]
        if len(matching) != len(vectors):
            logger.warning(f"Skipped {len(vectors) - len(matching)} embedding(s) with dimension != {dim}")
        return matching

    async def centroid(self, folder_key: str, member_ids: Sequence[str]) -> list[float] | None:
        """Componentwise mean of the members' embeddings, None if none are available."""
        key = ("centroid", folder_key)
        cached = self.cache.get(key, MISSING)
        if cached is not MISSING:
            return cached

        vectors = await self._vectors(member_ids)
        if not vectors:
            logger.debug(f"No embeddings found for folder: {folder_key}")
            return None
        centroid = np.asarray(vectors, dtype=float).mean(axis=0).tolist()
        logger.debug(f"Calculated centroid for {folder_key} ({len(vectors)} notes)")
        return self.cache.setdefault(key, centroid)

    async def coherence(self, member_ids: Sequence[str], folder_key: str | None = None) -> float:
        """Mean pairwise cosine similarity of the members' embeddings.

        Returns the default 0.7 when fewer than two embeddings are available or
        no embedding backend is usable.
        """
        key = ("coherence", folder_key)
        if folder_key is not None:
            cached = self.cache.get(key, MISSING)
            if cached is not MISSING:
                return cached

        if len(member_ids) < 2 or not self.store.is_available():
            return DEFAULT_COHERENCE

        vectors = await self._vectors(member_ids)
        if len(vectors) < 2:
            return DEFAULT_COHERENCE

        sims = [cosine_similarity(a, b) for a, b in combinations(vectors, 2)]
        score = float(np.mean(sims))
        if folder_key is not None:
            score = self.cache.setdefault(key, score)
        return score

    async def build(self, folder: FolderProfile) -> FolderProfile:
        """Fill in a folder's centroid, coherence and validity flag in place."""
        centroid = await self.centroid(folder.folder_path, folder.member_ids)
        folder.centroid = centroid
        folder.has_valid_centroid = centroid is not None
        folder.coherence = await self.coherence(folder.member_ids, folder_key=folder.folder_path)
        return folder

    async def build_all(self, folders: Sequence[FolderProfile]) -> list[FolderProfile]:
        """Build every folder concurrently, at most `max_concurrency` at a time."""
        sem = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(folder: FolderProfile) -> FolderProfile:
            async with sem:
                return await self.build(folder)

        return list(await asyncio.gather(*(_bounded(f) for f in folders)))

    def invalidate(self, folder_key: str | None = None) -> None:
        """Drop cached results for one folder, or for all folders."""
        if folder_key is None:
            self.cache.clear()
            return
        self.cache.invalidate(("centroid", folder_key))
        self.cache.invalidate(("coherence", folder_key))
