"""Blend judgment confidence with embedding similarity, weighted by folder coherence.

Coherence measures how tight a folder's existing contents are. A tight folder's
centroid is a good proxy for "does this note belong here", so the similarity
term gets weight ``coherence`` and the judgment gets ``1 - coherence``.
"""

import logging
from typing import Sequence

import numpy as np

from ..errors import ScoringError
from ..models import FolderProfile, Recommendation, RecommendationResult

logger = logging.getLogger(__name__)

NEUTRAL_SIMILARITY = 0.5
# Coherence assumed when a folder was never scored (coherence is None). Not
# models.DEFAULT_COHERENCE, which covers folders scored with too few embeddings.
UNSCORED_COHERENCE = 0.5


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]. Zero vectors score 0.

    Raises:
        ScoringError: if the vectors differ in dimensionality or are empty.
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.ndim != 1 or va.shape != vb.shape or va.size == 0:
        raise ScoringError(f"Cannot compare vectors of shape {va.shape} and {vb.shape}")
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return _clamp(float(np.dot(va, vb) / norm), -1.0, 1.0)


def blend(judgment_confidence: float, similarity: float, coherence: float) -> float:
    """Coherence-weighted blend of a [0,1] judgment confidence and a similarity.

    Negative similarity is treated as 0; the result is clamped to [0, 1].
    """
    coherence = _clamp(coherence, 0.0, 1.0)
    similarity = _clamp(similarity, 0.0, 1.0)
    blended = judgment_confidence * (1 - coherence) + similarity * coherence
    return _clamp(blended, 0.0, 1.0)


def _neutral(rec: Recommendation) -> Recommendation:
    rec.similarity = NEUTRAL_SIMILARITY
    rec.enhanced_confidence = rec.confidence
    return rec


def fuse_recommendation(
    rec: Recommendation,
    document_embedding: Sequence[float],
    folders: dict[str, FolderProfile],
) -> Recommendation:
    """Fill in similarity and enhanced_confidence for one candidate, in place.

    Without a valid centroid, or on any scoring failure, the judgment's own
    confidence is kept unchanged and similarity is set to the neutral 0.5.
    """
    folder = folders.get(rec.folder_path)
    if folder is None or not folder.has_valid_centroid or folder.centroid is None:
        return _neutral(rec)
    try:
        similarity = cosine_similarity(document_embedding, folder.centroid)
        coherence = folder.coherence if folder.coherence is not None else UNSCORED_COHERENCE
        blended = blend(rec.confidence / 100, similarity, coherence)
    except Exception as e:
        logger.warning(f"Scoring failed for {rec.folder_name}, keeping judgment confidence: {e}")
        return _neutral(rec)
    rec.similarity = similarity
    rec.enhanced_confidence = float(round(blended * 100))
    return rec


async def fuse_result(
    result: RecommendationResult,
    document_embedding: Sequence[float] | None,
    folder_profiles: Sequence[FolderProfile],
) -> RecommendationResult:
    """Enhance every candidate of a result. A no-op without a document embedding.

    Fusion is pure CPU work on vectors already in memory, so candidates are
    scored one after another; each still degrades independently.
    """
    if document_embedding is None or len(document_embedding) == 0:
        return result
    folders = {fp.folder_path: fp for fp in folder_profiles}
    for rec in result.candidates():
        fuse_recommendation(rec, document_embedding, folders)
    return result
