"""Embedding lookup with backend fallback."""

from .backends import ChromaBackend, EmbeddingBackend, EncoderBackend, VectorBundleBackend, build_backends
from .store import EmbeddingStore

__all__ = [
    "ChromaBackend",
    "EmbeddingBackend",
    "EmbeddingStore",
    "EncoderBackend",
    "VectorBundleBackend",
    "build_backends",
]
