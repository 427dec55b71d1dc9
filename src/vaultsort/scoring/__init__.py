"""Response decoding, score fusion and ranking."""

from .fusion import blend, cosine_similarity, fuse_recommendation, fuse_result
from .parser import extract_json, parse_folder_names, parse_recommendation, parse_vault_analysis
from .ranker import match_strength, rank

__all__ = [
    "blend",
    "cosine_similarity",
    "extract_json",
    "fuse_recommendation",
    "fuse_result",
    "match_strength",
    "parse_folder_names",
    "parse_recommendation",
    "parse_vault_analysis",
    "rank",
]
