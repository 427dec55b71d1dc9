"""Tests for score fusion and ranking."""

import asyncio

import pytest

from vaultsort.errors import ScoringError
from vaultsort.models import FolderProfile, Recommendation, RecommendationResult
from vaultsort.scoring.fusion import blend, cosine_similarity, fuse_recommendation, fuse_result
from vaultsort.scoring.ranker import match_strength, rank

GRID = [-1.0, -0.5, 0.0, 0.25, 0.5, 0.75, 1.0]
UNIT = [0.0, 0.1, 0.3, 0.5, 0.7, 0.9, 1.0]


def _folder(path, centroid=None, coherence=0.7):
    return FolderProfile(
        folder_path=path,
        folder_name=path,
        centroid=centroid,
        coherence=coherence,
        has_valid_centroid=centroid is not None,
    )


def test_blend_is_always_clamped():
    for c in UNIT:
        for s in GRID:
            for k in UNIT:
                assert 0.0 <= blend(c, s, k) <= 1.0


def test_blend_negative_similarity_counts_as_zero():
    assert blend(0.6, -0.8, 0.5) == pytest.approx(0.3)


def test_blend_monotonic_in_coherence():
    coherences = [i / 10 for i in range(11)]
    rising = [blend(0.3, 0.9, k) for k in coherences]
    falling = [blend(0.9, 0.3, k) for k in coherences]
    assert all(a <= b for a, b in zip(rising, rising[1:]))
    assert all(a >= b for a, b in zip(falling, falling[1:]))


def test_blend_extremes_of_coherence():
    for s in GRID:
        assert blend(0.5, s, 0) == pytest.approx(0.5)
    for c in UNIT:
        assert blend(c, 0.9, 1) == pytest.approx(0.9)


def test_cosine_similarity():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine_similarity([0, 0], [1, 0]) == 0.0


def test_cosine_dimension_mismatch_raises():
    with pytest.raises(ScoringError):
        cosine_similarity([1, 0, 0], [1, 0])


def test_fuse_without_centroid_keeps_judgment():
    rec = Recommendation(folder_path="Inbox", folder_name="Inbox", confidence=50)
    fuse_recommendation(rec, [1.0, 0.0], {"Inbox": _folder("Inbox")})
    assert rec.similarity == 0.5
    assert rec.enhanced_confidence == 50


def test_fuse_dimension_mismatch_degrades_to_neutral():
    rec = Recommendation(folder_path="A", folder_name="A", confidence=65)
    fuse_recommendation(rec, [1.0, 0.0, 0.0], {"A": _folder("A", centroid=[1.0, 0.0])})
    assert rec.similarity == 0.5
    assert rec.enhanced_confidence == 65


def test_fuse_unknown_folder_keeps_judgment():
    rec = Recommendation(folder_path="Nowhere", folder_name="Nowhere", confidence=40)
    fuse_recommendation(rec, [1.0, 0.0], {})
    assert rec.enhanced_confidence == 40


def test_fuse_result_end_to_end_example():
    folders = [
        _folder("Projects", centroid=[1.0, 0.0], coherence=0.9),
        _folder("Inbox"),
        _folder("Broken", centroid=[1.0, 0.0, 0.0], coherence=0.9),
    ]
    result = RecommendationResult(
        primary=Recommendation(folder_path="Projects", folder_name="Projects", confidence=70),
        alternatives=[
            Recommendation(folder_path="Broken", folder_name="Broken", confidence=55),
            Recommendation(folder_path="Inbox", folder_name="Inbox", confidence=50),
        ],
    )
    asyncio.run(fuse_result(result, [1.0, 0.0], folders))

    assert result.primary.similarity == pytest.approx(1.0)
    assert result.primary.enhanced_confidence == 97
    broken, inbox = result.alternatives
    # One candidate's scoring failure does not affect the others.
    assert broken.enhanced_confidence == 55
    assert inbox.similarity == 0.5
    assert inbox.enhanced_confidence == 50


def test_fuse_result_without_embedding_is_noop():
    result = RecommendationResult(primary=Recommendation(folder_path="A", folder_name="A", confidence=70))
    asyncio.run(fuse_result(result, None, [_folder("A", centroid=[1.0])]))
    assert result.primary.similarity is None
    assert result.primary.enhanced_confidence is None


def test_match_strength_tiers():
    assert match_strength(81) == "strong"
    assert match_strength(80) == "moderate"
    assert match_strength(61) == "moderate"
    assert match_strength(60) == "weak"
    assert match_strength(0) == "weak"


def test_rank_keeps_judgment_primary():
    result = RecommendationResult(
        primary=Recommendation(folder_path="A", folder_name="A", confidence=85, enhanced_confidence=40),
        alternatives=[
            Recommendation(folder_path="B", folder_name="B", confidence=65, enhanced_confidence=95),
            Recommendation(folder_path="C", folder_name="C", confidence=10),
        ],
    )
    rank(result)
    assert result.primary.folder_path == "A"
    assert [r.folder_path for r in result.alternatives] == ["B", "C"]
    assert [r.match_strength for r in result.candidates()] == ["strong", "moderate", "weak"]


def test_unscored_coherence_splits_evenly():
    folder = _folder("A", centroid=[1.0, 0.0], coherence=None)
    rec = Recommendation(folder_path="A", folder_name="A", confidence=60)
    fuse_recommendation(rec, [1.0, 0.0], {"A": folder})
    # 0.6 * 0.5 + 1.0 * 0.5
    assert rec.enhanced_confidence == 80
