"""Data models used throughout VaultSort."""

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Literal, Mapping

MatchStrength = Literal["strong", "moderate", "weak"]

DEFAULT_COHERENCE = 0.7


@dataclass(frozen=True)
class DocumentProfile:
    """Immutable summary of a single note, built once from its source content."""
    path: str
    title: str
    tags: frozenset[str] = frozenset()
    headings: tuple[str, ...] = ()
    content_preview: str = ""
    embedding: tuple[float, ...] | None = None
    frontmatter: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    links: tuple[str, ...] = ()

    @property
    def folder(self) -> str:
        """Vault-relative folder holding this note ('' for the vault root)."""
        head, _, _ = self.path.rpartition("/")
        return head


@dataclass
class FolderProfile:
    """A destination candidate, rebuilt on every vault scan."""
    folder_path: str
    folder_name: str
    description: str = ""
    file_count: int = 0
    examples: list[str] = field(default_factory=list)
    centroid: list[float] | None = None
    coherence: float = DEFAULT_COHERENCE
    has_valid_centroid: bool = False
    member_ids: list[str] = field(default_factory=list)


@dataclass
class Recommendation:
    """One scored folder candidate."""
    folder_path: str
    folder_name: str
    confidence: float = 0.0
    reasoning: str = ""
    matched_topics: list[str] = field(default_factory=list)
    match_strength: MatchStrength = "weak"
    similarity: float | None = None
    enhanced_confidence: float | None = None
    # False when the reply carried no confidence and 0 was substituted.
    has_confidence: bool = True

    @property
    def effective_confidence(self) -> float:
        if self.enhanced_confidence is not None:
            return self.enhanced_confidence
        return self.confidence


@dataclass
class SuggestedFolder:
    name: str
    reasoning: str = ""
    parent: str | None = None


@dataclass
class AnalysisMetadata:
    timestamp: float = field(default_factory=time.time)
    processing_time_ms: float = 0.0
    tokens_used: int = 0
    models_used: list[str] = field(default_factory=list)
    topics_identified: list[str] = field(default_factory=list)


@dataclass
class RecommendationResult:
    """Primary pick, ordered alternatives, and an independent new-folder suggestion."""
    primary: Recommendation
    alternatives: list[Recommendation] = field(default_factory=list)
    should_create_new_folder: bool = False
    suggested_new_folder: SuggestedFolder | None = None
    metadata: AnalysisMetadata = field(default_factory=AnalysisMetadata)

    def candidates(self) -> Iterator[Recommendation]:
        yield self.primary
        yield from self.alternatives


@dataclass
class JudgmentReply:
    """Raw reply from the judgment service."""
    text: str
    tokens_used: int = 0


@dataclass
class ProposedMove:
    source_path: str
    destination: str
    confidence: float
    reasoning: str = ""


@dataclass
class BatchOutcome:
    """Result of classifying every note in a folder."""
    folder_path: str
    moves: list[ProposedMove] = field(default_factory=list)
    results: dict[str, RecommendationResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)


@dataclass
class ConnectionStatus:
    connected: bool
    backends: dict[str, bool] = field(default_factory=dict)
    message: str = ""


@dataclass
class VaultAnalysisReport:
    total_notes: int
    total_folders: int
    avg_notes_per_folder: float
    largest_folder: tuple[str, int] | None = None
    smallest_folder: tuple[str, int] | None = None
    issues: list[dict[str, Any]] = field(default_factory=list)
    recommendations: list[dict[str, Any]] = field(default_factory=list)
    optimization_score: dict[str, Any] = field(default_factory=dict)
