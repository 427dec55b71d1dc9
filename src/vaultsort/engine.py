"""Recommendation engine: judgment, parsing, fusion and ranking for one note.

A request moves through built -> judged -> parsed -> fused -> ranked. Failures
while judging or parsing abort the request with a typed error; failures while
fusing degrade per candidate and never abort.
"""

import asyncio
import logging
import time
from pathlib import PurePosixPath
from typing import Any, Sequence

from .cache import TTLCache
from .embeddings import EmbeddingStore, build_backends
from .errors import ConfigurationError, ParseError, ValidationError, VaultSortError
from .judgment.client import JudgmentClient
from .judgment.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    ANALYSIS_USER_PROMPT,
    FOLDER_ENTRY_TEMPLATE,
    FOLDER_NAMES_PROMPT,
    FOLDER_NOTE_PROMPT,
    FOLDER_NOTE_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    USER_PROMPT_TEMPLATE,
    render_template,
)
from .models import (
    BatchOutcome,
    DocumentProfile,
    FolderProfile,
    ProposedMove,
    Recommendation,
    RecommendationResult,
    VaultAnalysisReport,
)
from .profiles.builder import ProfileBuilder
from .scoring.fusion import fuse_result
from .scoring.parser import parse_folder_names, parse_recommendation, parse_vault_analysis
from .scoring.ranker import rank
from .vault.analyzer import NoteAnalyzer, key_topics
from .vault.reader import VaultReader
from .vault.scanner import VaultScanner

logger = logging.getLogger(__name__)


def validate_folders(folder_profiles: Sequence[FolderProfile]) -> None:
    """Reject an empty list, entries without a path, or duplicate paths."""
    if not folder_profiles:
        raise ValidationError("At least one folder profile is required")
    seen = set()
    for fp in folder_profiles:
        if not isinstance(fp, FolderProfile) or not isinstance(fp.folder_path, str):
            raise ValidationError(f"Invalid folder profile: {fp!r}")
        if fp.folder_path in seen:
            raise ValidationError(f"Duplicate folder profile: {fp.folder_path}")
        seen.add(fp.folder_path)


def describe_vault(folder_profiles: Sequence[FolderProfile]) -> str:
    return "\n\n".join(
        FOLDER_ENTRY_TEMPLATE.format(
            folder_path=fp.folder_path,
            description=fp.description or "None",
            file_count=fp.file_count,
            examples=", ".join(fp.examples) or "None",
        )
        for fp in folder_profiles
    )


class RecommendationEngine:
    """Recommends destination folders for notes."""

    def __init__(
        self,
        config: dict[str, Any],
        judgment: JudgmentClient,
        store: EmbeddingStore | None = None,
        builder: ProfileBuilder | None = None,
        reader: VaultReader | None = None,
    ):
        self.config = config
        self.judgment = judgment
        self.store = store
        self.builder = builder or (ProfileBuilder(store) if store is not None else None)
        self.reader = reader or VaultReader(config["vault_path"])
        self.analyzer = NoteAnalyzer(self.reader, config)
        self.scanner = VaultScanner(self.reader, config)

        judgment_cfg = config.get("judgment", {})
        self.model = config.get("claude_model", "claude-sonnet-4-20250514")
        self.temperature = judgment_cfg.get("temperature", 0.3)
        self.max_tokens = judgment_cfg.get("max_tokens", 1000)
        prompts = config.get("prompts") or {}
        self.system_prompt = prompts.get("system") or SYSTEM_PROMPT
        self.user_template = prompts.get("user_template") or USER_PROMPT_TEMPLATE

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RecommendationEngine":
        """Wire up reader, embedding backends, caches and judgment client from config."""
        reader = VaultReader(config["vault_path"])
        emb_cfg = config.get("embeddings", {})
        profile_cfg = config.get("profiles", {})
        store = EmbeddingStore(build_backends(config, reader), cache=TTLCache(emb_cfg.get("ttl", 300)))
        builder = ProfileBuilder(
            store,
            cache=TTLCache(profile_cfg.get("ttl", 300)),
            max_concurrency=profile_cfg.get("max_concurrency", 8),
        )
        return cls(config, JudgmentClient.from_config(config), store=store, builder=builder, reader=reader)

    async def folder_profiles(self) -> list[FolderProfile]:
        """Scan the vault and attach centroid/coherence where embeddings exist."""
        folders = self.scanner.scan()
        if self.builder is not None and self.store is not None and self.store.is_available():
            await self.builder.build_all(folders)
        return folders

    async def document_profile(self, path: str) -> DocumentProfile:
        embedding = await self.store.get_embedding(path) if self.store is not None else None
        return await self.analyzer.analyze(path, embedding)

    def invalidate(self, folder_path: str | None = None) -> None:
        if self.builder is not None:
            self.builder.invalidate(folder_path)
        if self.store is not None and folder_path is None:
            self.store.invalidate()

    def build_user_prompt(self, document: DocumentProfile, folder_profiles: Sequence[FolderProfile], user_context: str = "") -> str:
        return render_template(
            self.user_template,
            note_title=document.title or "Untitled",
            tags=", ".join(sorted(document.tags)) or "None",
            headings=", ".join(document.headings[:10]) or "None",
            content_preview=document.content_preview,
            vault_structure=describe_vault(folder_profiles),
            user_context=user_context or "None provided",
        )

    async def recommend(
        self,
        document: DocumentProfile,
        folder_profiles: Sequence[FolderProfile],
        user_context: str = "",
        document_embedding: Sequence[float] | None = None,
    ) -> RecommendationResult:
        """Recommend a folder for one note against a fixed set of folder profiles.

        Raises:
            ValidationError: if folder_profiles is empty or malformed.
            ConfigurationError, TransportError: if the judgment call fails.
            ParseError: if the reply cannot be decoded.
        """
        validate_folders(folder_profiles)
        started = time.perf_counter()

        reply = await self.judgment.complete(
            self.system_prompt,
            self.build_user_prompt(document, folder_profiles, user_context),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        result = parse_recommendation(reply.text, folder_profiles, model=self.model)

        known = {fp.folder_path for fp in folder_profiles}
        for rec in result.candidates():
            if rec.folder_path not in known:
                logger.warning(f"Judgment suggested unknown folder: {rec.folder_path}")

        embedding = document_embedding if document_embedding is not None else document.embedding
        if embedding is not None and len(embedding) > 0:
            await fuse_result(result, embedding, folder_profiles)
            result.metadata.models_used.append(self.config.get("embedding_model", "embeddings"))

        rank(result)
        if not result.metadata.topics_identified:
            result.metadata.topics_identified = key_topics(document.content_preview, sorted(document.tags))[:10]
        result.metadata.tokens_used = reply.tokens_used
        result.metadata.processing_time_ms = (time.perf_counter() - started) * 1000
        return result

    async def recommend_note(self, path: str, user_context: str = "") -> RecommendationResult:
        """Read, profile and score a note in the vault."""
        folders = await self.folder_profiles()
        document = await self.document_profile(path)
        return await self.recommend(document, folders, user_context)

    async def classify_folder(self, folder_path: str, threshold: float | None = None) -> BatchOutcome:
        """Recommend a destination for every note in a folder, one at a time.

        Each note's failure is recorded and does not stop the others. Moves are
        proposed only above `threshold` and away from the current folder.
        """
        if threshold is None:
            threshold = self.config.get("confidence_threshold", 70)
        folders = await self.folder_profiles()
        validate_folders(folders)

        outcome = BatchOutcome(folder_path=folder_path)
        for path in self.reader.list_notes(folder_path):
            try:
                document = await self.document_profile(path)
                result = await self.recommend(document, folders)
            except ConfigurationError:
                raise
            except (VaultSortError, OSError) as e:
                logger.error(f"Failed to classify {path}: {e}")
                outcome.failures[path] = str(e)
                continue

            outcome.results[path] = result
            primary = result.primary
            if primary.confidence >= threshold and primary.folder_path != folder_path:
                outcome.moves.append(ProposedMove(
                    source_path=path,
                    destination=primary.folder_path,
                    confidence=primary.confidence,
                    reasoning=primary.reasoning,
                ))
        return outcome

    async def suggest_folder_names(
        self,
        document: DocumentProfile,
        user_context: str = "",
        top_folders: Sequence[Recommendation] = (),
    ) -> list[str]:
        """Up to three new folder names for a note; empty if the reply is unusable."""
        prompt = FOLDER_NAMES_PROMPT.format(
            note_title=document.title,
            content_preview=document.content_preview,
            user_context=user_context or "None provided",
            top_folders=", ".join(r.folder_name for r in list(top_folders)[:5]) or "None",
        )
        reply = await self.judgment.complete(
            "You suggest folder names for a note-taking vault. Respond only with a JSON array.",
            prompt,
            model=self.model,
            temperature=0.7,
            max_tokens=500,
        )
        try:
            return parse_folder_names(reply.text)
        except ParseError as e:
            logger.warning(f"Failed to parse folder suggestions: {e}")
            return []

    async def analyze_vault(self, folder_profiles: Sequence[FolderProfile]) -> VaultAnalysisReport:
        """Local vault statistics plus the judgment's issues and recommendations."""
        validate_folders(folder_profiles)
        counts = [(fp.folder_path, fp.file_count) for fp in folder_profiles]
        total = sum(c for _, c in counts)
        non_empty = [c for c in counts if c[1] > 0]

        folder_stats = "\n".join(
            f"{fp.folder_path}: {fp.file_count} files, coherence: {fp.coherence:.2f}" for fp in folder_profiles
        )
        reply = await self.judgment.complete(
            ANALYSIS_SYSTEM_PROMPT,
            ANALYSIS_USER_PROMPT.format(folder_stats=folder_stats),
            model=self.model,
            temperature=0.5,
            max_tokens=2000,
        )
        parsed = parse_vault_analysis(reply.text)
        return VaultAnalysisReport(
            total_notes=total,
            total_folders=len(folder_profiles),
            avg_notes_per_folder=total / len(folder_profiles),
            largest_folder=max(counts, key=lambda c: c[1]),
            smallest_folder=min(non_empty, key=lambda c: c[1]) if non_empty else None,
            issues=parsed["issues"],
            recommendations=parsed["recommendations"],
            optimization_score=parsed["optimization_score"],
        )

    async def generate_folder_note(self, folder_path: str) -> str:
        """Markdown content for a folder's index note, summarizing the notes it holds.

        Nothing is written to the vault. Index notes are left out of the summaries.

        Raises:
            ValidationError: for the vault root, or a folder without notes.
        """
        folder_path = folder_path.strip("/")
        if not folder_path:
            raise ValidationError("Cannot generate a folder note for the vault root")
        notes = [
            n for n in self.reader.list_notes(folder_path)
            if PurePosixPath(n).name not in self.scanner.index_file_names
        ]
        if not notes:
            raise ValidationError(f"Folder has no notes: {folder_path}")

        documents = await asyncio.gather(*(self.analyzer.analyze(n) for n in notes))
        summaries = "\n".join(f"- {d.title}: {d.content_preview[:200]}" for d in documents)
        reply = await self.judgment.complete(
            FOLDER_NOTE_SYSTEM_PROMPT,
            FOLDER_NOTE_PROMPT.format(folder_name=PurePosixPath(folder_path).name, summaries=summaries),
            model=self.model,
            temperature=0.7,
            max_tokens=1000,
        )
        logger.debug(f"Generated folder note for {folder_path} from {len(documents)} note(s)")
        return reply.text.strip()
