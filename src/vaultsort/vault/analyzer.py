"""Build DocumentProfiles from markdown notes."""

import re
from collections import Counter
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any, Sequence

import yaml

from ..models import DocumentProfile
from .reader import VaultReader

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)
HEADING_RE = re.compile(r"^#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)
INLINE_TAG_RE = re.compile(r"(?<![\w#&/])#([A-Za-z][\w/-]*)")
WIKILINK_RE = re.compile(r"\[\[([^\]|#]+)(?:[#|][^\]]*)?\]\]")
MDLINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
CODE_FENCE_RE = re.compile(r"```.*?```", re.DOTALL)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "is", "are", "was",
    "were", "be", "been", "being", "this", "that", "with", "from", "have", "will",
})


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter dict, body). Malformed YAML yields an empty dict."""
    fm_match = FRONTMATTER_RE.match(text)
    if not fm_match:
        return {}, text
    try:
        fm = yaml.safe_load(fm_match.group(1)) or {}
    except yaml.YAMLError:
        fm = {}
    if not isinstance(fm, dict):
        fm = {}
    return fm, text[fm_match.end():]


def extract_headings(body: str) -> list[str]:
    return [m.group(1).strip() for m in HEADING_RE.finditer(CODE_FENCE_RE.sub("", body))]


def extract_tags(frontmatter: dict[str, Any], body: str) -> list[str]:
    """Tags from frontmatter (`tags`/`tag`, list or comma string) plus inline #tags."""
    raw = frontmatter.get("tags", frontmatter.get("tag")) or []
    if isinstance(raw, str):
        raw = [t for t in re.split(r"[,\s]+", raw) if t]
    tags = [f"#{str(t).lstrip('#')}" for t in raw if str(t).strip()]
    for m in INLINE_TAG_RE.finditer(CODE_FENCE_RE.sub("", body)):
        tags.append(f"#{m.group(1)}")
    return list(dict.fromkeys(tags))


def extract_links(body: str) -> list[str]:
    links = [m.group(1).strip() for m in WIKILINK_RE.finditer(body)]
    links += [m.group(2).strip() for m in MDLINK_RE.finditer(body)]
    return list(dict.fromkeys(links))


def content_preview(body: str, length: int) -> str:
    """Markdown-stripped preview, cut at `length` characters with a trailing ellipsis."""
    cleaned = re.sub(r"#+\s", "", body)
    cleaned = MDLINK_RE.sub(r"\1", cleaned)
    cleaned = WIKILINK_RE.sub(r"\1", cleaned)
    cleaned = re.sub(r"[*_`]", "", cleaned).strip()
    if len(cleaned) > length:
        return cleaned[:length] + "..."
    return cleaned


def key_topics(text: str, tags: Sequence[str], limit: int = 10) -> list[str]:
    """Most frequent content words (4+ letters) followed by tag names."""
    words = [w for w in re.findall(r"\b[a-z]{4,}\b", text.lower()) if w not in STOP_WORDS]
    topics = [word for word, _ in Counter(words).most_common(limit)]
    return topics + [t.lstrip("#") for t in tags]


class NoteAnalyzer:
    """Turns a note in the vault into an immutable DocumentProfile."""

    def __init__(self, reader: VaultReader, config: dict[str, Any]):
        self.reader = reader
        analysis = config.get("analysis", {})
        self.preview_length = analysis.get("content_preview_length", 500)
        self.include_full_content = analysis.get("include_full_content", False)

    def profile_text(self, path: str, text: str, embedding: Sequence[float] | None = None) -> DocumentProfile:
        frontmatter, body = split_frontmatter(text)
        title = frontmatter.get("title") or PurePosixPath(path).stem
        preview = body.strip() if self.include_full_content else content_preview(body, self.preview_length)
        return DocumentProfile(
            path=path,
            title=str(title),
            tags=frozenset(extract_tags(frontmatter, body)),
            headings=tuple(extract_headings(body)),
            content_preview=preview,
            embedding=tuple(float(x) for x in embedding) if embedding is not None else None,
            frontmatter=MappingProxyType(dict(frontmatter)),
            links=tuple(extract_links(body)),
        )

    async def analyze(self, path: str, embedding: Sequence[float] | None = None) -> DocumentProfile:
        """Read a note and build its profile."""
        text = await self.reader.read_async(path)
        return self.profile_text(path, text, embedding)
