"""Decode free-form judgment replies into recommendation records.

Replies are untrusted: the JSON payload may be wrapped in prose or code fences
and field names vary between models. Decoding never invents a recommendation;
anything that lacks a primary folder identifier raises ParseError.
"""

import json
import logging
import math
import re
from typing import Any, Iterable, Iterator, Sequence

from ..errors import ParseError
from ..models import (
    AnalysisMetadata,
    FolderProfile,
    Recommendation,
    RecommendationResult,
    SuggestedFolder,
)

logger = logging.getLogger(__name__)

PRIMARY_KEYS = ("primaryRecommendation", "primary_recommendation", "primary", "recommendation")
ALTERNATIVE_KEYS = ("alternatives", "alternativeRecommendations", "alternative_recommendations")
FOLDER_PATH_KEYS = ("folderPath", "folder_path", "path", "folder")
FOLDER_NAME_KEYS = ("folderName", "folder_name", "name", "label")
TOPIC_KEYS = ("matchedTopics", "matched_topics", "topics")
NEW_FOLDER_KEYS = ("suggestedNewFolder", "suggested_new_folder", "newFolder")

_OPENERS = {"{": "}", "[": "]"}


def _first(data: dict[str, Any], keys: Iterable[str]) -> Any:
    """Value of the first alias present with a non-empty value."""
    for key in keys:
        value = data.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def iter_balanced(text: str, opener: str = "{") -> Iterator[str]:
    """Yield successive top-level balanced `{...}` (or `[...]`) substrings.

    Brackets inside string literals, including escaped quotes, are ignored.
    An opener that is never closed is skipped and scanning resumes after it.
    """
    closer = _OPENERS[opener]
    start = text.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = None
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    end = i + 1
                    break
        if end is None:
            start = text.find(opener, start + 1)
            continue
        yield text[start:end]
        start = text.find(opener, end)


def find_balanced(text: str, opener: str = "{") -> str | None:
    """First balanced `{...}` (or `[...]`) substring of text, or None."""
    return next(iter_balanced(text, opener), None)


def extract_json(text: str, expect: type = dict) -> Any:
    """Parse text strictly, falling back to balanced JSON substrings in order.

    Raises:
        ParseError: if no JSON value of the expected type can be recovered.
    """
    if not text or not text.strip():
        raise ParseError("Empty reply", raw=text or "")
    stripped = text.strip()
    try:
        data = json.loads(stripped)
        if isinstance(data, expect):
            return data
    except json.JSONDecodeError:
        pass

    opener = "[" if expect is list else "{"
    last_error = None
    for candidate in iter_balanced(stripped, opener):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        if isinstance(data, expect):
            return data
    kind = "array" if expect is list else "object"
    if last_error is not None:
        raise ParseError(f"Malformed JSON {kind} in reply: {last_error}", raw=text)
    raise ParseError(f"No balanced JSON {kind} in reply", raw=text)


def _confidence(value: Any) -> tuple[float, bool]:
    """Normalise a confidence to [0, 100]. Returns (value, present)."""
    if value is None or isinstance(value, bool):
        return 0.0, False
    if isinstance(value, str):
        match = re.search(r"-?\d+(?:\.\d+)?", value)
        if not match:
            return 0.0, False
        value = match.group(0)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0, False
    if not math.isfinite(number):
        return 0.0, False
    return max(0.0, min(100.0, number)), True


def _topics(value: Any) -> list[str]:
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    if isinstance(value, list):
        return [str(t) for t in value if str(t).strip()]
    return []


def _recommendation(raw: Any, names: dict[str, str]) -> Recommendation | None:
    if isinstance(raw, str):
        raw = {"folderPath": raw}
    if not isinstance(raw, dict):
        return None
    folder_path = _first(raw, FOLDER_PATH_KEYS)
    if not isinstance(folder_path, str):
        return None
    folder_path = folder_path.strip().strip("/")
    label = _first(raw, FOLDER_NAME_KEYS)
    folder_name = str(label) if label else names.get(folder_path, folder_path.rsplit("/", 1)[-1] or folder_path)
    confidence, present = _confidence(raw.get("confidence"))
    return Recommendation(
        folder_path=folder_path,
        folder_name=folder_name,
        confidence=confidence,
        reasoning=str(raw.get("reasoning") or raw.get("reason") or ""),
        matched_topics=_topics(_first(raw, TOPIC_KEYS)),
        has_confidence=present,
    )


def _suggested_folder(raw: Any) -> SuggestedFolder | None:
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict):
        return None
    name = raw.get("name") or raw.get("folderName")
    if not name:
        return None
    return SuggestedFolder(
        name=str(name),
        reasoning=str(raw.get("reasoning") or ""),
        parent=raw.get("suggestedParent") or raw.get("parent"),
    )


def parse_recommendation(
    text: str,
    folder_profiles: Sequence[FolderProfile] = (),
    model: str | None = None,
) -> RecommendationResult:
    """Decode a judgment reply into a RecommendationResult.

    A missing confidence becomes 0 with ``has_confidence=False``; missing
    alternatives and matched topics become empty lists.

    Raises:
        ParseError: if the reply has no decodable primary folder identifier.
    """
    data = extract_json(text)
    names = {fp.folder_path: fp.folder_name for fp in folder_profiles}

    primary_raw = _first(data, PRIMARY_KEYS)
    if primary_raw is None and _first(data, FOLDER_PATH_KEYS) is not None:
        # Flat reply: the object itself is the primary recommendation.
        primary_raw = data
    primary = _recommendation(primary_raw, names)
    if primary is None:
        raise ParseError("Reply has no primary folder recommendation", raw=text)
    if not primary.has_confidence:
        logger.info(f"Reply gave no confidence for {primary.folder_path}; recording 0")

    alternatives_raw = _first(data, ALTERNATIVE_KEYS) or []
    if not isinstance(alternatives_raw, list):
        alternatives_raw = [alternatives_raw]
    alternatives = []
    for raw in alternatives_raw:
        rec = _recommendation(raw, names)
        if rec is None:
            logger.debug(f"Dropping alternative without folder identifier: {raw!r}")
            continue
        alternatives.append(rec)

    suggested = _suggested_folder(_first(data, NEW_FOLDER_KEYS))
    meta_raw = data.get("analysisMetadata") or data.get("analysis_metadata") or {}
    topics = _topics(meta_raw.get("topicsIdentified") or meta_raw.get("topics_identified")) if isinstance(meta_raw, dict) else []

    return RecommendationResult(
        primary=primary,
        alternatives=alternatives,
        should_create_new_folder=suggested is not None,
        suggested_new_folder=suggested,
        metadata=AnalysisMetadata(models_used=[model] if model else [], topics_identified=topics),
    )


def parse_folder_names(text: str, limit: int = 3) -> list[str]:
    """Decode a JSON array of folder-name suggestions.

    Raises:
        ParseError: if no JSON array can be recovered.
    """
    data = extract_json(text, expect=list)
    names = [str(n).strip() for n in data if isinstance(n, (str, int, float)) and str(n).strip()]
    return names[:limit]


def parse_vault_analysis(text: str) -> dict[str, Any]:
    """Decode a vault analysis reply into issues, recommendations and score."""
    data = extract_json(text)
    issues = data.get("issues") or []
    recommendations = data.get("recommendations") or []
    score = data.get("optimizationScore") or data.get("optimization_score") or {}
    return {
        "issues": [i for i in issues if isinstance(i, dict)],
        "recommendations": [r for r in recommendations if isinstance(r, dict)],
        "optimization_score": score if isinstance(score, dict) else {},
    }
