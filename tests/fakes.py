"""Test doubles for the judgment service and embedding backends."""

import json

from vaultsort.embeddings.backends import EmbeddingBackend
from vaultsort.models import JudgmentReply


class FakeJudgment:
    """Returns canned replies in order, or raises a canned error."""

    def __init__(self, *replies, tokens=42):
        self.replies = list(replies)
        self.tokens = tokens
        self.calls = []

    async def complete(self, system, user, *, model, temperature=0.3, max_tokens=1000):
        self.calls.append({"system": system, "user": user, "model": model})
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return JudgmentReply(text=reply, tokens_used=self.tokens)


class DictBackend(EmbeddingBackend):
    """Serves vectors from a dict; optionally fails every lookup."""

    def __init__(self, vectors=None, name="dict", error=None, available=True):
        self.vectors = vectors or {}
        self.name = name
        self.error = error
        self.available = available
        self.lookups = []

    async def get_embedding(self, doc_id):
        self.lookups.append(doc_id)
        if self.error is not None:
            raise self.error
        return self.vectors.get(doc_id)

    def is_available(self):
        return self.available


def reply(primary_path, confidence=70, alternatives=(), **extra):
    """Build a judgment reply payload."""
    data = {
        "primaryRecommendation": {"folderPath": primary_path, "confidence": confidence, "reasoning": "fits"},
        "alternatives": [
            {"folderPath": path, "confidence": conf, "reasoning": "maybe"} for path, conf in alternatives
        ],
    }
    data.update(extra)
    return data
