"""Tests for the recommendation engine workflow."""

import asyncio
import logging
import tempfile
from pathlib import Path

import pytest

from fakes import DictBackend, FakeJudgment, reply
from vaultsort.config import DEFAULT_CONFIG
from vaultsort.embeddings.store import EmbeddingStore
from vaultsort.engine import RecommendationEngine, describe_vault, validate_folders
from vaultsort.errors import ConfigurationError, ParseError, TransportError, ValidationError
from vaultsort.models import DocumentProfile, FolderProfile

DOC = DocumentProfile(
    path="Inbox/roadmap.md",
    title="Roadmap",
    tags=frozenset({"#planning"}),
    headings=("Milestones",),
    content_preview="launch planning launch schedule",
)


def _engine(judgment, vault_path="/tmp/vaultsort-test", **config):
    cfg = dict(DEFAULT_CONFIG, vault_path=vault_path)
    cfg.update(config)
    return RecommendationEngine(cfg, judgment)


def _folders():
    return [
        FolderProfile(folder_path="Projects", folder_name="Projects", file_count=4, examples=["alpha"],
                      centroid=[1.0, 0.0], coherence=0.9, has_valid_centroid=True),
        FolderProfile(folder_path="Inbox", folder_name="Inbox"),
    ]


def _write(root: Path, rel: str, text: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_recommend_fuses_and_ranks():
    judgment = FakeJudgment(reply("Projects", 70, alternatives=[("Inbox", 50)]))
    result = asyncio.run(_engine(judgment).recommend(DOC, _folders(), document_embedding=[1.0, 0.0]))

    assert result.primary.folder_path == "Projects"
    assert result.primary.similarity == pytest.approx(1.0)
    assert result.primary.enhanced_confidence == 97
    assert result.primary.match_strength == "moderate"
    inbox = result.alternatives[0]
    assert inbox.similarity == 0.5
    assert inbox.enhanced_confidence == 50
    assert result.metadata.tokens_used == 42
    assert result.metadata.models_used == [DEFAULT_CONFIG["claude_model"], DEFAULT_CONFIG["embedding_model"]]
    assert result.metadata.processing_time_ms >= 0


def test_recommend_without_embedding_keeps_judgment():
    judgment = FakeJudgment(reply("Projects", 85))
    result = asyncio.run(_engine(judgment).recommend(DOC, _folders()))
    assert result.primary.enhanced_confidence is None
    assert result.primary.effective_confidence == 85
    assert result.primary.match_strength == "strong"
    assert result.metadata.models_used == [DEFAULT_CONFIG["claude_model"]]


def test_recommend_falls_back_to_note_topics():
    result = asyncio.run(_engine(FakeJudgment(reply("Projects"))).recommend(DOC, _folders()))
    assert result.metadata.topics_identified[0] == "launch"
    assert "planning" in result.metadata.topics_identified


def test_prompt_lists_folders_and_note():
    judgment = FakeJudgment(reply("Projects"))
    asyncio.run(_engine(judgment).recommend(DOC, _folders(), user_context="work stuff"))
    prompt = judgment.calls[0]["user"]
    assert "Note Title: Roadmap" in prompt
    assert 'Folder: "Projects"' in prompt
    assert "Examples: alpha" in prompt
    assert "User Context: work stuff" in prompt


def test_custom_prompts():
    judgment = FakeJudgment(reply("Projects"))
    engine = _engine(judgment, prompts={"system": "SYS", "user_template": 'Title={note_title} JSON {"x": 1}'})
    asyncio.run(engine.recommend(DOC, _folders()))
    assert judgment.calls[0]["system"] == "SYS"
    assert judgment.calls[0]["user"] == 'Title=Roadmap JSON {"x": 1}'


def test_unknown_folder_is_logged(caplog):
    judgment = FakeJudgment(reply("Elsewhere", 60))
    with caplog.at_level(logging.WARNING, logger="vaultsort.engine"):
        result = asyncio.run(_engine(judgment).recommend(DOC, _folders(), document_embedding=[1.0, 0.0]))
    assert result.primary.folder_path == "Elsewhere"
    assert result.primary.enhanced_confidence == 60
    assert "Elsewhere" in caplog.text


def test_validate_folders():
    with pytest.raises(ValidationError):
        validate_folders([])
    with pytest.raises(ValidationError):
        validate_folders([FolderProfile("A", "A"), FolderProfile("A", "A")])
    with pytest.raises(ValidationError):
        validate_folders(["Projects"])
    validate_folders(_folders())


def test_recommend_rejects_empty_folders_before_judging():
    judgment = FakeJudgment(reply("Projects"))
    with pytest.raises(ValidationError):
        asyncio.run(_engine(judgment).recommend(DOC, []))
    assert judgment.calls == []


def test_transport_and_parse_errors_propagate():
    with pytest.raises(TransportError):
        asyncio.run(_engine(FakeJudgment(TransportError("down"))).recommend(DOC, _folders()))
    with pytest.raises(ParseError):
        asyncio.run(_engine(FakeJudgment("I would pick Projects")).recommend(DOC, _folders()))


def test_describe_vault_placeholders():
    text = describe_vault([FolderProfile("Inbox", "Inbox")])
    assert "Description: None" in text
    assert "Examples: None" in text


def test_recommend_note_uses_vault_embeddings():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Projects/p1.md", "# One")
        _write(root, "Projects/p2.md", "# Two")
        _write(root, "Inbox/new.md", "---\ntitle: New idea\n---\nSomething")
        store = EmbeddingStore([DictBackend({
            "Projects/p1.md": [1.0, 0.0],
            "Projects/p2.md": [1.0, 0.0],
            "Inbox/new.md": [1.0, 0.0],
        })])
        judgment = FakeJudgment(reply("Projects", 70))
        engine = RecommendationEngine(dict(DEFAULT_CONFIG, vault_path=tmpdir), judgment, store=store)

        result = asyncio.run(engine.recommend_note("Inbox/new.md"))
        assert result.primary.similarity == pytest.approx(1.0)
        assert result.primary.enhanced_confidence == 100
        assert "Note Title: New idea" in judgment.calls[0]["user"]


def test_classify_folder_isolates_failures():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Inbox/a.md", "project plan")
        _write(root, "Inbox/b.md", "unparseable")
        _write(root, "Inbox/c.md", "stays put")
        _write(root, "Projects/x.md", "existing")
        judgment = FakeJudgment(reply("Projects", 85), "not json", reply("Inbox", 95))
        engine = _engine(judgment, vault_path=tmpdir)

        outcome = asyncio.run(engine.classify_folder("Inbox"))
        assert [(m.source_path, m.destination) for m in outcome.moves] == [("Inbox/a.md", "Projects")]
        assert list(outcome.failures) == ["Inbox/b.md"]
        assert sorted(outcome.results) == ["Inbox/a.md", "Inbox/c.md"]


def test_classify_folder_threshold():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Inbox/a.md", "maybe a project")
        _write(root, "Projects/x.md", "existing")
        engine = _engine(FakeJudgment(reply("Projects", 65)), vault_path=tmpdir)

        assert asyncio.run(engine.classify_folder("Inbox")).moves == []
        assert len(asyncio.run(engine.classify_folder("Inbox", threshold=60)).moves) == 1


def test_classify_folder_stops_on_configuration_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        _write(Path(tmpdir), "Inbox/a.md", "note")
        engine = _engine(FakeJudgment(ConfigurationError("no key")), vault_path=tmpdir)
        with pytest.raises(ConfigurationError):
            asyncio.run(engine.classify_folder("Inbox"))


def test_suggest_folder_names():
    engine = _engine(FakeJudgment(["Roadmaps", "Planning", "Launches", "Extra"]))
    assert asyncio.run(engine.suggest_folder_names(DOC)) == ["Roadmaps", "Planning", "Launches"]


def test_suggest_folder_names_unusable_reply():
    engine = _engine(FakeJudgment("Roadmaps or maybe Planning"))
    assert asyncio.run(engine.suggest_folder_names(DOC)) == []


def test_analyze_vault():
    folders = [
        FolderProfile("Projects", "Projects", file_count=4),
        FolderProfile("Inbox", "Inbox", file_count=0),
        FolderProfile("Archive", "Archive", file_count=2),
    ]
    judgment = FakeJudgment({
        "issues": [{"type": "empty_folder", "description": "Inbox is empty", "severity": "low"}],
        "recommendations": [{"action": "merge", "description": "Fold Inbox into Projects"}],
        "optimizationScore": {"current": 60, "potential": 80},
    })
    report = asyncio.run(_engine(judgment).analyze_vault(folders))

    assert report.total_notes == 6
    assert report.total_folders == 3
    assert report.avg_notes_per_folder == pytest.approx(2.0)
    assert report.largest_folder == ("Projects", 4)
    assert report.smallest_folder == ("Archive", 2)
    assert report.issues[0]["type"] == "empty_folder"
    assert report.optimization_score["potential"] == 80
    assert "Projects: 4 files" in judgment.calls[0]["user"]


def test_generate_folder_note():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Recipes/pasta.md", "---\ntitle: Pasta\n---\nBoil water, add {salt}.")
        _write(root, "Recipes/soup.md", "Tomato soup with basil.")
        _write(root, "Recipes/index.md", "# Recipes\n\nOld index")
        judgment = FakeJudgment("# Recipes\n\nItalian and soups.\n")
        engine = _engine(judgment, vault_path=tmpdir)

        content = asyncio.run(engine.generate_folder_note("Recipes/"))
        assert content == "# Recipes\n\nItalian and soups."
        prompt = judgment.calls[0]["user"]
        assert '"Recipes"' in prompt
        assert "- Pasta: Boil water, add {salt}." in prompt
        assert "- soup: Tomato soup with basil." in prompt
        assert "Old index" not in prompt


def test_generate_folder_note_refuses_root_and_empty_folders():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root, "Empty/index.md", "# Only an index")
        judgment = FakeJudgment("unused")
        engine = _engine(judgment, vault_path=tmpdir)
        for folder in ("", "/", "Empty", "Missing"):
            with pytest.raises(ValidationError):
                asyncio.run(engine.generate_folder_note(folder))
        assert judgment.calls == []
