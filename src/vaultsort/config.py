"""Configuration management for VaultSort."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "vault_path": "~/vault",
    "claude_model": "claude-sonnet-4-20250514",
    "embedding_model": "sentence-transformers/all-MiniLM-L6-v2",
    "confidence_threshold": 70,
    "judgment": {"temperature": 0.3, "max_tokens": 1000, "timeout": 30.0},
    "embeddings": {
        "backends": ["encoder", "bundle"],
        "bundle_paths": [".smart-env/vectors.json"],
        "ttl": 300,
        "timeout": 5.0,
        "chroma_path": "~/.vaultsort/chroma",
        "collection": "documents",
    },
    "profiles": {"max_concurrency": 8, "max_examples": 5, "ttl": 300},
    "analysis": {
        "content_preview_length": 500,
        "include_full_content": False,
        "index_file_names": ["index.md", "README.md"],
    },
    "prompts": {"system": None, "user_template": None},
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".vaultsort" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if api_key := os.environ.get("ANTHROPIC_API_KEY"):
        cfg["claude_api_key"] = api_key
    if vault := os.environ.get("VAULTSORT_VAULT"):
        cfg["vault_path"] = vault

    cfg["vault_path"] = str(Path(cfg["vault_path"]).expanduser().resolve())
    cfg["embeddings"]["chroma_path"] = str(Path(cfg["embeddings"]["chroma_path"]).expanduser())

    return cfg


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
