"""Read-only access to an Obsidian-style vault on disk.

Notes and folders are identified by vault-relative POSIX paths such as
``Projects/roadmap.md``. The vault root folder is ``""``.
"""

import asyncio
from pathlib import Path

NOTE_SUFFIXES = {".md", ".markdown"}


class VaultReader:
    """Reads notes, folder listings and cache artifacts from a vault directory."""

    def __init__(self, vault_path: str | Path):
        self.vault_path = Path(vault_path)

    def _resolve(self, rel_path: str) -> Path:
        return self.vault_path / rel_path if rel_path else self.vault_path

    def relative(self, path: Path) -> str:
        return path.relative_to(self.vault_path).as_posix()

    @staticmethod
    def _hidden(path: Path) -> bool:
        return path.name.startswith(".")

    def exists(self, rel_path: str) -> bool:
        return self._resolve(rel_path).exists()

    def read(self, rel_path: str) -> str:
        """Read a note's raw text."""
        return self._resolve(rel_path).read_text(encoding="utf-8", errors="replace")

    async def read_async(self, rel_path: str) -> str:
        return await asyncio.to_thread(self.read, rel_path)

    def read_artifact(self, rel_path: str) -> str | None:
        """Read a fixed-path cache artifact, or None if it does not exist."""
        path = self._resolve(rel_path)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def list_notes(self, folder: str = "") -> list[str]:
        """Direct markdown children of a folder, sorted."""
        root = self._resolve(folder)
        if not root.is_dir():
            return []
        return sorted(
            self.relative(p)
            for p in root.iterdir()
            if p.is_file() and p.suffix.lower() in NOTE_SUFFIXES and not self._hidden(p)
        )

    def list_folders(self) -> list[str]:
        """Every non-hidden folder in the vault, excluding the root, sorted."""
        if not self.vault_path.is_dir():
            return []
        folders = []
        for p in self.vault_path.rglob("*"):
            if not p.is_dir():
                continue
            rel = p.relative_to(self.vault_path)
            if any(part.startswith(".") for part in rel.parts):
                continue
            folders.append(rel.as_posix())
        return sorted(folders)

    def list_subfolders(self, folder: str) -> list[str]:
        root = self._resolve(folder)
        if not root.is_dir():
            return []
        return sorted(p.name for p in root.iterdir() if p.is_dir() and not self._hidden(p))
