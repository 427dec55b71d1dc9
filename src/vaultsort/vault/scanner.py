"""Scan the vault into FolderProfiles."""

import logging
import re
from pathlib import PurePosixPath
from typing import Any

from ..models import FolderProfile
from .analyzer import split_frontmatter
from .reader import VaultReader

logger = logging.getLogger(__name__)


class VaultScanner:
    """Builds one FolderProfile per vault folder.

    Index notes (``index.md``, ``README.md`` by default) describe their folder
    and are not counted as members.
    """

    def __init__(self, reader: VaultReader, config: dict[str, Any]):
        self.reader = reader
        self.max_examples = config.get("profiles", {}).get("max_examples", 5)
        self.index_file_names = set(config.get("analysis", {}).get("index_file_names", ["index.md"]))

    def _describe(self, folder: str, index_path: str | None, members: list[str]) -> str:
        if index_path:
            frontmatter, body = split_frontmatter(self.reader.read(index_path))
            if frontmatter.get("description"):
                return str(frontmatter["description"])
            for paragraph in re.split(r"\n\s*\n", body):
                paragraph = paragraph.strip()
                if paragraph and not paragraph.startswith("#"):
                    return paragraph[:300]
        subfolders = self.reader.list_subfolders(folder)
        description = f"{len(members)} note(s)"
        if subfolders:
            description += f"; subfolders: {', '.join(subfolders[:5])}"
        return description

    def profile_folder(self, folder: str) -> FolderProfile:
        notes = self.reader.list_notes(folder)
        index_path = next((n for n in notes if PurePosixPath(n).name in self.index_file_names), None)
        members = [n for n in notes if n != index_path]
        return FolderProfile(
            folder_path=folder,
            folder_name=PurePosixPath(folder).name or "/",
            description=self._describe(folder, index_path, members),
            file_count=len(members),
            examples=[PurePosixPath(m).stem for m in members[:self.max_examples]],
            member_ids=members,
        )

    def scan(self) -> list[FolderProfile]:
        """Profile every folder in the vault, sorted by path."""
        profiles = [self.profile_folder(folder) for folder in self.reader.list_folders()]
        logger.debug(f"Scanned {len(profiles)} folder(s) in {self.reader.vault_path}")
        return profiles
