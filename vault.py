# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""
Vault access and media file resolution.

VaultInterface is what the resolver needs from a document store.
FileSystemVault implements it for a vault directory on disk; the listing
order it produces decides which file wins when two share a name.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Searched in this order after the preferred folder
MEDIA_FOLDERS = ("attachments", "assets", "media", "images", "Anexos", "Mídia")


@dataclass(frozen=True)
class VaultFile:
    """A file in the vault, addressed by its vault-relative POSIX path."""

    path: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


# --- Vault Interface ---


class VaultInterface(ABC):
    """Interface for the document store. Implement for your vault."""

    @abstractmethod
    def list_all_files(self) -> list[VaultFile]: ...
    @abstractmethod
    def get_absolute_path(self, file: VaultFile) -> str: ...
    @abstractmethod
    def lookup_by_path(self, path: str) -> Optional[VaultFile]: ...


class FileSystemVault(VaultInterface):
    """Vault backed by a directory, indexed in memory at construction."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()
        if not self.root.is_dir():
            raise FileNotFoundError(f"Vault not found: {self.root}")
        self._files: list[VaultFile] = []
        self._by_path: dict[str, VaultFile] = {}
        self.rescan()

    def rescan(self):
        """Rebuild the index from disk. Hidden files and folders are skipped."""
        files = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            for fname in sorted(filenames):
                if fname.startswith("."):
                    continue
                path = fname if rel_dir == "." else f"{rel_dir}/{fname}"
                files.append(VaultFile(path))

        self._files = files
        self._by_path = {f.path: f for f in files}
        logger.debug("Indexed %d files in %s", len(files), self.root)

    def list_all_files(self) -> list[VaultFile]:
        return list(self._files)

    def get_absolute_path(self, file: VaultFile) -> str:
        return str((self.root / file.path).resolve())

    def lookup_by_path(self, path: str) -> Optional[VaultFile]:
        return self._by_path.get(path)


# --- Resolver ---


class VaultResolver:
    """
    Map bare media filenames to vault files.

    Resolution order, first match wins:
    1. a file with that exact name anywhere in the vault (first in listing order)
    2. preferred_folder/filename
    3. each of MEDIA_FOLDERS joined with the filename

    A miss returns None; it is never an error.
    """

    def __init__(self, vault: VaultInterface, preferred_folder: str = ""):
        self.vault = vault
        self.preferred_folder = (preferred_folder or "").strip().strip("/")
        self._by_name: dict[str, VaultFile] = {}
        for f in vault.list_all_files():
            self._by_name.setdefault(f.name, f)

    def candidate_paths(self, filename: str) -> list[str]:
        folders = list(MEDIA_FOLDERS)
        if self.preferred_folder:
            folders.insert(0, self.preferred_folder)
        return [f"{folder}/{filename}" for folder in dict.fromkeys(folders)]

    def resolve(self, filename: str) -> Optional[VaultFile]:
        if file := self._by_name.get(filename):
            return file

        for path in self.candidate_paths(filename):
            if file := self.vault.lookup_by_path(path):
                return file
        return None
