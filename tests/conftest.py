#!/usr/bin/env python3
# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""
Shared test utilities for the media fix tests.

FakeAnkiConnect stands in for the AnkiConnect add-on. It is handed to
AnkiConnectClient as its session, so requests never leave the process.
"""

import json
from pathlib import Path
from typing import Optional

import pytest
import requests

from .. import AnkiConnectClient, FileSystemVault, Note, VaultFile, VaultInterface

ENDPOINT = "http://127.0.0.1:8765"


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeAnkiConnect:
    """In-memory AnkiConnect that answers the actions the client uses."""

    def __init__(self, notes: Optional[list[Note]] = None, media: Optional[list[str]] = None):
        self.notes = {n.note_id: n for n in notes or []}
        self.media: dict[str, str] = {name: "" for name in media or []}
        self.calls: list[tuple[str, dict]] = []
        self.errors: dict[str, str] = {}
        # action -> raw result returned in place of the real answer
        self.results: dict[str, object] = {}
        self.failing_uploads: set[str] = set()
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None):
        payload = json.loads(data)
        assert payload["version"] == 6
        action, params = payload["action"], payload["params"]
        self.calls.append((action, params))

        if action in self.results:
            return self._reply(self.results[action])
        if action in self.errors:
            return self._reply(None, self.errors[action])
        if action == "storeMediaFile" and params["filename"] in self.failing_uploads:
            return self._reply(None, "failed to store media")
        return self._reply(getattr(self, f"_{action}")(**params))

    def close(self):
        self.closed = True

    def _reply(self, result, error=None) -> FakeResponse:
        return FakeResponse(json.dumps({"result": result, "error": error}).encode())

    # Actions
    def _findNotes(self, query):
        return list(self.notes)

    def _notesInfo(self, notes):
        return [self.notes[i].to_dict() if i in self.notes else {} for i in notes]

    def _getMediaFilesNames(self, pattern):
        return list(self.media)

    def _storeMediaFile(self, filename, path, deleteExisting):
        assert deleteExisting is True
        self.media[filename] = path
        return filename

    def actions(self) -> list[str]:
        return [action for action, _ in self.calls]

    def uploads(self) -> list[str]:
        return [p["filename"] for a, p in self.calls if a == "storeMediaFile"]


class RefusingSession:
    """Session whose every request fails like a closed port."""

    def post(self, url, data=None, headers=None, timeout=None):
        raise requests.ConnectionError("Connection refused")

    def close(self):
        pass


class MemoryVault(VaultInterface):
    """Vault listing kept in memory, in the given order."""

    def __init__(self, paths: list[str], root: str = "/vault"):
        self.root = root
        self.files = [VaultFile(p) for p in paths]
        self.lookups: list[str] = []

    def list_all_files(self) -> list[VaultFile]:
        return list(self.files)

    def get_absolute_path(self, file: VaultFile) -> str:
        return f"{self.root}/{file.path}"

    def lookup_by_path(self, path: str) -> Optional[VaultFile]:
        self.lookups.append(path)
        return next((f for f in self.files if f.path == path), None)


def make_note(note_id: int, model: str = "Basic", tags=None, **fields: str) -> Note:
    return Note(note_id=note_id, model_name=model, fields=dict(fields), tags=tags or [])


def write_vault(root: Path, paths: list[str]) -> Path:
    for p in paths:
        f = root / p
        f.parent.mkdir(parents=True, exist_ok=True)
        f.write_bytes(b"media")
    return root


@pytest.fixture
def anki():
    return FakeAnkiConnect()


@pytest.fixture
def client(anki):
    return AnkiConnectClient(ENDPOINT, session=anki)


@pytest.fixture
def vault_dir(tmp_path):
    return tmp_path / "vault"


@pytest.fixture
def fs_vault(vault_dir):
    def build(paths: list[str]) -> FileSystemVault:
        vault_dir.mkdir(exist_ok=True)
        return FileSystemVault(write_vault(vault_dir, paths))

    return build
